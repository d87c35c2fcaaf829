import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

# Checked in order against the lower-cased file name; first hit wins.
FILENAME_SUBJECT_HINTS: List[Tuple[Tuple[str, ...], str]] = [
    (("biology", "bio"), "Biology"),
    (("chemistry", "chem"), "Chemistry"),
    (("physics", "phys"), "Physics"),
    (("math", "calc"), "Mathematics"),
    (("history", "hist"), "History"),
    (("english", "literature"), "English"),
]

SUBJECT_KEYWORDS: Dict[str, List[str]] = {
    "Biology": ["cell", "dna", "protein", "organism", "gene", "photosynthesis", "mitosis", "mitochondria", "evolution"],
    "Chemistry": ["molecule", "atom", "chemical", "reaction", "element", "compound", "periodic"],
    "Physics": ["force", "energy", "momentum", "velocity", "acceleration", "mass", "gravity", "wave"],
    "Mathematics": ["equation", "function", "derivative", "integral", "theorem", "proof", "variable"],
    "History": ["century", "war", "empire", "revolution", "king", "queen", "ancient", "medieval"],
}

DEFAULT_SUBJECT = "Other"


class FileProcessingError(Exception):
    """Base class for upload processing failures."""


class ExtractionError(FileProcessingError):
    pass


class UnsupportedTypeError(FileProcessingError):
    pass


@dataclass
class ProcessedFile:
    content: str
    file_type: str
    file_name: str
    file_size: int


def extract_text_from_pdf(data: bytes) -> str:
    """Extracts text from in-memory PDF bytes using PyMuPDF."""
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            text = ""
            for page in doc:
                text += page.get_text()
    except Exception as e:
        logger.error("PDF parsing error: %s", e)
        raise ExtractionError(
            "Failed to extract text from PDF. The file may be corrupted or contain no text."
        ) from e

    if not text.strip():
        raise ExtractionError("PDF appears to be empty or contains no extractable text")
    return text


def process_file(data: bytes, content_type: str, file_name: str) -> ProcessedFile:
    """Turns an uploaded file into plain text plus a coarse file type.

    PDFs go through PyMuPDF, ``text/*`` is decoded as UTF-8 and images yield
    empty content since there is no OCR. Any other type raises
    ``UnsupportedTypeError``.
    """
    content_type = (content_type or "").lower()
    logger.info("Processing file: %s, type: %s, size: %d bytes", file_name, content_type, len(data))

    if content_type == "application/pdf":
        content = extract_text_from_pdf(data)
        file_type = "pdf"
        logger.info("Extracted %d characters from PDF", len(content))
    elif content_type.startswith("text/"):
        # undecodable bytes become U+FFFD instead of failing the upload
        content = data.decode("utf-8", errors="replace")
        file_type = "text"
    elif content_type.startswith("image/"):
        # TODO: run OCR (e.g. pytesseract) so image uploads produce content
        content = ""
        file_type = "image"
        logger.info("Image file detected - OCR not implemented yet")
    else:
        raise UnsupportedTypeError(f"Unsupported file type: {content_type or 'unknown'}")

    return ProcessedFile(
        content=content.strip(),
        file_type=file_type,
        file_name=file_name,
        file_size=len(data),
    )


def infer_subject(file_name: str, content: str) -> str:
    """Guesses a subject from the file name first, then from content keywords."""
    lower_name = (file_name or "").lower()
    for hints, subject in FILENAME_SUBJECT_HINTS:
        if any(hint in lower_name for hint in hints):
            return subject

    lower_content = (content or "").lower()
    for subject, keywords in SUBJECT_KEYWORDS.items():
        if any(keyword in lower_content for keyword in keywords):
            return subject

    return DEFAULT_SUBJECT


def generate_title(file_name: str) -> str:
    """'my_bio_notes.pdf' -> 'My Bio Notes'"""
    name = os.path.splitext(os.path.basename(file_name))[0]
    title = re.sub(r"[_-]", " ", name)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), title)
