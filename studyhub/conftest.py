import os

# must be set before studyhub.db builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from studyhub.ai_service import GenerationError, SummaryError, TutorError
from studyhub.app import app, get_ai_service, get_session, get_storage
from studyhub.db import build_engine, create_db_and_tables
from studyhub.models import GeneratedQuestion
from studyhub.storage import MemStorage

LONG_BIOLOGY_TEXT = (
    "Photosynthesis converts light energy into chemical energy. "
    "Chlorophyll in the chloroplast absorbs light, and the cell stores the result as glucose."
)


def sample_questions(subject="Biology", n=5):
    return [
        GeneratedQuestion(
            question=f"Question {i + 1}?",
            options=["A", "B", "C", "D"],
            correct_answer=i % 4,
            difficulty=["beginner", "intermediate", "advanced"][i % 3],
            subject=subject,
        )
        for i in range(n)
    ]


class FakeAIService:
    """Stands in for AIService; records calls and replays canned answers."""

    def __init__(self, questions=None, fail=False, reply="Happy to help!", summary="Short summary."):
        self.questions = sample_questions() if questions is None else questions
        self.fail = fail
        self.reply = reply
        self.summary = summary
        self.calls = []

    def generate_questions(self, content, subject, count=5):
        self.calls.append(("generate_questions", content, subject, count))
        if self.fail:
            raise GenerationError("Failed to generate questions")
        return self.questions

    def tutor_chat(self, message, material_content=None, history=None):
        self.calls.append(("tutor_chat", message, material_content, list(history or [])))
        if self.fail:
            raise TutorError("Failed to get tutor response")
        return self.reply

    def summarize_content(self, content, subject):
        self.calls.append(("summarize_content", content, subject))
        if self.fail:
            raise SummaryError("Failed to summarize content")
        return self.summary


def make_pdf(text=""):
    doc = fitz.open()
    page = doc.new_page()
    if text:
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    return engine


@pytest.fixture
def client(storage, fake_ai, engine):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ai_service] = lambda: fake_ai
    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
