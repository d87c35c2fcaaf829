import logging
from dataclasses import dataclass, field
from typing import List, Optional

from studyhub.ai_service import AIService, AIServiceError
from studyhub.config import MIN_GENERATION_CHARS, QUESTIONS_PER_MATERIAL
from studyhub.models import Question, QuestionCreate, StudyMaterial
from studyhub.storage import MemStorage

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class GenerationOutcome:
    status: str
    questions: List[Question] = field(default_factory=list)
    reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, questions: List[Question]) -> "GenerationOutcome":
        return cls(SUCCEEDED, questions=questions)

    @classmethod
    def skipped(cls, reason: str) -> "GenerationOutcome":
        return cls(SKIPPED, reason=reason)

    @classmethod
    def failed(cls, error: str) -> "GenerationOutcome":
        return cls(FAILED, error=error)


def generate_for_material(
    storage: MemStorage,
    ai_service: Optional[AIService],
    material: StudyMaterial,
    count: int = QUESTIONS_PER_MATERIAL,
) -> GenerationOutcome:
    """Best-effort question generation for a freshly stored material.

    Never raises for generator problems: the outcome says whether questions
    were stored, skipped or failed, and the material stays either way.
    """
    if ai_service is None:
        return GenerationOutcome.skipped("AI service not configured")
    if len(material.content) <= MIN_GENERATION_CHARS:
        return GenerationOutcome.skipped("content too short")

    try:
        drafts = ai_service.generate_questions(material.content, material.subject, count)
    except AIServiceError as e:
        return GenerationOutcome.failed(str(e))

    stored = [
        storage.create_question(
            QuestionCreate(
                material_id=material.id,
                question=draft.question,
                options=draft.options,
                correct_answer=draft.correct_answer,
                difficulty=draft.difficulty,
                subject=draft.subject,
            )
        )
        for draft in drafts
    ]
    storage.set_questions_generated(material.id, len(stored))
    return GenerationOutcome.succeeded(stored)


def log_outcome(material: StudyMaterial, outcome: GenerationOutcome) -> None:
    if outcome.status == SUCCEEDED:
        logger.info("Generated %d questions for material %d", len(outcome.questions), material.id)
    elif outcome.status == SKIPPED:
        logger.info("Skipping AI question generation for material %d: %s", material.id, outcome.reason)
    else:
        logger.warning("AI question generation failed for material %d: %s", material.id, outcome.error)
