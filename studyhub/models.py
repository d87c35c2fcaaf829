from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Field, SQLModel

FileType = Literal["pdf", "text", "image"]
Difficulty = Literal["beginner", "intermediate", "advanced"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(SQLModel):
    """API shapes: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Users (relational) ---

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    password: str  # werkzeug password hash
    full_name: Optional[str] = None
    total_xp: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    email_notifications: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class UserRead(CamelModel):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    total_xp: int = Field(default=0, alias="totalXP")
    current_streak: int = 0
    longest_streak: int = 0
    email_notifications: bool = True
    created_at: Optional[datetime] = None


class UserUpdate(CamelModel):
    full_name: Optional[str] = None
    email_notifications: Optional[bool] = None


class SignupRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(CamelModel):
    user: UserRead
    token: str


# --- In-memory entities ---

class StudyMaterialCreate(CamelModel):
    title: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    file_type: FileType = "text"
    content: str = Field(min_length=1)


class StudyMaterial(CamelModel):
    id: int
    user_id: Optional[int] = None
    title: str
    subject: str
    file_type: FileType
    content: str
    questions_generated: int = 0
    uploaded_at: datetime = Field(default_factory=utcnow)


class QuestionCreate(CamelModel):
    material_id: int
    question: str
    options: List[str]
    correct_answer: int
    difficulty: Difficulty
    subject: str


class Question(QuestionCreate):
    id: int


class GeneratedQuestion(CamelModel):
    """One multiple-choice item as returned by the completion service."""

    question: str = Field(min_length=1)
    options: List[str]
    correct_answer: int
    difficulty: Difficulty
    subject: str

    @field_validator("options")
    @classmethod
    def four_options(cls, value: List[str]) -> List[str]:
        if len(value) != 4:
            raise ValueError(f"expected 4 options, got {len(value)}")
        return value

    @model_validator(mode="after")
    def answer_in_range(self) -> "GeneratedQuestion":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(f"correctAnswer {self.correct_answer} is not an option index")
        return self


class QuizSessionCreate(CamelModel):
    material_id: Optional[int] = None
    session_type: str = Field(min_length=1)  # quick, standard, deep
    total_questions: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    accuracy: Optional[int] = None  # recomputed from the counts
    xp_earned: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def correct_within_total(self) -> "QuizSessionCreate":
        if self.correct_answers > self.total_questions:
            raise ValueError("correctAnswers cannot exceed totalQuestions")
        return self


class QuizSession(CamelModel):
    id: int
    user_id: Optional[int] = None
    material_id: Optional[int] = None
    session_type: str
    total_questions: int
    correct_answers: int
    accuracy: int
    xp_earned: int
    completed_at: datetime = Field(default_factory=utcnow)


class UserAnswerCreate(CamelModel):
    user_id: Optional[int] = None
    question_id: Optional[int] = None
    session_id: Optional[int] = None
    selected_answer: int
    is_correct: bool
    confidence_level: int = Field(ge=1, le=5)


class UserAnswer(UserAnswerCreate):
    id: int
    answered_at: datetime = Field(default_factory=utcnow)


class AchievementCreate(CamelModel):
    user_id: Optional[int] = None
    badge_type: str  # first_upload, quiz_master, consistent_learner


class Achievement(AchievementCreate):
    id: int
    earned_at: datetime = Field(default_factory=utcnow)


# --- AI routes ---

class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(CamelModel):
    message: Optional[str] = None
    material_id: Optional[int] = None
    history: List[ChatMessage] = []


class ChatResponse(CamelModel):
    response: str


class SummarizeRequest(CamelModel):
    material_id: int


class SummaryResponse(CamelModel):
    summary: str
