import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

PLACEHOLDER_API_KEY = "your_openai_api_key_here"

MIN_GENERATION_CHARS = 50
QUESTIONS_PER_MATERIAL = 5
DEFAULT_QUESTION_COUNT = 15

ALLOWED_CONTENT_TYPES = (
    "application/pdf",
    "text/plain",
    "text/csv",
    "image/jpeg",
    "image/jpg",
    "image/png",
)


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: Optional[str] = None
    openai_timeout: float = 60.0
    database_url: str = "sqlite:///./studyhub.db"
    demo_user_id: int = 1
    max_upload_mb: int = 50
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            openai_model=os.environ.get("OPENAI_MODEL", "gpt-3.5-turbo"),
            openai_base_url=os.environ.get("OPENAI_BASE_URL") or None,
            openai_timeout=float(os.environ.get("OPENAI_TIMEOUT", "60")),
            database_url=os.environ.get("DATABASE_URL", "sqlite:///./studyhub.db"),
            demo_user_id=int(os.environ.get("DEMO_USER_ID", "1")),
            max_upload_mb=int(os.environ.get("MAX_UPLOAD_MB", "50")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def ai_configured(self) -> bool:
        """True when an OpenAI key is set and is not the .env.example placeholder."""
        key = (self.openai_api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings.from_env()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
