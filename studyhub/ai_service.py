import json
import logging
from typing import Iterable, List, Optional

from openai import OpenAI, OpenAIError
from pydantic import TypeAdapter, ValidationError

from studyhub.config import Settings
from studyhub.models import ChatMessage, GeneratedQuestion

logger = logging.getLogger(__name__)

QUESTION_SYSTEM_PROMPT = (
    "You are an expert educator who creates high-quality multiple-choice questions. "
    "Always respond with valid JSON."
)

SUMMARY_SYSTEM_PROMPT = "You are an expert at creating clear, educational summaries."

TUTOR_SYSTEM_PROMPT = """You are an AI tutor helping students understand their study materials.
Be helpful, encouraging, and educational. Explain concepts clearly and provide examples when helpful."""

_questions_adapter = TypeAdapter(List[GeneratedQuestion])


class AIServiceError(Exception):
    """Raised when the completion service cannot produce a usable answer."""


class GenerationError(AIServiceError):
    pass


class TutorError(AIServiceError):
    pass


class SummaryError(AIServiceError):
    pass


def build_question_prompt(content: str, subject: str, count: int) -> str:
    return f"""
Based on the following study material, generate {count} multiple-choice questions.

CONTENT:
{content}

REQUIREMENTS:
- Create questions that test understanding of key concepts
- Mix difficulty levels: beginner, intermediate, advanced
- Each question should have 4 options (A, B, C, D)
- Clearly indicate the correct answer as the 0-based index of the option
- Subject area: {subject}

FORMAT your response as a JSON array like this:
[
  {{
    "question": "What is the main function of...?",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": 1,
    "difficulty": "beginner",
    "subject": "{subject}"
  }}
]

Generate exactly {count} questions:"""


def parse_questions(raw: str) -> List[GeneratedQuestion]:
    """Parses the model reply; anything but a well-formed question array is an error."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise GenerationError(f"AI response is not valid JSON: {e}") from e
    try:
        return _questions_adapter.validate_python(data)
    except ValidationError as e:
        raise GenerationError(f"AI response has an unexpected shape: {e}") from e


class AIService:
    """Thin wrapper around an OpenAI chat-completion client."""

    def __init__(self, client: OpenAI, model: str = "gpt-3.5-turbo"):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["AIService"]:
        if not settings.ai_configured:
            return None
        client = OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.openai_timeout,
            max_retries=0,
        )
        return cls(client, model=settings.openai_model)

    def _complete(self, messages: List[dict], temperature: float, max_tokens: int) -> Optional[str]:
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not completion.choices:
            return None
        return completion.choices[0].message.content

    def generate_questions(self, content: str, subject: str, count: int = 5) -> List[GeneratedQuestion]:
        messages = [
            {"role": "system", "content": QUESTION_SYSTEM_PROMPT},
            {"role": "user", "content": build_question_prompt(content, subject, count)},
        ]
        try:
            response = self._complete(messages, temperature=0.7, max_tokens=2000)
        except OpenAIError as e:
            logger.error("Error generating questions: %s", e)
            raise GenerationError("Failed to generate questions") from e

        if not response:
            raise GenerationError("No response from AI")
        return parse_questions(response)

    def tutor_chat(
        self,
        message: str,
        material_content: Optional[str] = None,
        history: Optional[Iterable[ChatMessage]] = None,
    ) -> str:
        system_prompt = TUTOR_SYSTEM_PROMPT
        if material_content:
            system_prompt += f"\n\nCONTEXT FROM STUDENT'S MATERIAL:\n{material_content}"

        messages = [{"role": "system", "content": system_prompt}]
        for turn in history or []:
            messages.append({"role": turn.role, "content": turn.content})
        messages.append({"role": "user", "content": message})

        try:
            response = self._complete(messages, temperature=0.7, max_tokens=1000)
        except OpenAIError as e:
            logger.error("Error in tutor chat: %s", e)
            raise TutorError("Failed to get tutor response") from e

        if not response:
            raise TutorError("No response from AI tutor")
        return response

    def summarize_content(self, content: str, subject: str) -> str:
        prompt = (
            f"Summarize the following {subject} study material in a clear, concise way.\n"
            f"Highlight the key concepts and main points:\n\n{content}"
        )
        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            response = self._complete(messages, temperature=0.5, max_tokens=800)
        except OpenAIError as e:
            logger.error("Error summarizing content: %s", e)
            raise SummaryError("Failed to summarize content") from e

        if not response:
            raise SummaryError("No response from AI")
        return response
