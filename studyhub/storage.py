import itertools
import threading
from typing import Dict, List, Optional

from studyhub.models import (
    Achievement,
    AchievementCreate,
    Question,
    QuestionCreate,
    QuizSession,
    QuizSessionCreate,
    StudyMaterial,
    StudyMaterialCreate,
    UserAnswer,
    UserAnswerCreate,
)


def accuracy_percent(correct: int, total: int) -> int:
    """round(correct / total * 100), rounding halves up; 0 when total is 0."""
    if total <= 0:
        return 0
    return (correct * 200 + total) // (total * 2)


class MemStorage:
    """In-memory store: one dict and one id counter per entity type.

    Ids start at 1 and are never reused, even after a delete. Lists come back
    in insertion order. Nothing survives a restart.

    Sync handlers write from the threadpool while async handlers read on the
    event loop, so every access to the dicts goes through ``_lock``.
    """

    def __init__(self):
        self.study_materials: Dict[int, StudyMaterial] = {}
        self.quiz_sessions: Dict[int, QuizSession] = {}
        self.questions: Dict[int, Question] = {}
        self.user_answers: Dict[int, UserAnswer] = {}
        self.achievements: Dict[int, Achievement] = {}

        self._material_ids = itertools.count(1)
        self._session_ids = itertools.count(1)
        self._question_ids = itertools.count(1)
        self._answer_ids = itertools.count(1)
        self._achievement_ids = itertools.count(1)
        self._lock = threading.Lock()

    # --- Study materials ---

    def get_study_materials(self, user_id: int) -> List[StudyMaterial]:
        with self._lock:
            return [m for m in self.study_materials.values() if m.user_id == user_id]

    def get_study_material(self, material_id: int) -> Optional[StudyMaterial]:
        with self._lock:
            return self.study_materials.get(material_id)

    def create_study_material(self, data: StudyMaterialCreate, user_id: Optional[int]) -> StudyMaterial:
        with self._lock:
            material = StudyMaterial(
                id=next(self._material_ids),
                user_id=user_id,
                title=data.title,
                subject=data.subject,
                file_type=data.file_type,
                content=data.content,
                questions_generated=0,
            )
            self.study_materials[material.id] = material
        return material

    def set_questions_generated(self, material_id: int, count: int) -> Optional[StudyMaterial]:
        with self._lock:
            material = self.study_materials.get(material_id)
            if material is not None:
                material.questions_generated = count
        return material

    def delete_study_material(self, material_id: int) -> bool:
        with self._lock:
            return self.study_materials.pop(material_id, None) is not None

    # --- Quiz sessions ---

    def get_quiz_sessions(self, user_id: int) -> List[QuizSession]:
        with self._lock:
            return [s for s in self.quiz_sessions.values() if s.user_id == user_id]

    def get_quiz_session(self, session_id: int) -> Optional[QuizSession]:
        with self._lock:
            return self.quiz_sessions.get(session_id)

    def create_quiz_session(self, data: QuizSessionCreate, user_id: Optional[int]) -> QuizSession:
        with self._lock:
            session = QuizSession(
                id=next(self._session_ids),
                user_id=user_id,
                material_id=data.material_id,
                session_type=data.session_type,
                total_questions=data.total_questions,
                correct_answers=data.correct_answers,
                accuracy=accuracy_percent(data.correct_answers, data.total_questions),
                xp_earned=data.xp_earned,
            )
            self.quiz_sessions[session.id] = session
        return session

    # --- Questions ---

    def get_questions_by_material(self, material_id: int) -> List[Question]:
        with self._lock:
            return [q for q in self.questions.values() if q.material_id == material_id]

    def get_question(self, question_id: int) -> Optional[Question]:
        with self._lock:
            return self.questions.get(question_id)

    def create_question(self, data: QuestionCreate) -> Question:
        with self._lock:
            if data.material_id not in self.study_materials:
                raise KeyError(f"study material {data.material_id} does not exist")
            question = Question(id=next(self._question_ids), **data.model_dump())
            self.questions[question.id] = question
        return question

    # --- User answers ---

    def get_user_answers(self, user_id: int) -> List[UserAnswer]:
        with self._lock:
            return [a for a in self.user_answers.values() if a.user_id == user_id]

    def create_user_answer(self, data: UserAnswerCreate) -> UserAnswer:
        with self._lock:
            answer = UserAnswer(id=next(self._answer_ids), **data.model_dump())
            self.user_answers[answer.id] = answer
        return answer

    # --- Achievements ---

    def get_user_achievements(self, user_id: int) -> List[Achievement]:
        with self._lock:
            return [a for a in self.achievements.values() if a.user_id == user_id]

    def create_achievement(self, data: AchievementCreate) -> Achievement:
        with self._lock:
            achievement = Achievement(id=next(self._achievement_ids), **data.model_dump())
            self.achievements[achievement.id] = achievement
        return achievement
