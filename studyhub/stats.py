from typing import Dict, List, Optional

from studyhub.models import Achievement, QuizSession, StudyMaterial
from studyhub.storage import accuracy_percent


def dashboard_stats(
    materials: List[StudyMaterial],
    sessions: List[QuizSession],
    achievements: List[Achievement],
) -> Dict:
    total_questions = sum(s.total_questions for s in sessions)
    total_correct = sum(s.correct_answers for s in sessions)
    titles = {m.id: m.title for m in materials}

    recent_activity = []
    for session in sessions[-3:]:
        title = titles.get(session.material_id) or "Quiz"
        recent_activity.append({
            "type": "quiz",
            "title": f"Completed {title}",
            "description": f"{session.correct_answers}/{session.total_questions} correct",
            "time": session.completed_at,
        })

    return {
        "studyMaterials": len(materials),
        "questionsAnswered": total_questions,
        "accuracyRate": accuracy_percent(total_correct, total_questions),
        "currentStreak": 0,
        "totalXP": sum(s.xp_earned for s in sessions),
        "longestStreak": 0,
        "achievements": len(achievements),
        "recentActivity": recent_activity,
    }


def progress_data(materials: List[StudyMaterial], sessions: List[QuizSession]) -> Dict:
    """Per-subject breakdown plus a per-session accuracy timeline."""
    subjects: Dict[str, Dict] = {}
    for material in materials:
        material_sessions = [s for s in sessions if s.material_id == material.id]
        questions = sum(s.total_questions for s in material_sessions)
        correct = sum(s.correct_answers for s in material_sessions)

        entry = subjects.setdefault(material.subject, {
            "subject": material.subject,
            "questions": 0,
            "accuracy": 0,
            "lastStudied": None,
        })
        entry["questions"] += questions
        if questions > 0:
            # the last material with sessions sets the subject's accuracy
            entry["accuracy"] = accuracy_percent(correct, questions)

        last: Optional[QuizSession] = max(material_sessions, key=lambda s: s.completed_at, default=None)
        if last is not None:
            entry["lastStudied"] = last.completed_at

    total_questions = sum(s.total_questions for s in sessions)
    total_correct = sum(s.correct_answers for s in sessions)

    return {
        "overallAccuracy": accuracy_percent(total_correct, total_questions),
        "totalXP": sum(s.xp_earned for s in sessions),
        "questionsAnswered": total_questions,
        "longestStreak": 0,
        "subjectBreakdown": list(subjects.values()),
        "performanceOverTime": [
            {"date": s.completed_at, "accuracy": s.accuracy, "questions": s.total_questions}
            for s in sessions
        ],
    }
