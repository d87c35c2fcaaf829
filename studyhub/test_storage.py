import threading
from datetime import timedelta

import pytest

from conftest import LONG_BIOLOGY_TEXT, FakeAIService, sample_questions
from studyhub.models import (
    AchievementCreate,
    QuestionCreate,
    QuizSessionCreate,
    StudyMaterialCreate,
    UserAnswerCreate,
)
from studyhub.pipeline import FAILED, SKIPPED, SUCCEEDED, generate_for_material
from studyhub.stats import dashboard_stats, progress_data
from studyhub.storage import MemStorage, accuracy_percent


def material_draft(title="Cells", subject="Biology", content=LONG_BIOLOGY_TEXT):
    return StudyMaterialCreate(title=title, subject=subject, content=content, file_type="text")


def question_draft(material_id):
    return QuestionCreate(
        material_id=material_id,
        question="Q?",
        options=["A", "B", "C", "D"],
        correct_answer=2,
        difficulty="advanced",
        subject="Biology",
    )


def test_ids_are_sequential_and_never_reused(storage):
    first = storage.create_study_material(material_draft(), user_id=1)
    second = storage.create_study_material(material_draft(title="DNA"), user_id=1)
    assert (first.id, second.id) == (1, 2)

    assert storage.delete_study_material(second.id) is True
    assert storage.delete_study_material(second.id) is False
    third = storage.create_study_material(material_draft(title="Genes"), user_id=1)
    assert third.id == 3
    assert storage.get_study_material(2) is None


def test_counters_are_per_entity_type(storage):
    material = storage.create_study_material(material_draft(), user_id=1)
    question = storage.create_question(question_draft(material.id))
    session = storage.create_quiz_session(
        QuizSessionCreate(session_type="quick", total_questions=1, correct_answers=1), user_id=1
    )
    assert material.id == question.id == session.id == 1


def test_materials_are_listed_per_owner_in_insertion_order(storage):
    a = storage.create_study_material(material_draft(title="A"), user_id=1)
    storage.create_study_material(material_draft(title="B"), user_id=2)
    c = storage.create_study_material(material_draft(title="C"), user_id=1)
    assert [m.id for m in storage.get_study_materials(1)] == [a.id, c.id]
    assert storage.get_study_materials(3) == []


def test_material_defaults(storage):
    material = storage.create_study_material(material_draft(), user_id=1)
    assert material.questions_generated == 0
    assert material.uploaded_at is not None
    assert storage.set_questions_generated(material.id, 4).questions_generated == 4
    assert storage.set_questions_generated(99, 4) is None


def test_question_requires_existing_material(storage):
    with pytest.raises(KeyError):
        storage.create_question(question_draft(42))


def test_questions_by_material(storage):
    m1 = storage.create_study_material(material_draft(), user_id=1)
    m2 = storage.create_study_material(material_draft(), user_id=1)
    q1 = storage.create_question(question_draft(m1.id))
    storage.create_question(question_draft(m2.id))
    assert storage.get_questions_by_material(m1.id) == [q1]
    assert storage.get_question(q1.id) == q1


def test_quiz_session_accuracy_is_computed(storage):
    session = storage.create_quiz_session(
        QuizSessionCreate(session_type="standard", total_questions=3, correct_answers=2, accuracy=100, xp_earned=20),
        user_id=1,
    )
    assert session.accuracy == 67
    assert storage.get_quiz_session(session.id) == session
    assert storage.get_quiz_sessions(1) == [session]


def test_quiz_session_rejects_more_correct_than_total():
    with pytest.raises(ValueError):
        QuizSessionCreate(session_type="quick", total_questions=2, correct_answers=3)


def test_user_answers_and_achievements(storage):
    answer = storage.create_user_answer(
        UserAnswerCreate(user_id=1, question_id=1, session_id=1, selected_answer=2, is_correct=True, confidence_level=4)
    )
    assert answer.id == 1
    assert storage.get_user_answers(1) == [answer]
    assert storage.get_user_answers(2) == []

    badge = storage.create_achievement(AchievementCreate(user_id=1, badge_type="first_upload"))
    assert storage.get_user_achievements(1) == [badge]


def test_confidence_level_is_bounded():
    with pytest.raises(ValueError):
        UserAnswerCreate(selected_answer=0, is_correct=False, confidence_level=6)


@pytest.mark.parametrize("correct,total,expected", [
    (0, 0, 0),
    (1, 2, 50),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),  # 12.5 rounds up
    (5, 5, 100),
])
def test_accuracy_percent(correct, total, expected):
    assert accuracy_percent(correct, total) == expected


# --- Generation pipeline ---

def test_generation_skipped_without_service(storage):
    material = storage.create_study_material(material_draft(), user_id=1)
    outcome = generate_for_material(storage, None, material)
    assert outcome.status == SKIPPED
    assert outcome.reason == "AI service not configured"
    assert storage.questions == {}


def test_generation_skipped_for_short_content(storage):
    ai = FakeAIService()
    material = storage.create_study_material(material_draft(content="x" * 50), user_id=1)
    outcome = generate_for_material(storage, ai, material)
    assert outcome.status == SKIPPED
    assert outcome.reason == "content too short"
    assert ai.calls == []


def test_generation_stores_questions_and_bumps_counter(storage):
    ai = FakeAIService(questions=sample_questions(n=3))
    material = storage.create_study_material(material_draft(), user_id=1)
    outcome = generate_for_material(storage, ai, material, count=3)

    assert outcome.status == SUCCEEDED
    assert len(outcome.questions) == 3
    assert all(q.material_id == material.id for q in outcome.questions)
    assert storage.get_study_material(material.id).questions_generated == 3
    assert ai.calls == [("generate_questions", LONG_BIOLOGY_TEXT, "Biology", 3)]


def test_generation_failure_keeps_material(storage):
    material = storage.create_study_material(material_draft(), user_id=1)
    outcome = generate_for_material(storage, FakeAIService(fail=True), material)
    assert outcome.status == FAILED
    assert "Failed to generate questions" in outcome.error
    assert storage.get_study_material(material.id).questions_generated == 0
    assert storage.questions == {}


# --- Aggregates ---

def test_dashboard_stats_without_sessions():
    stats = dashboard_stats([], [], [])
    assert stats["accuracyRate"] == 0
    assert stats["questionsAnswered"] == 0
    assert stats["recentActivity"] == []


def test_dashboard_stats_aggregates_sessions(storage):
    material = storage.create_study_material(material_draft(title="Cells"), user_id=1)
    for total, correct in [(5, 4), (3, 1), (4, 4), (2, 0)]:
        storage.create_quiz_session(
            QuizSessionCreate(material_id=material.id, session_type="quick",
                              total_questions=total, correct_answers=correct, xp_earned=10),
            user_id=1,
        )
    storage.create_quiz_session(
        QuizSessionCreate(session_type="deep", total_questions=0, correct_answers=0), user_id=1
    )

    stats = dashboard_stats(storage.get_study_materials(1), storage.get_quiz_sessions(1), [])
    assert stats["studyMaterials"] == 1
    assert stats["questionsAnswered"] == 14
    assert stats["accuracyRate"] == round(100 * 9 / 14)
    assert stats["totalXP"] == 40
    assert [a["description"] for a in stats["recentActivity"]] == ["4/4 correct", "0/2 correct", "0/0 correct"]
    assert stats["recentActivity"][0]["title"] == "Completed Cells"
    assert stats["recentActivity"][-1]["title"] == "Completed Quiz"


def test_progress_breaks_down_by_subject(storage):
    bio = storage.create_study_material(material_draft(title="Cells", subject="Biology"), user_id=1)
    storage.create_study_material(material_draft(title="Atoms", subject="Chemistry"), user_id=1)
    first = storage.create_quiz_session(
        QuizSessionCreate(material_id=bio.id, session_type="quick", total_questions=4, correct_answers=2), user_id=1
    )
    second = storage.create_quiz_session(
        QuizSessionCreate(material_id=bio.id, session_type="quick", total_questions=4, correct_answers=4), user_id=1
    )
    second.completed_at = first.completed_at + timedelta(minutes=5)

    data = progress_data(storage.get_study_materials(1), storage.get_quiz_sessions(1))
    breakdown = {entry["subject"]: entry for entry in data["subjectBreakdown"]}

    assert data["overallAccuracy"] == 75
    assert data["questionsAnswered"] == 8
    assert breakdown["Biology"]["questions"] == 8
    assert breakdown["Biology"]["accuracy"] == 75
    assert breakdown["Biology"]["lastStudied"] == second.completed_at
    assert breakdown["Chemistry"] == {"subject": "Chemistry", "questions": 0, "accuracy": 0, "lastStudied": None}
    assert [p["accuracy"] for p in data["performanceOverTime"]] == [50, 100]


def test_fresh_store_is_empty():
    assert MemStorage().get_study_materials(1) == []


def test_listing_while_another_thread_creates(storage):
    errors = []
    done = threading.Event()

    def writer():
        try:
            for _ in range(2000):
                storage.create_study_material(material_draft(), user_id=1)
                storage.create_quiz_session(
                    QuizSessionCreate(session_type="quick", total_questions=1, correct_answers=1), user_id=1
                )
        except Exception as e:
            errors.append(e)
        finally:
            done.set()

    thread = threading.Thread(target=writer)
    thread.start()
    try:
        while not done.is_set():
            try:
                storage.get_study_materials(1)
                storage.get_quiz_sessions(1)
            except RuntimeError as e:
                errors.append(e)
                break
    finally:
        thread.join()

    assert errors == []
    assert len(storage.get_study_materials(1)) == 2000
    assert len(storage.get_quiz_sessions(1)) == 2000
