from types import SimpleNamespace
from uuid import uuid4

from quiz_engine.helpers.quiz_answer_evaluator import (
    NOT_ANSWERED_FEEDBACK, check_answer, evaluate_answer, evaluate_quiz_answers,
)
from quiz_engine.models import QuestionType


def make_question(q_type, options=None, correct_answer=None, points=1):
    return SimpleNamespace(
        id=uuid4(),
        type=q_type,
        options=options or [],
        correct_answer=correct_answer,
        points=points,
    )


def options(*correct_ids, ids=("a", "b", "c", "d")):
    return [{"id": i, "text": i.upper(), "is_correct": i in correct_ids} for i in ids]


def test_mcq_single_matches_correct_option():
    q = make_question(QuestionType.MCQ_SINGLE, options("b"))
    assert check_answer(q, "b") is True
    assert check_answer(q, "a") is False
    assert check_answer(q, None) is False


def test_mcq_multiple_is_order_independent():
    q = make_question(QuestionType.MCQ_MULTIPLE, options("a", "c"))
    assert check_answer(q, ["a", "c"]) is True
    assert check_answer(q, ["c", "a"]) is True
    assert check_answer(q, ["a", "a", "c"]) is True


def test_mcq_multiple_rejects_extra_or_missing_options():
    q = make_question(QuestionType.MCQ_MULTIPLE, options("a", "c"))
    assert check_answer(q, ["a", "c", "d"]) is False
    assert check_answer(q, ["a"]) is False
    assert check_answer(q, []) is False
    assert check_answer(q, "a") is False


def test_true_false_behaves_like_single_choice():
    q = make_question(QuestionType.TRUE_FALSE, options("t", ids=("t", "f")))
    assert check_answer(q, "t") is True
    assert check_answer(q, "f") is False


def test_short_answer_ignores_case_and_surrounding_whitespace():
    q = make_question(QuestionType.SHORT_ANSWER, correct_answer=" Paris ")
    assert check_answer(q, "  pARIS") is True
    assert check_answer(q, "Lyon") is False
    assert check_answer(q, None) is False


def test_short_answer_without_key_needs_manual_grading():
    q = make_question(QuestionType.SHORT_ANSWER, correct_answer=None)
    assert check_answer(q, "anything") is None


def test_long_answer_always_needs_manual_grading():
    q = make_question(QuestionType.LONG_ANSWER, correct_answer="model answer")
    assert check_answer(q, "model answer") is None


def test_evaluate_answer_awards_points_only_when_correct():
    q = make_question(QuestionType.MCQ_SINGLE, options("a"), points=4)
    right = evaluate_answer(q, {"question_id": str(q.id), "selected_options": ["a"]})
    wrong = evaluate_answer(q, {"question_id": str(q.id), "selected_options": ["b"]})

    assert (right["is_correct"], right["points_awarded"]) == (True, 4)
    assert (wrong["is_correct"], wrong["points_awarded"]) == (False, 0)


def test_evaluate_answer_leaves_manual_questions_ungraded():
    q = make_question(QuestionType.LONG_ANSWER, points=5)
    record = evaluate_answer(q, {"question_id": str(q.id), "written_answer": "Chlorophyll..."})

    assert record["is_correct"] is None
    assert record["points_awarded"] is None
    assert record["written_answer"] == "Chlorophyll..."


def test_short_answer_reads_written_answer():
    q = make_question(QuestionType.SHORT_ANSWER, correct_answer="Paris")
    record = evaluate_answer(q, {"question_id": str(q.id), "written_answer": "paris"})
    assert record["is_correct"] is True


def test_unanswered_questions_get_zero_point_entries():
    q1 = make_question(QuestionType.MCQ_SINGLE, options("a"))
    q2 = make_question(QuestionType.LONG_ANSWER)

    records, needs_manual = evaluate_quiz_answers(
        [q1, q2], [{"question_id": str(q1.id), "selected_options": ["a"]}]
    )

    assert [r["question_id"] for r in records] == [str(q1.id), str(q2.id)]
    assert records[1]["points_awarded"] == 0
    assert records[1]["feedback"] == NOT_ANSWERED_FEEDBACK
    # the unanswered long answer does not need a teacher
    assert needs_manual is False


def test_answered_long_answer_flags_manual_grading():
    q = make_question(QuestionType.LONG_ANSWER)
    _, needs_manual = evaluate_quiz_answers(
        [q], [{"question_id": str(q.id), "written_answer": "essay"}]
    )
    assert needs_manual is True


def test_unknown_questions_are_dropped_and_last_duplicate_wins():
    q = make_question(QuestionType.MCQ_SINGLE, options("a"))

    records, _ = evaluate_quiz_answers([q], [
        {"question_id": str(q.id), "selected_options": ["b"]},
        {"question_id": "not-in-quiz", "selected_options": ["a"]},
        {"question_id": str(q.id), "selected_options": ["a"]},
    ])

    assert len(records) == 1
    assert records[0]["is_correct"] is True
