from typing import Any, Dict, List, Optional, Union

from quiz_engine.models import QuestionType


NOT_ANSWERED_FEEDBACK = "Not answered"

SubmittedValue = Union[str, List[str], None]


def _question_type(question) -> QuestionType:
    return QuestionType(question.type)


def _correct_option_ids(question) -> List[str]:
    return [str(opt["id"]) for opt in (question.options or []) if opt.get("is_correct")]


def check_answer(question, submitted: SubmittedValue) -> Optional[bool]:
    """
    Auto-grades one submitted value against a question.

    Returns True/False when the question type can be graded automatically,
    None when a human has to grade it (long answers, short answers without
    a configured correct answer).
    """
    q_type = _question_type(question)

    if q_type in (QuestionType.MCQ_SINGLE, QuestionType.TRUE_FALSE):
        correct_ids = _correct_option_ids(question)
        if not correct_ids or submitted is None:
            return False
        return str(submitted) == correct_ids[0]

    if q_type == QuestionType.MCQ_MULTIPLE:
        if not isinstance(submitted, list):
            return False
        return set(map(str, submitted)) == set(_correct_option_ids(question))

    if q_type == QuestionType.SHORT_ANSWER:
        if not question.correct_answer:
            return None
        if not isinstance(submitted, str):
            return False
        return submitted.strip().lower() == question.correct_answer.strip().lower()

    # long answers are always graded by hand
    return None


def submitted_value(question, answer: Dict[str, Any]) -> SubmittedValue:
    """Picks the part of a stored answer that `check_answer` compares."""
    selected = answer.get("selected_options") or []
    if _question_type(question) == QuestionType.MCQ_MULTIPLE:
        return list(selected)
    if selected:
        return selected[0]
    return answer.get("written_answer") or None


def points_for(question, is_correct: Optional[bool]) -> Optional[float]:
    if is_correct is None:
        return None
    return question.points if is_correct else 0


def evaluate_answer(question, answer: Dict[str, Any]) -> Dict[str, Any]:
    """
    Builds the stored answer record for one submitted answer.
    `is_correct` and `points_awarded` stay None when manual grading is needed.
    """
    is_correct = check_answer(question, submitted_value(question, answer))
    return {
        "question_id": str(question.id),
        "selected_options": [str(s) for s in (answer.get("selected_options") or [])],
        "written_answer": answer.get("written_answer") or "",
        "is_correct": is_correct,
        "points_awarded": points_for(question, is_correct),
        "feedback": None,
    }


def not_answered(question) -> Dict[str, Any]:
    return {
        "question_id": str(question.id),
        "selected_options": [],
        "written_answer": "",
        "is_correct": False,
        "points_awarded": 0,
        "feedback": NOT_ANSWERED_FEEDBACK,
    }


def evaluate_quiz_answers(questions, answers_payload: List[Dict[str, Any]]):
    """
    Evaluates a whole submission and returns:
    - list of answer records, one per question, in `questions` order
    - needs_manual_grading flag
    """
    # later entries for the same question win
    submitted_map: Dict[str, Dict[str, Any]] = {}
    for ans in answers_payload or []:
        submitted_map[str(ans.get("question_id"))] = ans

    records: List[Dict[str, Any]] = []
    needs_manual_grading = False

    for question in questions:
        ans = submitted_map.get(str(question.id))
        if ans is None:
            records.append(not_answered(question))
            continue

        record = evaluate_answer(question, ans)
        if record["is_correct"] is None:
            needs_manual_grading = True
        records.append(record)

    return records, needs_manual_grading
