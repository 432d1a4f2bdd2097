"""
Decides what a caller may see of a finished attempt.

Teachers and admins always get everything. Students get:
- score fields only when the quiz shows results after submit,
- the question review only when review after submit is allowed,
- correct answers inside the review only when correct answers are shown.

Hidden parts are omitted from the payload instead of being set to null.
"""
from typing import Any, Dict, List, Optional

from quiz_engine.models import UserRole
from quiz_engine.schemas.quiz_attempt import AttemptRead

HIDDEN_RESULTS_MESSAGE = "Results for this quiz are not available for viewing."

SCORE_FIELDS = ("score", "max_score", "percentage", "is_passed")


def is_staff(role) -> bool:
    return UserRole(role) in (UserRole.TEACHER, UserRole.ADMIN)


def can_see_results(quiz, role) -> bool:
    return is_staff(role) or bool(quiz.show_results_after_submit)


def can_review_questions(quiz, role) -> bool:
    return is_staff(role) or bool(quiz.allow_review_after_submit)


def can_see_correct_answers(quiz, role) -> bool:
    return is_staff(role) or bool(quiz.show_correct_answers)


def _quiz_flags(quiz) -> Dict[str, Any]:
    """The quiz settings as stored, whoever is asking."""
    return {
        "title": quiz.title,
        "show_results_after_submit": bool(quiz.show_results_after_submit),
        "show_correct_answers": bool(quiz.show_correct_answers),
        "allow_review_after_submit": bool(quiz.allow_review_after_submit),
    }


def submission_confirmation(attempt) -> Dict[str, Any]:
    return {
        "attempt_id": str(attempt.id),
        "attempt_number": attempt.attempt_number,
        "status": attempt.status.value,
        "submitted_at": attempt.submitted_at.isoformat() if attempt.submitted_at else None,
        "is_auto_submitted": attempt.is_auto_submitted,
    }


def build_submit_result(quiz, attempt, role) -> Dict[str, Any]:
    result = submission_confirmation(attempt)

    if not can_see_results(quiz, role):
        result["results_hidden"] = True
        return result

    result.update({
        "score": attempt.score,
        "max_score": attempt.max_score,
        "percentage": attempt.percentage,
        "is_passed": attempt.is_passed,
    })
    return result


def review_question(question, with_correct_answers: bool) -> Dict[str, Any]:
    view = {
        "id": str(question.id),
        "type": question.type.value,
        "text": question.text,
        "points": question.points,
        "order": question.order,
        "explanation": question.explanation,
    }
    if with_correct_answers:
        view["options"] = [dict(opt) for opt in question.options or []]
        view["correct_answer"] = question.correct_answer
    else:
        view["options"] = [
            {"id": opt["id"], "text": opt["text"]} for opt in question.options or []
        ]
    return view


def build_results(quiz, attempt, role, questions: Optional[List] = None) -> Dict[str, Any]:
    """
    Results payload for `attempt`. `questions` is only consulted when the
    caller is allowed to review them.
    """
    if not can_see_results(quiz, role):
        return {
            "attempt": submission_confirmation(attempt),
            "quiz": {
                "title": quiz.title,
                "show_results_after_submit": False,
                "show_correct_answers": False,
                "allow_review_after_submit": False,
            },
            "results_hidden": True,
            "message": HIDDEN_RESULTS_MESSAGE,
        }

    result = {
        "attempt": AttemptRead.model_validate(attempt).model_dump(mode="json"),
        "quiz": _quiz_flags(quiz),
    }

    if can_review_questions(quiz, role):
        with_answers = can_see_correct_answers(quiz, role)
        result["questions"] = [
            review_question(q, with_answers) for q in (questions or [])
        ]

    return result
