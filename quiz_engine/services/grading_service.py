"""
Teacher-side grading of submitted attempts.

Precedence rules:
- `grade_overall` stores a manual score that replaces the per-question sum
  for as long as it is set.
- `regrade` re-runs auto-grading from the *current* question definitions
  and clears the manual score. Dropping an earlier `grade_overall` here is
  intended: after a regrade the auto-graded sum is the score again.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.config import ATTEMPT_WRITE_RETRIES
from quiz_engine.errors import InvalidStateError, NotFoundError, PermissionDeniedError
from quiz_engine.helpers.quiz_answer_evaluator import check_answer, points_for, submitted_value
from quiz_engine.helpers.results_policy import is_staff
from quiz_engine.helpers.score_calculator import apply_score
from quiz_engine.helpers.time_utils import utcnow
from quiz_engine.models import AttemptStatus, Quiz, QuizAttempt
from quiz_engine.repositories.attempt_repository import AttemptRepository
from quiz_engine.repositories.question_bank import QuestionBank
from quiz_engine.repositories.quiz_repository import QuizRepository
from quiz_engine.services.attempt_writes import write_attempt
from quiz_engine.services.notifications import NotificationPort, notify_safely

logger = logging.getLogger(__name__)


class GradingService:

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationPort] = None,
        clock=utcnow,
        write_retries: int = ATTEMPT_WRITE_RETRIES,
    ):
        self.db = db
        self.quizzes = QuizRepository(db)
        self.question_bank = QuestionBank(db)
        self.attempts = AttemptRepository(db)
        self.notifier = notifier
        self.clock = clock
        self.write_retries = write_retries

    def _require_staff(self, role) -> None:
        if not is_staff(role):
            raise PermissionDeniedError("Only teachers can grade quiz attempts")

    def _loader(self, attempt_id: UUID, context: dict, with_questions: bool = False):
        """
        Re-reads the attempt and its quiz (and questions for a regrade) on
        every try, storing the quiz objects in `context`.
        """
        async def load() -> QuizAttempt:
            attempt = await self.attempts.get(attempt_id)
            if not attempt:
                raise NotFoundError("Attempt not found")
            if attempt.status == AttemptStatus.IN_PROGRESS:
                raise InvalidStateError("Attempt has not been submitted yet")

            quiz = await self.quizzes.get(attempt.quiz_id)
            if not quiz:
                raise NotFoundError("Quiz not found")
            context["quiz"] = quiz
            if with_questions:
                context["questions"] = await self.question_bank.list_by_quiz(quiz.id)
            return attempt
        return load

    def _stamp(self, attempt: QuizAttempt, grader_id: str) -> None:
        attempt.graded_by_id = grader_id
        attempt.graded_at = self.clock()

    def _after_grading(self, quiz: Quiz, attempt: QuizAttempt, action: str) -> None:
        logger.info(
            "%s on attempt %s by %s: score=%s percentage=%s status=%s",
            action, attempt.id, attempt.graded_by_id, attempt.score,
            attempt.percentage, attempt.status.value,
        )
        notify_safely(self.notifier, quiz.workspace_id, "attempt.graded", {
            "quiz_id": str(quiz.id),
            "attempt_id": str(attempt.id),
            "student_id": attempt.student_id,
            "status": attempt.status.value,
        })

    # --------------------------
    # Per-answer override
    # --------------------------
    async def grade_answer(
        self,
        attempt_id: UUID,
        question_id: str,
        points_awarded: float,
        feedback: Optional[str],
        grader_id: str,
        grader_role,
    ) -> QuizAttempt:
        self._require_staff(grader_role)
        context = {}
        load = self._loader(attempt_id, context)

        def mutate(attempt: QuizAttempt):
            quiz = context["quiz"]
            answers = [dict(a) for a in attempt.answers or []]
            # raw equality on the stored id
            match = next((a for a in answers if a.get("question_id") == question_id), None)
            if match is None:
                raise NotFoundError("Answer not found")

            match["points_awarded"] = points_awarded
            match["feedback"] = feedback
            match["is_correct"] = points_awarded > 0
            attempt.answers = answers

            result = apply_score(attempt, quiz.passing_score)
            if result.all_graded:
                attempt.status = AttemptStatus.GRADED
            self._stamp(attempt, grader_id)
            return attempt

        attempt = await write_attempt(self.db, load, mutate, self.write_retries)
        self._after_grading(context["quiz"], attempt, f"Graded question {question_id}")
        return attempt

    # --------------------------
    # Whole-attempt manual score
    # --------------------------
    async def grade_overall(
        self,
        attempt_id: UUID,
        score: float,
        feedback: Optional[str],
        grader_id: str,
        grader_role,
    ) -> QuizAttempt:
        self._require_staff(grader_role)
        context = {}
        load = self._loader(attempt_id, context)

        def mutate(attempt: QuizAttempt):
            quiz = context["quiz"]
            attempt.manual_score = score
            if feedback is not None:
                attempt.grader_feedback = feedback

            apply_score(attempt, quiz.passing_score)
            attempt.status = AttemptStatus.GRADED
            self._stamp(attempt, grader_id)
            return attempt

        attempt = await write_attempt(self.db, load, mutate, self.write_retries)
        self._after_grading(context["quiz"], attempt, "Manual score")
        return attempt

    # --------------------------
    # Regrade from current questions
    # --------------------------
    async def regrade(self, attempt_id: UUID, grader_id: str, grader_role) -> QuizAttempt:
        self._require_staff(grader_role)
        context = {}
        load = self._loader(attempt_id, context, with_questions=True)

        def mutate(attempt: QuizAttempt):
            quiz = context["quiz"]
            question_map = {str(q.id): q for q in context["questions"]}
            answers = [dict(a) for a in attempt.answers or []]
            for answer in answers:
                question = question_map.get(str(answer.get("question_id")))
                if not question:
                    continue

                is_correct = check_answer(question, submitted_value(question, answer))
                # manual-only answers keep whatever a teacher awarded
                if is_correct is not None:
                    answer["is_correct"] = is_correct
                    answer["points_awarded"] = points_for(question, is_correct)
            attempt.answers = answers

            attempt.manual_score = None
            result = apply_score(attempt, quiz.passing_score)
            if result.all_graded:
                attempt.status = AttemptStatus.GRADED
            self._stamp(attempt, grader_id)
            return attempt

        attempt = await write_attempt(self.db, load, mutate, self.write_retries)
        self._after_grading(context["quiz"], attempt, "Regrade")
        return attempt
