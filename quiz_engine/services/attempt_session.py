"""
Attempt lifecycle for students: start/resume, save progress, submit,
status and results.

Time is always judged from the server-side `expires_at` stored on the
attempt. Concurrency guarantees rest on the database:
- the partial unique index on in-progress attempts turns a racing second
  `start` into an IntegrityError, after which the existing attempt is
  resumed;
- the attempt `version` column makes submit/save a compare-and-set, so a
  retried submit finds the attempt already submitted instead of scoring it
  twice.
"""

import logging
import random
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.config import ATTEMPT_WRITE_RETRIES
from quiz_engine.errors import (
    ConflictError, InvalidStateError, NotFoundError, PayloadValidationError,
)
from quiz_engine.helpers.quiz_answer_evaluator import evaluate_quiz_answers
from quiz_engine.helpers.results_policy import (
    build_results, build_submit_result, can_review_questions, can_see_results,
    is_staff, submission_confirmation,
)
from quiz_engine.helpers.score_calculator import apply_score
from quiz_engine.helpers.shuffle import fisher_yates_shuffle
from quiz_engine.helpers.time_utils import seconds_until, utcnow
from quiz_engine.models import (
    AttemptStatus, OPTION_BASED_TYPES, Question, Quiz, QuizAttempt, QuizStatus, UserRole,
)
from quiz_engine.repositories.attempt_repository import AttemptRepository
from quiz_engine.repositories.question_bank import QuestionBank
from quiz_engine.repositories.quiz_repository import QuizRepository
from quiz_engine.schemas.quiz_attempt import AttemptRead
from quiz_engine.services.attempt_writes import write_attempt
from quiz_engine.services.notifications import NotificationPort, notify_safely

logger = logging.getLogger(__name__)


def _as_dict(answer) -> Dict[str, Any]:
    if hasattr(answer, "model_dump"):
        return answer.model_dump()
    return dict(answer)


def order_questions(questions: Iterable[Question], order: List[str]) -> List[Question]:
    """Questions in the attempt's snapshot order; ones added later go last."""
    by_id = {str(q.id): q for q in questions}
    ordered = [by_id.pop(qid) for qid in order if qid in by_id]
    return ordered + list(by_id.values())


def time_remaining(attempt: QuizAttempt, now) -> int:
    if attempt.status != AttemptStatus.IN_PROGRESS:
        return 0
    return seconds_until(attempt.expires_at, now)


class AttemptSessionManager:

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationPort] = None,
        clock=utcnow,
        rng: Optional[random.Random] = None,
        write_retries: int = ATTEMPT_WRITE_RETRIES,
    ):
        self.db = db
        self.quizzes = QuizRepository(db)
        self.question_bank = QuestionBank(db)
        self.attempts = AttemptRepository(db)
        self.notifier = notifier
        self.clock = clock
        self.rng = rng or random.Random()
        self.write_retries = write_retries

    # --------------------------
    # Start / resume
    # --------------------------
    async def start(self, quiz_id: UUID, student_id: str) -> Dict[str, Any]:
        quiz = await self.quizzes.get(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")

        now = self.clock()
        is_late = self._check_window(quiz, now)

        for _ in range(self.write_retries):
            existing = await self.attempts.find_in_progress(quiz.id, student_id)
            if existing:
                questions = await self.question_bank.list_by_quiz(quiz.id)
                logger.info(
                    "Resumed attempt %s (#%s) on quiz %s for student %s",
                    existing.id, existing.attempt_number, quiz.id, student_id,
                )
                return self._session_payload(existing, questions, now, created=False)

            previous = await self.attempts.count_for_student(quiz.id, student_id)
            if previous >= quiz.max_attempts:
                raise InvalidStateError(f"Maximum attempts ({quiz.max_attempts}) reached")

            questions = await self.question_bank.list_by_quiz(quiz.id)
            if not questions:
                raise InvalidStateError("Quiz has no questions")

            attempt = self._new_attempt(quiz, student_id, previous + 1, questions, now, is_late)
            self.attempts.add(attempt)
            try:
                await self.db.commit()
            except IntegrityError:
                # another request created the in-progress attempt first
                await self.db.rollback()
                logger.warning(
                    "Concurrent start on quiz %s for student %s, re-reading",
                    quiz_id, student_id,
                )
                quiz = await self.quizzes.get(quiz_id)
                if not quiz:
                    raise NotFoundError("Quiz not found")
                continue

            logger.info(
                "Started attempt %s (#%s) on quiz %s for student %s%s",
                attempt.id, attempt.attempt_number, quiz.id, student_id,
                " (late)" if is_late else "",
            )
            return self._session_payload(attempt, questions, now, created=True)

        raise ConflictError("Could not start the attempt, please retry")

    def _check_window(self, quiz: Quiz, now) -> bool:
        """Rejects attempts outside the window; returns True for a late attempt."""
        if quiz.status != QuizStatus.PUBLISHED:
            raise InvalidStateError("Quiz is not currently available")

        if quiz.start_at and now < quiz.start_at:
            raise InvalidStateError("Quiz has not started yet")

        if quiz.end_at and now > quiz.end_at:
            if quiz.allow_late_submissions:
                return True
            raise InvalidStateError("Quiz has ended")

        return False

    def _new_attempt(
        self, quiz: Quiz, student_id: str, attempt_number: int,
        questions: List[Question], now, is_late: bool,
    ) -> QuizAttempt:
        question_ids = [str(q.id) for q in questions]
        if quiz.shuffle_questions:
            fisher_yates_shuffle(question_ids, self.rng)

        option_orders = {}
        if quiz.shuffle_options:
            for q in questions:
                if q.type in OPTION_BASED_TYPES and q.options:
                    option_orders[str(q.id)] = fisher_yates_shuffle(
                        [str(opt["id"]) for opt in q.options], self.rng
                    )

        return QuizAttempt(
            quiz_id=quiz.id,
            student_id=student_id,
            attempt_number=attempt_number,
            started_at=now,
            expires_at=now + timedelta(minutes=quiz.duration),
            status=AttemptStatus.IN_PROGRESS,
            is_late=is_late,
            is_auto_submitted=False,
            max_score=quiz.max_score,
            questions_order=question_ids,
            option_orders=option_orders,
            answers=[],
        )

    def _sanitize(self, attempt: QuizAttempt, question: Question) -> Dict[str, Any]:
        options = [{"id": str(opt["id"]), "text": opt["text"]} for opt in question.options or []]

        fixed_order = (attempt.option_orders or {}).get(str(question.id))
        if fixed_order:
            position = {opt_id: i for i, opt_id in enumerate(fixed_order)}
            options.sort(key=lambda opt: position.get(opt["id"], len(position)))

        return {
            "id": question.id,
            "type": question.type,
            "text": question.text,
            "options": options,
            "points": question.points,
            "order": question.order,
        }

    def _session_payload(self, attempt, questions, now, created: bool) -> Dict[str, Any]:
        by_id = {str(q.id): q for q in questions}
        ordered = [by_id[qid] for qid in attempt.questions_order if qid in by_id]
        return {
            "attempt": attempt,
            "questions": [self._sanitize(attempt, q) for q in ordered],
            "time_remaining": time_remaining(attempt, now),
            "created": created,
        }

    # --------------------------
    # Save progress
    # --------------------------
    async def save_progress(self, attempt_id: UUID, student_id: str, answers) -> Dict[str, Any]:
        payload = [_as_dict(a) for a in answers or []]

        async def load():
            attempt = await self.attempts.get(attempt_id, student_id)
            if not attempt or attempt.status != AttemptStatus.IN_PROGRESS:
                raise NotFoundError("Attempt not found or already submitted")
            return attempt

        def mutate(attempt: QuizAttempt):
            now = self.clock()
            if now >= attempt.expires_at:
                raise InvalidStateError("Quiz time has expired")

            allowed = set(attempt.questions_order or [])
            unknown = [a["question_id"] for a in payload if str(a["question_id"]) not in allowed]
            if unknown:
                raise PayloadValidationError(
                    f"Answers reference questions outside this attempt: {', '.join(map(str, unknown))}"
                )

            # last write wins, no per-field merge
            attempt.answers = [
                {
                    "question_id": str(a["question_id"]),
                    "selected_options": [str(s) for s in a.get("selected_options") or []],
                    "written_answer": a.get("written_answer"),
                    "is_correct": None,
                    "points_awarded": None,
                    "feedback": None,
                }
                for a in payload
            ]
            return {"saved": True, "time_remaining": time_remaining(attempt, now)}

        return await write_attempt(self.db, load, mutate, self.write_retries)

    # --------------------------
    # Submit
    # --------------------------
    async def submit(
        self,
        attempt_id: UUID,
        student_id: str,
        answers=None,
        is_auto_submit: bool = False,
    ) -> Dict[str, Any]:
        payload = None if answers is None else [_as_dict(a) for a in answers]

        context = {}

        async def load():
            attempt = await self.attempts.get(attempt_id, student_id)
            if not attempt:
                raise NotFoundError("Attempt not found")
            if attempt.status != AttemptStatus.IN_PROGRESS:
                raise InvalidStateError("Quiz already submitted")

            quiz = await self.quizzes.get(attempt.quiz_id)
            if not quiz:
                raise NotFoundError("Quiz not found")
            context["quiz"] = quiz
            context["questions"] = await self.question_bank.list_by_quiz(quiz.id)
            return attempt

        def mutate(attempt: QuizAttempt):
            quiz = context["quiz"]
            submitted = payload if payload is not None else list(attempt.answers or [])
            ordered = order_questions(context["questions"], attempt.questions_order or [])
            records, needs_manual_grading = evaluate_quiz_answers(ordered, submitted)

            attempt.answers = records
            attempt.submitted_at = self.clock()
            attempt.is_auto_submitted = bool(is_auto_submit)

            # late attempts always go to a teacher, even when fully auto-graded
            if needs_manual_grading or attempt.is_late:
                attempt.status = AttemptStatus.SUBMITTED
            else:
                attempt.status = AttemptStatus.GRADED

            apply_score(attempt, quiz.passing_score)
            return attempt

        attempt = await write_attempt(self.db, load, mutate, self.write_retries)
        quiz = context["quiz"]

        logger.info(
            "Submitted attempt %s on quiz %s: status=%s score=%s/%s%s",
            attempt.id, quiz.id, attempt.status.value, attempt.score, attempt.max_score,
            " (auto)" if attempt.is_auto_submitted else "",
        )
        notify_safely(self.notifier, quiz.workspace_id, "attempt.submitted", {
            "quiz_id": str(quiz.id),
            "attempt_id": str(attempt.id),
            "student_id": attempt.student_id,
            "status": attempt.status.value,
        })

        return build_submit_result(quiz, attempt, UserRole.STUDENT)

    # --------------------------
    # Read-only projections
    # --------------------------
    async def get_status(self, attempt_id: UUID, student_id: str) -> Dict[str, Any]:
        attempt = await self.attempts.get(attempt_id, student_id)
        if not attempt:
            raise NotFoundError("Attempt not found")

        now = self.clock()
        in_progress = attempt.status == AttemptStatus.IN_PROGRESS
        return {
            "status": attempt.status,
            "time_remaining": time_remaining(attempt, now),
            "has_expired": now >= attempt.expires_at,
            "answers": attempt.answers if in_progress else [],
        }

    async def get_results(self, attempt_id: UUID, caller_id: str, caller_role) -> Dict[str, Any]:
        # staff can open any attempt, students only their own
        if is_staff(caller_role):
            attempt = await self.attempts.get(attempt_id)
        else:
            attempt = await self.attempts.get(attempt_id, caller_id)

        if not attempt:
            raise NotFoundError("Attempt not found")

        if attempt.status == AttemptStatus.IN_PROGRESS:
            raise InvalidStateError("Quiz not yet submitted")

        quiz = await self.quizzes.get(attempt.quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")

        questions = None
        if can_see_results(quiz, caller_role) and can_review_questions(quiz, caller_role):
            questions = await self.question_bank.list_by_quiz(quiz.id)

        return build_results(quiz, attempt, caller_role, questions)

    async def list_attempts_for_student(self, quiz_id: UUID, student_id: str) -> List[Dict[str, Any]]:
        quiz = await self.quizzes.get(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")

        attempts = await self.attempts.list_for_student(quiz_id, student_id)
        if can_see_results(quiz, UserRole.STUDENT):
            return [AttemptRead.model_validate(a).model_dump(mode="json") for a in attempts]
        return [submission_confirmation(a) for a in attempts]
