"""
Quiz authoring for teachers: quiz configuration, publishing and the
question bank behind it.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.errors import InvalidStateError, NotFoundError, PayloadValidationError
from quiz_engine.helpers.time_utils import utcnow
from quiz_engine.models import OPTION_BASED_TYPES, Question, QuestionType, Quiz, QuizAttempt, QuizStatus
from quiz_engine.repositories.attempt_repository import AttemptRepository
from quiz_engine.repositories.question_bank import QuestionBank
from quiz_engine.repositories.quiz_repository import QuizRepository
from quiz_engine.schemas.question import QuestionCreate, QuestionUpdate
from quiz_engine.schemas.quiz import QuizCreate, QuizListItem, QuizUpdate
from quiz_engine.services.notifications import NotificationPort, notify_safely

logger = logging.getLogger(__name__)

UNSET = object()


def build_question_fields(
    q_type: QuestionType,
    options: List[Any],
    correct_answer: Optional[str],
) -> Dict[str, Any]:
    """
    Validates the answer definition of a question and keeps only the part
    its type uses: options for choice questions, `correct_answer` for text
    questions.
    """
    q_type = QuestionType(q_type)

    if q_type not in OPTION_BASED_TYPES:
        return {"options": [], "correct_answer": (correct_answer or "").strip() or None}

    stored = []
    for opt in options or []:
        opt = opt.model_dump() if hasattr(opt, "model_dump") else dict(opt)
        stored.append({
            "id": str(opt.get("id") or uuid.uuid4()),
            "text": opt["text"],
            "is_correct": bool(opt.get("is_correct")),
        })

    if len(stored) < 2:
        raise PayloadValidationError("Choice questions need at least two options")

    if len({opt["id"] for opt in stored}) != len(stored):
        raise PayloadValidationError("Option ids must be unique within a question")

    correct = sum(1 for opt in stored if opt["is_correct"])

    if q_type == QuestionType.TRUE_FALSE and len(stored) != 2:
        raise PayloadValidationError("True/false questions have exactly two options")

    if q_type in (QuestionType.MCQ_SINGLE, QuestionType.TRUE_FALSE) and correct != 1:
        raise PayloadValidationError("Question must have exactly one correct option")

    if q_type == QuestionType.MCQ_MULTIPLE and correct < 1:
        raise PayloadValidationError("Question must have at least one correct option")

    return {"options": stored, "correct_answer": None}


class QuizService:

    def __init__(
        self,
        db: AsyncSession,
        notifier: Optional[NotificationPort] = None,
        clock=utcnow,
    ):
        self.db = db
        self.quizzes = QuizRepository(db)
        self.question_bank = QuestionBank(db)
        self.attempts = AttemptRepository(db)
        self.notifier = notifier
        self.clock = clock

    async def _get_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.quizzes.get(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    async def _get_question(self, question_id: UUID) -> Question:
        question = await self.question_bank.get(question_id)
        if not question:
            raise NotFoundError("Question not found")
        return question

    async def _refresh_question_totals(self, quiz: Quiz) -> None:
        """
        Keeps question_count current. Once the quiz is live, max_score follows
        the bank too, so new attempts are scored against the questions they get.
        Attempts already started keep the max_score copied at start.
        """
        await self.db.flush()
        questions = await self.question_bank.list_by_quiz(quiz.id)
        quiz.question_count = len(questions)
        if quiz.status != QuizStatus.DRAFT:
            quiz.max_score = sum(q.points for q in questions)

    def _notify(self, quiz: Quiz, event: str) -> None:
        notify_safely(self.notifier, quiz.workspace_id, event, {
            "quiz_id": str(quiz.id),
            "title": quiz.title,
            "start_at": quiz.start_at.isoformat() if quiz.start_at else None,
            "end_at": quiz.end_at.isoformat() if quiz.end_at else None,
        })

    # --------------------------
    # Quiz configuration
    # --------------------------
    async def create_quiz(self, quiz_in: QuizCreate, creator_id: str) -> Quiz:
        quiz = Quiz(
            created_by_id=creator_id,
            status=QuizStatus.DRAFT,
            max_score=0,
            question_count=0,
            **quiz_in.model_dump(),
        )
        self.db.add(quiz)
        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Created quiz %s '%s' by %s", quiz.id, quiz.title, creator_id)
        return quiz

    async def get_quiz(self, quiz_id: UUID) -> Tuple[Quiz, List[Question]]:
        quiz = await self._get_quiz(quiz_id)
        questions = await self.question_bank.list_by_quiz(quiz.id)
        return quiz, questions

    async def list_quizzes(
        self, workspace_id: str, status: Optional[QuizStatus] = None
    ) -> List[QuizListItem]:
        quizzes = await self.quizzes.list_by_workspace(workspace_id, status)
        counts = await self.quizzes.attempt_counts([q.id for q in quizzes])
        return [
            QuizListItem.model_validate(quiz).model_copy(update=counts[quiz.id])
            for quiz in quizzes
        ]

    async def update_quiz(self, quiz_id: UUID, changes: QuizUpdate) -> Quiz:
        quiz = await self._get_quiz(quiz_id)

        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(quiz, field, value)

        if quiz.start_at and quiz.end_at and quiz.end_at <= quiz.start_at:
            raise PayloadValidationError("end_at must be after start_at")
        for field in ("title", "duration", "max_attempts", "passing_score"):
            if getattr(quiz, field) is None:
                raise PayloadValidationError(f"{field} cannot be empty")

        await self.db.commit()
        await self.db.refresh(quiz)
        return quiz

    async def publish(self, quiz_id: UUID) -> Quiz:
        """Freezes max_score from the current question bank."""
        quiz = await self._get_quiz(quiz_id)

        questions = await self.question_bank.list_by_quiz(quiz.id)
        if not questions:
            raise InvalidStateError("Cannot publish quiz without questions")

        quiz.status = QuizStatus.PUBLISHED
        quiz.published_at = self.clock()
        quiz.question_count = len(questions)
        quiz.max_score = sum(q.points for q in questions)

        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Published quiz %s with %s questions, max score %s",
                    quiz.id, quiz.question_count, quiz.max_score)
        self._notify(quiz, "quiz.published")
        return quiz

    async def close(self, quiz_id: UUID) -> Quiz:
        quiz = await self._get_quiz(quiz_id)
        quiz.status = QuizStatus.CLOSED
        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Closed quiz %s", quiz.id)
        self._notify(quiz, "quiz.closed")
        return quiz

    async def reopen(self, quiz_id: UUID, end_at=UNSET) -> Quiz:
        """
        Puts a quiz back to published. Passing `end_at=None` removes the
        end of the window, leaving it out keeps the current one.
        """
        quiz = await self._get_quiz(quiz_id)
        if quiz.status == QuizStatus.DRAFT:
            raise InvalidStateError("Draft quizzes must be published, not reopened")

        if end_at is not UNSET:
            if end_at and quiz.start_at and end_at <= quiz.start_at:
                raise PayloadValidationError("end_at must be after start_at")
            quiz.end_at = end_at

        quiz.status = QuizStatus.PUBLISHED
        await self.db.commit()
        await self.db.refresh(quiz)

        logger.info("Reopened quiz %s until %s", quiz.id, quiz.end_at)
        self._notify(quiz, "quiz.reopened")
        return quiz

    async def delete_quiz(self, quiz_id: UUID) -> None:
        """Soft-deletes the quiz and its questions. Attempts are kept."""
        quiz = await self._get_quiz(quiz_id)
        now = self.clock()

        quiz.deleted_at = now
        for question in await self.question_bank.list_by_quiz(quiz.id):
            question.deleted_at = now

        await self.db.commit()
        logger.info("Deleted quiz %s", quiz.id)

    async def list_submissions(self, quiz_id: UUID) -> List[QuizAttempt]:
        quiz = await self._get_quiz(quiz_id)
        return await self.attempts.list_submissions(quiz.id)

    # --------------------------
    # Question bank
    # --------------------------
    async def list_questions(self, quiz_id: UUID) -> List[Question]:
        quiz = await self._get_quiz(quiz_id)
        return await self.question_bank.list_by_quiz(quiz.id)

    def _new_question(self, quiz: Quiz, q: QuestionCreate, order: int) -> Question:
        fields = build_question_fields(q.type, q.options, q.correct_answer)
        return Question(
            quiz_id=quiz.id,
            type=q.type,
            text=q.text,
            points=q.points,
            order=order,
            explanation=q.explanation,
            **fields,
        )

    async def add_question(self, quiz_id: UUID, question_in: QuestionCreate) -> Question:
        quiz = await self._get_quiz(quiz_id)
        order = await self.question_bank.next_order(quiz.id)

        question = self._new_question(quiz, question_in, order)
        self.db.add(question)
        await self._refresh_question_totals(quiz)

        await self.db.commit()
        await self.db.refresh(question)
        return question

    async def bulk_add_questions(
        self, quiz_id: UUID, questions_in: List[QuestionCreate]
    ) -> List[Question]:
        """
        All-or-nothing: every question is validated before any row is
        written, and the whole batch commits in one transaction.
        """
        quiz = await self._get_quiz(quiz_id)
        order = await self.question_bank.next_order(quiz.id)

        created = []
        for index, q in enumerate(questions_in):
            try:
                created.append(self._new_question(quiz, q, order + index))
            except PayloadValidationError as exc:
                raise PayloadValidationError(f"Question {index + 1}: {exc.message}") from exc

        self.db.add_all(created)
        await self._refresh_question_totals(quiz)
        await self.db.commit()

        for question in created:
            await self.db.refresh(question)
        logger.info("Added %s questions to quiz %s", len(created), quiz.id)
        return created

    async def update_question(self, question_id: UUID, changes: QuestionUpdate) -> Question:
        question = await self._get_question(question_id)
        data = changes.model_dump(exclude_unset=True)

        for field in ("text", "points", "explanation"):
            if field in data:
                if data[field] is None and field != "explanation":
                    raise PayloadValidationError(f"{field} cannot be empty")
                setattr(question, field, data[field])

        if {"type", "options", "correct_answer"} & data.keys():
            q_type = data.get("type") or question.type
            options = data["options"] if data.get("options") is not None else question.options
            correct_answer = data.get("correct_answer", question.correct_answer)
            fields = build_question_fields(q_type, options, correct_answer)
            question.type = q_type
            question.options = fields["options"]
            question.correct_answer = fields["correct_answer"]

        if "points" in data:
            quiz = await self.quizzes.get(question.quiz_id)
            if quiz:
                await self._refresh_question_totals(quiz)

        await self.db.commit()
        await self.db.refresh(question)
        return question

    async def delete_question(self, question_id: UUID) -> None:
        question = await self._get_question(question_id)
        quiz = await self.quizzes.get(question.quiz_id)

        question.deleted_at = self.clock()
        if quiz:
            await self._refresh_question_totals(quiz)
        await self.db.commit()

    async def reorder_questions(self, quiz_id: UUID, question_ids: List[UUID]) -> List[Question]:
        quiz = await self._get_quiz(quiz_id)
        questions = {q.id: q for q in await self.question_bank.list_by_quiz(quiz.id)}

        unknown = [str(qid) for qid in question_ids if qid not in questions]
        if unknown:
            raise PayloadValidationError(f"Questions not in this quiz: {', '.join(unknown)}")

        for position, qid in enumerate(question_ids):
            questions[qid].order = position

        # questions left out of the list keep their relative order, after the listed ones
        listed = set(question_ids)
        rest = sorted((q for qid, q in questions.items() if qid not in listed), key=lambda q: q.order)
        for position, question in enumerate(rest, start=len(question_ids)):
            question.order = position

        await self.db.commit()
        return await self.question_bank.list_by_quiz(quiz.id)
