"""Data access for quiz attempts. Attempts are never deleted."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.models import QuizAttempt, AttemptStatus


FINISHED_STATUSES = (
    AttemptStatus.SUBMITTED,
    AttemptStatus.GRADED,
    AttemptStatus.TIMED_OUT,
)


class AttemptRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, attempt_id: UUID, student_id: Optional[str] = None) -> Optional[QuizAttempt]:
        """
        Loads an attempt, optionally scoped to its owner.
        Always re-reads the row so retries see the latest committed version.
        """
        stmt = select(QuizAttempt).where(QuizAttempt.id == attempt_id)
        if student_id is not None:
            stmt = stmt.where(QuizAttempt.student_id == student_id)
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def find_in_progress(self, quiz_id: UUID, student_id: str) -> Optional[QuizAttempt]:
        result = await self.db.execute(
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.student_id == student_id,
                QuizAttempt.status == AttemptStatus.IN_PROGRESS,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def count_for_student(self, quiz_id: UUID, student_id: str) -> int:
        result = await self.db.execute(
            select(func.count(QuizAttempt.id)).where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.student_id == student_id,
            )
        )
        return result.scalar() or 0

    async def list_for_student(self, quiz_id: UUID, student_id: str) -> List[QuizAttempt]:
        result = await self.db.execute(
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.student_id == student_id,
            )
            .order_by(QuizAttempt.attempt_number.desc())
        )
        return list(result.scalars().all())

    async def list_submissions(self, quiz_id: UUID) -> List[QuizAttempt]:
        result = await self.db.execute(
            select(QuizAttempt)
            .where(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.status.in_(FINISHED_STATUSES),
            )
            .order_by(QuizAttempt.submitted_at.desc())
        )
        return list(result.scalars().all())

    def add(self, attempt: QuizAttempt) -> None:
        self.db.add(attempt)
