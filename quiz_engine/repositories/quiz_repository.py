"""Data access for quizzes. Soft-deleted quizzes are never returned."""

from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.models import Quiz, QuizStatus, QuizAttempt, AttemptStatus


SUBMITTED_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.GRADED)


class QuizRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    def _live(self):
        return select(Quiz).where(Quiz.deleted_at.is_(None))

    async def get(self, quiz_id: UUID) -> Optional[Quiz]:
        result = await self.db.execute(self._live().where(Quiz.id == quiz_id))
        return result.scalar_one_or_none()

    async def list_by_workspace(
        self, workspace_id: str, status: Optional[QuizStatus] = None
    ) -> List[Quiz]:
        stmt = self._live().where(Quiz.workspace_id == workspace_id)
        if status:
            stmt = stmt.where(Quiz.status == status)
        result = await self.db.execute(stmt.order_by(Quiz.created_at.desc()))
        return list(result.scalars().all())

    async def attempt_counts(self, quiz_ids: List[UUID]) -> Dict[UUID, Dict[str, int]]:
        """Total and submitted attempt counts per quiz."""
        counts = {quiz_id: {"attempt_count": 0, "submitted_count": 0} for quiz_id in quiz_ids}
        if not quiz_ids:
            return counts

        result = await self.db.execute(
            select(QuizAttempt.quiz_id, QuizAttempt.status, func.count(QuizAttempt.id))
            .where(QuizAttempt.quiz_id.in_(quiz_ids))
            .group_by(QuizAttempt.quiz_id, QuizAttempt.status)
        )
        for quiz_id, status, count in result.all():
            counts[quiz_id]["attempt_count"] += count
            if status in SUBMITTED_STATUSES:
                counts[quiz_id]["submitted_count"] += count
        return counts
