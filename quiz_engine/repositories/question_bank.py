"""
Ordered question bank of a quiz.

Every query filters out soft-deleted questions here, at the data-access
boundary, so callers can't forget to.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.models import Question


class QuestionBank:

    def __init__(self, db: AsyncSession):
        self.db = db

    def _live(self):
        return select(Question).where(Question.deleted_at.is_(None))

    async def get(self, question_id: UUID) -> Optional[Question]:
        result = await self.db.execute(self._live().where(Question.id == question_id))
        return result.scalar_one_or_none()

    async def list_by_quiz(self, quiz_id: UUID) -> List[Question]:
        result = await self.db.execute(
            self._live()
            .where(Question.quiz_id == quiz_id)
            .order_by(Question.order, Question.created_at)
        )
        return list(result.scalars().all())

    async def count(self, quiz_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Question.id)).where(
                Question.quiz_id == quiz_id,
                Question.deleted_at.is_(None),
            )
        )
        return result.scalar() or 0

    async def next_order(self, quiz_id: UUID) -> int:
        result = await self.db.execute(
            select(func.max(Question.order)).where(
                Question.quiz_id == quiz_id,
                Question.deleted_at.is_(None),
            )
        )
        last_order = result.scalar()
        return 0 if last_order is None else last_order + 1
