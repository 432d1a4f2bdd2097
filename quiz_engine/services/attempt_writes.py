import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from quiz_engine.errors import ConflictError
from quiz_engine.models import QuizAttempt

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def write_attempt(
    db: AsyncSession,
    load: Callable[[], Awaitable[QuizAttempt]],
    mutate: Callable[[QuizAttempt], T],
    retries: int,
) -> T:
    """
    Read-modify-write of one attempt row guarded by its version column.

    `load` re-reads the attempt (and raises if it is gone or no longer in an
    acceptable state), `mutate` applies the change in memory. A stale write
    rolls back and starts over from a fresh read. The rollback expires every
    instance in the session, so `load` must also re-read anything else
    `mutate` touches.
    """
    for try_number in range(1, retries + 1):
        attempt = await load()
        attempt_id = attempt.id
        result = mutate(attempt)
        try:
            await db.commit()
            return result
        except StaleDataError:
            await db.rollback()
            logger.warning(
                "Attempt %s changed concurrently (try %s/%s), re-reading",
                attempt_id, try_number, retries,
            )

    raise ConflictError("The attempt was modified concurrently, please retry")
