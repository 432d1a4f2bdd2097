"""Creates the quiz engine tables on DATABASE_URL. Existing tables are left as they are."""

import asyncio

from quiz_engine.database import engine, Base
from quiz_engine.logging_config import configure_logging

# registers Quiz, Question and QuizAttempt on Base.metadata
from quiz_engine.models import Quiz, Question, QuizAttempt  # noqa: F401

logger = configure_logging()


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

    logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    asyncio.run(create_tables())
