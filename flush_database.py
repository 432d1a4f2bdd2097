"""
Drops and recreates every quiz engine table. All quizzes, questions and
attempts are lost, so the script asks first unless run with --yes.
"""

import asyncio
import sys

from quiz_engine.database import engine, Base
from quiz_engine.logging_config import configure_logging

# registers Quiz, Question and QuizAttempt on Base.metadata
from quiz_engine.models import Quiz, Question, QuizAttempt  # noqa: F401

logger = configure_logging()


async def flush_database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("Dropped tables")

        await conn.run_sync(Base.metadata.create_all)
        logger.info("Recreated tables: %s", ", ".join(sorted(Base.metadata.tables)))
    await engine.dispose()


if __name__ == "__main__":
    if "--yes" not in sys.argv[1:]:
        reply = input(f"Wipe every quiz table on {engine.url.render_as_string(hide_password=True)}? [y/N] ")
        if reply.strip().lower() != "y":
            sys.exit("Aborted")
    asyncio.run(flush_database())
