from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quiz_engine.database import get_db
from quiz_engine.services.attempt_session import AttemptSessionManager
from quiz_engine.services.grading_service import GradingService
from quiz_engine.services.notifications import LoggingNotificationPort, NotificationPort
from quiz_engine.services.quiz_service import QuizService


_notifier = LoggingNotificationPort()


def get_notifier() -> NotificationPort:
    return _notifier


def get_attempt_session_manager(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
) -> AttemptSessionManager:
    return AttemptSessionManager(db, notifier=notifier)


def get_grading_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
) -> GradingService:
    return GradingService(db, notifier=notifier)


def get_quiz_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
) -> QuizService:
    return QuizService(db, notifier=notifier)
