import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from quiz_engine.database import Base
from quiz_engine.schemas.question import QuestionCreate
from quiz_engine.schemas.quiz import QuizCreate
from quiz_engine.services.quiz_service import QuizService


T0 = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def emit_workspace(self, workspace_id, event, payload):
        self.events.append((workspace_id, event, payload))


class BrokenNotifier:
    def emit_workspace(self, workspace_id, event, payload):
        raise RuntimeError("socket gateway down")


def mcq(text="Pick one", correct="a", points=1):
    return {
        "type": "mcq_single",
        "text": text,
        "points": points,
        "options": [
            {"id": "a", "text": "Alpha", "is_correct": correct == "a"},
            {"id": "b", "text": "Beta", "is_correct": correct == "b"},
            {"id": "c", "text": "Gamma", "is_correct": correct == "c"},
        ],
    }


def mcq_multiple(text="Pick all", correct=("a", "c"), points=2):
    return {
        "type": "mcq_multiple",
        "text": text,
        "points": points,
        "options": [
            {"id": opt, "text": opt.upper(), "is_correct": opt in correct}
            for opt in ("a", "b", "c", "d")
        ],
    }


def true_false(text="The sky is blue", correct="t", points=1):
    return {
        "type": "true_false",
        "text": text,
        "points": points,
        "options": [
            {"id": "t", "text": "True", "is_correct": correct == "t"},
            {"id": "f", "text": "False", "is_correct": correct == "f"},
        ],
    }


def short_answer(text="Capital of France?", correct_answer="Paris", points=1):
    return {
        "type": "short_answer",
        "text": text,
        "points": points,
        "correct_answer": correct_answer,
    }


def long_answer(text="Explain photosynthesis", points=5):
    return {"type": "long_answer", "text": text, "points": points}


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'quiz_engine.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def quiz_factory(db, clock):
    """Creates a quiz with questions, published unless told otherwise."""

    async def factory(questions=None, publish=True, **settings):
        service = QuizService(db, clock=clock)
        data = {"title": "Unit quiz", "duration": 30, "workspace_id": "ws-1"}
        data.update(settings)
        quiz = await service.create_quiz(QuizCreate(**data), creator_id="teacher-1")

        items = questions if questions is not None else [mcq(), mcq(), mcq()]
        created = []
        if items:
            created = await service.bulk_add_questions(
                quiz.id, [QuestionCreate(**q) for q in items]
            )
        if publish:
            quiz = await service.publish(quiz.id)
        return quiz, created

    return factory
