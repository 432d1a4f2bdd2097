import uuid
import enum
from datetime import datetime
from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Float, Enum, Text, JSON, Uuid,
    Index, UniqueConstraint, text,
)

from quiz_engine.database import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# ---------------------------
# Role Enum (identity comes from the auth collaborator)
# ---------------------------
class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"
    TEACHER = "teacher"


class QuizStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class QuestionType(str, enum.Enum):
    MCQ_SINGLE = "mcq_single"
    MCQ_MULTIPLE = "mcq_multiple"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    LONG_ANSWER = "long_answer"


OPTION_BASED_TYPES = (
    QuestionType.MCQ_SINGLE,
    QuestionType.MCQ_MULTIPLE,
    QuestionType.TRUE_FALSE,
)


class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"
    TIMED_OUT = "timed_out"


# ---------------------------
# Quiz Model
# ---------------------------
class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(String(64), nullable=True, index=True)
    created_by_id = Column(String(64), nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)

    duration = Column(Integer, nullable=False)  # minutes
    max_attempts = Column(Integer, nullable=False, default=1)
    max_score = Column(Float, nullable=False, default=0)
    passing_score = Column(Float, nullable=False, default=0)

    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)
    allow_late_submissions = Column(Boolean, nullable=False, default=False)

    shuffle_questions = Column(Boolean, nullable=False, default=False)
    shuffle_options = Column(Boolean, nullable=False, default=False)
    show_results_after_submit = Column(Boolean, nullable=False, default=True)
    show_correct_answers = Column(Boolean, nullable=False, default=False)
    allow_review_after_submit = Column(Boolean, nullable=False, default=True)

    status = Column(
        Enum(QuizStatus, name="quiz_status_enum", values_callable=_enum_values),
        nullable=False,
        default=QuizStatus.DRAFT,
    )
    published_at = Column(DateTime, nullable=True)
    question_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_quizzes_workspace_status", "workspace_id", "status"),
    )


# ---------------------------
# Question Model
# ---------------------------
class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, nullable=False, index=True)

    type = Column(
        Enum(QuestionType, name="question_type_enum", values_callable=_enum_values),
        nullable=False,
    )
    text = Column(Text, nullable=False)
    # [{"id": str, "text": str, "is_correct": bool}]
    options = Column(JSON, nullable=False, default=list)
    correct_answer = Column(Text, nullable=True)
    points = Column(Float, nullable=False, default=1)
    order = Column(Integer, nullable=False, default=0)
    explanation = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_questions_quiz_order", "quiz_id", "order"),
    )


# ---------------------------
# Quiz Attempt Model
# ---------------------------
class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False, default=1)

    started_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    status = Column(
        Enum(AttemptStatus, name="attempt_status_enum", values_callable=_enum_values),
        nullable=False,
        default=AttemptStatus.IN_PROGRESS,
    )
    is_auto_submitted = Column(Boolean, nullable=False, default=False)
    is_late = Column(Boolean, nullable=False, default=False)

    # snapshot of question ids, fixed for the attempt's lifetime
    questions_order = Column(JSON, nullable=False, default=list)
    # {question_id: [option_id, ...]} when the quiz shuffles options
    option_orders = Column(JSON, nullable=False, default=dict)
    # [{"question_id", "selected_options", "written_answer",
    #   "is_correct", "points_awarded", "feedback"}]
    answers = Column(JSON, nullable=False, default=list)

    score = Column(Float, nullable=True)
    manual_score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=False, default=0)
    percentage = Column(Integer, nullable=True)
    is_passed = Column(Boolean, nullable=True)

    graded_by_id = Column(String(64), nullable=True)
    graded_at = Column(DateTime, nullable=True)
    grader_feedback = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "student_id", "attempt_number",
            name="unique_attempt_number",
        ),
        # at most one in-progress attempt per (quiz, student)
        Index(
            "unique_in_progress_attempt",
            "quiz_id",
            "student_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
        Index("ix_quiz_attempts_status_expires", "status", "expires_at"),
    )
