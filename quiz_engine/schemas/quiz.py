from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from quiz_engine.helpers.time_utils import to_naive_utc
from quiz_engine.models import QuizStatus
from quiz_engine.schemas.question import QuestionRead


class QuizCreate(BaseModel):
    workspace_id: Optional[str] = None
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    duration: int = Field(ge=1, description="Minutes")
    max_attempts: int = Field(default=1, ge=1)
    passing_score: float = Field(default=0, ge=0, le=100)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    allow_late_submissions: bool = False
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_results_after_submit: bool = True
    show_correct_answers: bool = False
    allow_review_after_submit: bool = True

    @field_validator("start_at", "end_at")
    @classmethod
    def _naive_utc(cls, value):
        return to_naive_utc(value)

    @model_validator(mode="after")
    def _window_order(self):
        if self.start_at and self.end_at and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1)
    max_attempts: Optional[int] = Field(default=None, ge=1)
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    allow_late_submissions: Optional[bool] = None
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    show_results_after_submit: Optional[bool] = None
    show_correct_answers: Optional[bool] = None
    allow_review_after_submit: Optional[bool] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def _naive_utc(cls, value):
        return to_naive_utc(value)


class QuizReopen(BaseModel):
    end_at: Optional[datetime] = None

    @field_validator("end_at")
    @classmethod
    def _naive_utc(cls, value):
        return to_naive_utc(value)


class QuizRead(BaseModel):
    id: UUID
    workspace_id: Optional[str]
    created_by_id: str
    title: str
    description: Optional[str]
    instructions: Optional[str]
    duration: int
    max_attempts: int
    max_score: float
    passing_score: float
    start_at: Optional[datetime]
    end_at: Optional[datetime]
    allow_late_submissions: bool
    shuffle_questions: bool
    shuffle_options: bool
    show_results_after_submit: bool
    show_correct_answers: bool
    allow_review_after_submit: bool
    status: QuizStatus
    published_at: Optional[datetime]
    question_count: int
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class QuizListItem(QuizRead):
    attempt_count: int = 0
    submitted_count: int = 0


class QuizDetailView(QuizRead):
    questions: List[QuestionRead]
