from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from quiz_engine.models import AttemptStatus
from quiz_engine.schemas.question import SanitizedQuestion

#for students
class AnswerSubmit(BaseModel):
    question_id: str
    selected_options: List[str] = []
    written_answer: Optional[str] = None


class SaveProgressRequest(BaseModel):
    answers: List[AnswerSubmit]


class SubmitAttemptRequest(BaseModel):
    # None means "grade what was saved last"
    answers: Optional[List[AnswerSubmit]] = None
    is_auto_submit: bool = False


class AnswerRecord(BaseModel):
    question_id: str
    selected_options: List[str] = []
    written_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    points_awarded: Optional[float] = None
    feedback: Optional[str] = None


class AttemptRead(BaseModel):
    id: UUID
    quiz_id: UUID
    student_id: str
    attempt_number: int
    started_at: datetime
    expires_at: datetime
    submitted_at: Optional[datetime]
    status: AttemptStatus
    is_auto_submitted: bool
    is_late: bool
    questions_order: List[str]
    answers: List[AnswerRecord]
    score: Optional[float]
    manual_score: Optional[float]
    max_score: float
    percentage: Optional[int]
    is_passed: Optional[bool]
    graded_by_id: Optional[str]
    graded_at: Optional[datetime]
    grader_feedback: Optional[str]

    model_config = {"from_attributes": True}


class StartAttemptResponse(BaseModel):
    attempt: AttemptRead
    questions: List[SanitizedQuestion]
    time_remaining: int
    created: bool


class SaveProgressResponse(BaseModel):
    saved: bool
    time_remaining: int


class AttemptStatusResponse(BaseModel):
    status: AttemptStatus
    time_remaining: int
    has_expired: bool
    answers: List[AnswerRecord]

#for teachers
class GradeAnswerRequest(BaseModel):
    points_awarded: float = Field(ge=0)
    feedback: Optional[str] = None


class GradeOverallRequest(BaseModel):
    score: float = Field(ge=0)
    feedback: Optional[str] = None
