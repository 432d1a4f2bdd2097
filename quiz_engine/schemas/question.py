from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID

from quiz_engine.models import QuestionType


class QuestionOptionCreate(BaseModel):
    id: Optional[str] = None
    text: str = Field(min_length=1)
    is_correct: bool = False


class QuestionCreate(BaseModel):
    type: QuestionType
    text: str = Field(min_length=1)
    options: List[QuestionOptionCreate] = []
    correct_answer: Optional[str] = None
    points: float = Field(default=1, ge=0)
    explanation: Optional[str] = None


class QuestionBulkCreate(BaseModel):
    questions: List[QuestionCreate] = Field(min_length=1)


class QuestionUpdate(BaseModel):
    type: Optional[QuestionType] = None
    text: Optional[str] = Field(default=None, min_length=1)
    options: Optional[List[QuestionOptionCreate]] = None
    correct_answer: Optional[str] = None
    points: Optional[float] = Field(default=None, ge=0)
    explanation: Optional[str] = None


class QuestionReorder(BaseModel):
    question_ids: List[UUID]


class QuestionOptionView(BaseModel):
    id: str
    text: str
    is_correct: bool = False


class QuestionRead(BaseModel):
    id: UUID
    quiz_id: UUID
    type: QuestionType
    text: str
    options: List[QuestionOptionView]
    correct_answer: Optional[str]
    points: float
    order: int
    explanation: Optional[str]

    model_config = {"from_attributes": True}


#Question as shown to a student taking the quiz

class SanitizedOption(BaseModel):
    id: str
    text: str


class SanitizedQuestion(BaseModel):
    id: UUID
    type: QuestionType
    text: str
    options: List[SanitizedOption]
    points: float
    order: int
