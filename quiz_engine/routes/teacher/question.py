from fastapi import APIRouter, Depends
from typing import List
from uuid import UUID

from quiz_engine.auth.dependencies import is_teacher
from quiz_engine.schemas.question import (
    QuestionBulkCreate, QuestionCreate, QuestionRead, QuestionReorder, QuestionUpdate,
)
from quiz_engine.schemas.user import CurrentUser
from quiz_engine.services.dependencies import get_quiz_service
from quiz_engine.services.quiz_service import QuizService

router = APIRouter(
    prefix="/teacher/question",
    tags=["Teacher Question Endpoints"]
)


@router.post(
    "/create-question/{quiz_id}",
    response_model=QuestionRead,
    status_code=201
)
async def create_question(
    quiz_id: UUID,
    question_in: QuestionCreate,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.add_question(quiz_id, question_in)


@router.post(
    "/bulk-create/{quiz_id}",
    response_model=List[QuestionRead],
    status_code=201
)
async def bulk_create_questions(
    quiz_id: UUID,
    payload: QuestionBulkCreate,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    # nothing is stored if any question is invalid
    return await quizzes.bulk_add_questions(quiz_id, payload.questions)


@router.get(
    "/list-questions/{quiz_id}",
    response_model=List[QuestionRead],
)
async def list_questions(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.list_questions(quiz_id)


@router.patch(
    "/update-question/{question_id}",
    response_model=QuestionRead,
)
async def update_question(
    question_id: UUID,
    question_in: QuestionUpdate,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.update_question(question_id, question_in)


@router.delete(
    "/delete-question/{question_id}",
    status_code=204
)
async def delete_question(
    question_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    await quizzes.delete_question(question_id)
    return None


@router.post(
    "/reorder/{quiz_id}",
    response_model=List[QuestionRead],
)
async def reorder_questions(
    quiz_id: UUID,
    payload: QuestionReorder,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.reorder_questions(quiz_id, payload.question_ids)
