from fastapi import APIRouter, Depends
from typing import List, Optional
from uuid import UUID

from quiz_engine.auth.dependencies import is_teacher
from quiz_engine.models import QuizStatus
from quiz_engine.schemas.quiz import (
    QuizCreate, QuizDetailView, QuizListItem, QuizRead, QuizReopen, QuizUpdate,
)
from quiz_engine.schemas.quiz_attempt import AttemptRead
from quiz_engine.schemas.user import CurrentUser
from quiz_engine.services.dependencies import get_quiz_service
from quiz_engine.services.quiz_service import QuizService, UNSET

router = APIRouter(
    prefix="/teacher/quiz",
    tags=["Teacher Quiz Endpoints"]
)


@router.post(
    "/create-quiz",
    response_model=QuizRead,
    status_code=201
)
async def create_quiz(
    quiz_in: QuizCreate,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.create_quiz(quiz_in, current_user.id)


@router.patch(
    "/update-quiz/{quiz_id}",
    response_model=QuizRead,
)
async def update_quiz(
    quiz_id: UUID,
    quiz_in: QuizUpdate,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.update_quiz(quiz_id, quiz_in)


@router.delete(
    "/delete-quiz/{quiz_id}",
    status_code=204
)
async def delete_quiz(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    await quizzes.delete_quiz(quiz_id)
    return None


@router.post(
    "/publish-quiz/{quiz_id}",
    response_model=QuizRead,
)
async def publish_quiz(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.publish(quiz_id)


@router.post(
    "/close-quiz/{quiz_id}",
    response_model=QuizRead,
)
async def close_quiz(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.close(quiz_id)


@router.post(
    "/reopen-quiz/{quiz_id}",
    response_model=QuizRead,
)
async def reopen_quiz(
    quiz_id: UUID,
    payload: QuizReopen,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    # an explicit null end_at clears the window end
    end_at = payload.end_at if "end_at" in payload.model_fields_set else UNSET
    return await quizzes.reopen(quiz_id, end_at=end_at)


@router.get(
    "/quiz-details/{quiz_id}",
    response_model=QuizDetailView,
)
async def get_quiz_details_teacher(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    quiz, questions = await quizzes.get_quiz(quiz_id)
    return QuizDetailView(
        **QuizRead.model_validate(quiz).model_dump(),
        questions=questions,
    )


@router.get(
    "/list-quizzes/{workspace_id}",
    response_model=List[QuizListItem],
)
async def list_quizzes(
    workspace_id: str,
    status: Optional[QuizStatus] = None,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.list_quizzes(workspace_id, status)


@router.get(
    "/list-submissions/{quiz_id}",
    response_model=List[AttemptRead],
)
async def list_quiz_submissions(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    quizzes: QuizService = Depends(get_quiz_service),
):
    return await quizzes.list_submissions(quiz_id)
