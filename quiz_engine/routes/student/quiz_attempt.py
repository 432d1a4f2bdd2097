from fastapi import APIRouter, Depends, Response
from uuid import UUID

from quiz_engine.auth.dependencies import get_current_user, is_student
from quiz_engine.schemas.quiz_attempt import (
    SaveProgressRequest, SaveProgressResponse,
    StartAttemptResponse, SubmitAttemptRequest,
    AttemptStatusResponse,
)
from quiz_engine.schemas.user import CurrentUser
from quiz_engine.services.attempt_session import AttemptSessionManager
from quiz_engine.services.dependencies import get_attempt_session_manager

router=APIRouter(
    prefix="/student/quiz-attempt",
    tags=["Student Quiz Attempt Endpoints"]
)


@router.post(
    "/start/{quiz_id}",
    response_model=StartAttemptResponse,
)
async def start_attempt(
    quiz_id: UUID,
    response: Response,
    current_user: CurrentUser = Depends(is_student),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    # resuming returns the in-progress attempt unchanged
    result = await sessions.start(quiz_id, current_user.id)
    response.status_code = 201 if result["created"] else 200
    return result


@router.post(
    "/save-progress/{attempt_id}",
    response_model=SaveProgressResponse,
)
async def save_progress(
    attempt_id: UUID,
    payload: SaveProgressRequest,
    current_user: CurrentUser = Depends(is_student),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    return await sessions.save_progress(attempt_id, current_user.id, payload.answers)


@router.post("/submit/{attempt_id}")
async def submit_attempt(
    attempt_id: UUID,
    payload: SubmitAttemptRequest,
    current_user: CurrentUser = Depends(is_student),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    # score fields are left out entirely when the quiz hides results
    return await sessions.submit(
        attempt_id,
        current_user.id,
        answers=payload.answers,
        is_auto_submit=payload.is_auto_submit,
    )


@router.get(
    "/status/{attempt_id}",
    response_model=AttemptStatusResponse,
)
async def get_attempt_status(
    attempt_id: UUID,
    current_user: CurrentUser = Depends(is_student),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    return await sessions.get_status(attempt_id, current_user.id)


@router.get("/results/{attempt_id}")
async def get_my_results(
    attempt_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    return await sessions.get_results(attempt_id, current_user.id, current_user.role)


@router.get("/my-attempts/{quiz_id}")
async def list_my_attempts(
    quiz_id: UUID,
    current_user: CurrentUser = Depends(is_student),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    return await sessions.list_attempts_for_student(quiz_id, current_user.id)
