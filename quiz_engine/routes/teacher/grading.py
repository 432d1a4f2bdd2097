from fastapi import APIRouter, Depends
from uuid import UUID

from quiz_engine.auth.dependencies import is_teacher
from quiz_engine.schemas.quiz_attempt import AttemptRead, GradeAnswerRequest, GradeOverallRequest
from quiz_engine.schemas.user import CurrentUser
from quiz_engine.services.attempt_session import AttemptSessionManager
from quiz_engine.services.dependencies import get_attempt_session_manager, get_grading_service
from quiz_engine.services.grading_service import GradingService

router = APIRouter(
    prefix="/teacher/quiz-grading",
    tags=["Teacher Quiz Grading Endpoints"]
)


@router.post(
    "/grade-answer/{attempt_id}/{question_id}",
    response_model=AttemptRead,
)
async def grade_answer(
    attempt_id: UUID,
    question_id: str,
    payload: GradeAnswerRequest,
    current_user: CurrentUser = Depends(is_teacher),
    grading: GradingService = Depends(get_grading_service),
):
    return await grading.grade_answer(
        attempt_id,
        question_id,
        payload.points_awarded,
        payload.feedback,
        current_user.id,
        current_user.role,
    )


@router.post(
    "/grade-overall/{attempt_id}",
    response_model=AttemptRead,
)
async def grade_overall(
    attempt_id: UUID,
    payload: GradeOverallRequest,
    current_user: CurrentUser = Depends(is_teacher),
    grading: GradingService = Depends(get_grading_service),
):
    return await grading.grade_overall(
        attempt_id,
        payload.score,
        payload.feedback,
        current_user.id,
        current_user.role,
    )


@router.post(
    "/regrade/{attempt_id}",
    response_model=AttemptRead,
)
async def regrade_attempt(
    attempt_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    grading: GradingService = Depends(get_grading_service),
):
    # drops any manual overall score
    return await grading.regrade(attempt_id, current_user.id, current_user.role)


@router.get("/attempt-results/{attempt_id}")
async def get_attempt_results(
    attempt_id: UUID,
    current_user: CurrentUser = Depends(is_teacher),
    sessions: AttemptSessionManager = Depends(get_attempt_session_manager),
):
    return await sessions.get_results(attempt_id, current_user.id, current_user.role)
