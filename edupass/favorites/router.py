"""Student favorites endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from edupass.auth.dependencies import StudentUser
from edupass.core.schemas import MessageResponse
from edupass.questions.schemas import QuestionIndexBody

from .dependencies import FavoriteServiceDep
from .schemas import FavoriteCreate, FavoriteResponse


router = APIRouter(prefix="/v1/student/favorites", tags=["student-favorites"])


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add question to favorites",
)
async def add_favorite(
    data: FavoriteCreate,
    service: FavoriteServiceDep,
    student: StudentUser,
) -> MessageResponse:
    await service.add(student.id, data.question_group_id, data.index)
    return MessageResponse(message="Question added to favorites")


@router.delete(
    "/{question_group_id}",
    response_model=MessageResponse,
    summary="Remove question from favorites",
)
async def remove_favorite(
    question_group_id: UUID,
    data: QuestionIndexBody,
    service: FavoriteServiceDep,
    student: StudentUser,
) -> MessageResponse:
    """Idempotent: removing a missing favorite answers 200 with a message."""
    if await service.remove(student.id, question_group_id, data.index):
        return MessageResponse(message="Question removed from favorites")
    return MessageResponse(message="Favorite not found")


@router.get(
    "",
    response_model=list[FavoriteResponse],
    summary="List favorite questions",
)
async def list_favorites(
    service: FavoriteServiceDep,
    student: StudentUser,
) -> list[FavoriteResponse]:
    return [
        FavoriteResponse.from_favorite(favorite, group)
        for favorite, group in await service.list_favorites(student.id)
    ]
