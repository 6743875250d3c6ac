"""Student profile and admin student-management endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from edupass.auth.dependencies import AdminUser, StudentUser
from edupass.core.pagination import Page, PageParamsDep, paginate
from edupass.core.schemas import MessageResponse

from .dependencies import StudentServiceDep
from .schemas import BlockStatusResponse, FcmTokenUpdate, ProfileUpdate, StudentResponse


router = APIRouter(prefix="/v1/student", tags=["student-profile"])
admin_router = APIRouter(prefix="/v1/admin/students", tags=["admin-students"])


# ==============================================================================
# Student: own profile
# ==============================================================================


@router.get("/profile", response_model=StudentResponse, summary="Get own profile")
async def get_profile(service: StudentServiceDep, student: StudentUser) -> StudentResponse:
    return StudentResponse.from_student(await service.require(student.id))


@router.put("/profile", response_model=StudentResponse, summary="Update own profile")
async def update_profile(
    data: ProfileUpdate,
    service: StudentServiceDep,
    student: StudentUser,
) -> StudentResponse:
    return StudentResponse.from_student(await service.update_profile(student.id, data))


@router.put("/fcmToken", response_model=MessageResponse, summary="Update push token")
async def update_fcm_token(
    data: FcmTokenUpdate,
    service: StudentServiceDep,
    student: StudentUser,
) -> MessageResponse:
    await service.update_fcm_token(student.id, data.fcm_token)
    return MessageResponse(message="FCM token updated")


@router.delete("/deleteAccount", response_model=MessageResponse, summary="Delete own account")
async def delete_account(service: StudentServiceDep, student: StudentUser) -> MessageResponse:
    """Delete the profile, redeemed-code history and favorites."""
    await service.delete_account(student.id)
    return MessageResponse(message="Account deleted")


# ==============================================================================
# Admin: students
# ==============================================================================


@admin_router.get("", response_model=Page[StudentResponse], summary="List students")
async def list_students(
    service: StudentServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
    search: Annotated[str | None, Query(max_length=100)] = None,
) -> Page[StudentResponse]:
    students = await service.list_students(search)
    return paginate([StudentResponse.from_student(s) for s in students], params.page, params.limit)


@admin_router.put(
    "/{student_id}/toggleBlock",
    response_model=BlockStatusResponse,
    summary="Block or unblock a student",
)
async def toggle_block(
    student_id: UUID,
    service: StudentServiceDep,
    _admin: AdminUser,
) -> BlockStatusResponse:
    return BlockStatusResponse(
        student_id=student_id, is_blocked=await service.toggle_block(student_id)
    )


@admin_router.get(
    "/{student_id}/checkBlock",
    response_model=BlockStatusResponse,
    summary="Check whether a student is blocked",
)
async def check_block(
    student_id: UUID,
    service: StudentServiceDep,
    _admin: AdminUser,
) -> BlockStatusResponse:
    return BlockStatusResponse(
        student_id=student_id, is_blocked=await service.is_blocked(student_id)
    )
