"""Student endpoints for paid content."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from edupass.auth.dependencies import StudentUser
from edupass.catalog.schemas import MaterialResponse
from edupass.core.pagination import Page, PageParamsDep
from edupass.courses.schemas import CourseFilesResponse, CourseResponse, VideoResponse
from edupass.questions.schemas import QuestionGroupResponse

from .dependencies import PaidContentServiceDep


router = APIRouter(prefix="/v1/student", tags=["student-content"])


@router.get(
    "/accessibleMaterials",
    response_model=Page[MaterialResponse],
    summary="Materials unlocked by redeemed codes",
)
async def accessible_materials(
    service: PaidContentServiceDep,
    params: PageParamsDep,
    student: StudentUser,
) -> Page[MaterialResponse]:
    return await service.accessible_materials(student.id, params.page, params.limit)


@router.get(
    "/questions",
    response_model=Page[QuestionGroupResponse],
    summary="Question groups of a lesson",
)
async def list_questions(
    lesson_id: Annotated[UUID, Query(alias="lesson")],
    service: PaidContentServiceDep,
    params: PageParamsDep,
    student: StudentUser,
) -> Page[QuestionGroupResponse]:
    return await service.questions_by_lesson(student.id, lesson_id, params.page, params.limit)


@router.get(
    "/question",
    response_model=QuestionGroupResponse,
    summary="One question of a group",
)
async def get_question(
    question_group_id: Annotated[UUID, Query(alias="questionGroupId")],
    question_index: Annotated[int, Query(alias="questionIndex")],
    service: PaidContentServiceDep,
    student: StudentUser,
) -> QuestionGroupResponse:
    return await service.question_detail(student.id, question_group_id, question_index)


@router.get(
    "/courses",
    response_model=Page[CourseResponse],
    summary="Courses of a material",
)
async def list_courses(
    material_id: Annotated[UUID, Query(alias="material")],
    service: PaidContentServiceDep,
    params: PageParamsDep,
    student: StudentUser,
) -> Page[CourseResponse]:
    return await service.courses_by_material(student.id, material_id, params.page, params.limit)


@router.get(
    "/videos",
    response_model=Page[VideoResponse],
    summary="Videos of a course",
)
async def list_videos(
    course_id: Annotated[UUID, Query(alias="course")],
    service: PaidContentServiceDep,
    params: PageParamsDep,
    student: StudentUser,
    unit_id: Annotated[UUID | None, Query(alias="unit")] = None,
) -> Page[VideoResponse]:
    return await service.videos_by_course(
        student.id, course_id, params.page, params.limit, unit_id=unit_id
    )


@router.get(
    "/courseFiles/{course_id}",
    response_model=CourseFilesResponse,
    summary="Files of a course",
)
async def list_course_files(
    course_id: UUID,
    service: PaidContentServiceDep,
    student: StudentUser,
) -> CourseFilesResponse:
    """Always lists the files; ``accessUrl`` is null without access."""
    return await service.course_files(student.id, course_id)
