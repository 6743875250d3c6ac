"""Question group administration and the free-question tier."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from edupass.auth.dependencies import AdminUser, StudentUser
from edupass.config import get_settings
from edupass.core.pagination import Page, PageParamsDep, paginate
from edupass.storage.schemas import DeletionReport

from .dependencies import FreeQuestionServiceDep, QuestionGroupServiceDep
from .schemas import (
    FreeQuestionGroupResponse,
    FreeQuestionsResponse,
    QuestionGroupCreate,
    QuestionGroupResponse,
    QuestionGroupUpdate,
    QuestionIndexBody,
    QuestionUpdate,
    RegenerateFreeQuestionsRequest,
    RegenerateFreeQuestionsResponse,
)


admin_router = APIRouter(prefix="/v1/admin", tags=["admin-questions"])
student_router = APIRouter(prefix="/v1/student", tags=["student-questions"])


# ==============================================================================
# Admin: question groups
# ==============================================================================


@admin_router.post(
    "/questionGroups",
    response_model=QuestionGroupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create question group",
)
async def create_question_group(
    data: QuestionGroupCreate, service: QuestionGroupServiceDep, _admin: AdminUser
) -> QuestionGroupResponse:
    """Every question needs text, two or more choices and a correct choice."""
    return QuestionGroupResponse.from_group(await service.create(data))


@admin_router.get(
    "/questionGroups",
    response_model=Page[QuestionGroupResponse],
    summary="List question groups of a lesson",
)
async def admin_list_question_groups(
    lesson_id: Annotated[UUID, Query(alias="lesson")],
    service: QuestionGroupServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
) -> Page[QuestionGroupResponse]:
    groups = await service.list_by_lesson(lesson_id)
    return paginate(
        [QuestionGroupResponse.from_group(g) for g in groups], params.page, params.limit
    )


@admin_router.get(
    "/questionGroups/{group_id}",
    response_model=QuestionGroupResponse,
    summary="Get question group",
)
async def get_question_group(
    group_id: UUID, service: QuestionGroupServiceDep, _admin: AdminUser
) -> QuestionGroupResponse:
    return QuestionGroupResponse.from_group(await service.require(group_id))


@admin_router.put(
    "/questionGroups/{group_id}",
    response_model=QuestionGroupResponse,
    summary="Update question group",
)
async def update_question_group(
    group_id: UUID,
    data: QuestionGroupUpdate,
    service: QuestionGroupServiceDep,
    _admin: AdminUser,
) -> QuestionGroupResponse:
    return QuestionGroupResponse.from_group(await service.update(group_id, data))


@admin_router.put(
    "/questionGroups/{group_id}/question",
    response_model=QuestionGroupResponse,
    summary="Replace one question by index",
)
async def update_question(
    group_id: UUID,
    data: QuestionUpdate,
    service: QuestionGroupServiceDep,
    _admin: AdminUser,
) -> QuestionGroupResponse:
    group = await service.update_question(group_id, data.index, data.question)
    return QuestionGroupResponse.from_group(group)


@admin_router.delete(
    "/questionGroups/{group_id}/question",
    response_model=DeletionReport,
    summary="Delete one question by index",
)
async def delete_question(
    group_id: UUID,
    data: QuestionIndexBody,
    service: QuestionGroupServiceDep,
    _admin: AdminUser,
) -> DeletionReport:
    """Later questions shift down; existing favorites keep their index."""
    _, results = await service.delete_question(group_id, data.index)
    return DeletionReport.from_results("Question deleted", results)


@admin_router.delete(
    "/questionGroups/{group_id}",
    response_model=DeletionReport,
    summary="Delete question group",
)
async def delete_question_group(
    group_id: UUID, service: QuestionGroupServiceDep, _admin: AdminUser
) -> DeletionReport:
    results = await service.delete(group_id)
    return DeletionReport.from_results("Question group deleted", results)


# ==============================================================================
# Free questions
# ==============================================================================


@admin_router.post(
    "/changeFreeQuestions",
    response_model=RegenerateFreeQuestionsResponse,
    summary="Regenerate the free-question sample",
)
async def change_free_questions(
    data: RegenerateFreeQuestionsRequest,
    service: FreeQuestionServiceDep,
    _admin: AdminUser,
) -> RegenerateFreeQuestionsResponse:
    created, lessons_sampled = await service.regenerate(data.num_of_groups)
    return RegenerateFreeQuestionsResponse(
        message="Free questions regenerated",
        groups_created=created,
        lessons_sampled=lessons_sampled,
    )


@student_router.get(
    "/freeQuestions",
    response_model=FreeQuestionsResponse,
    summary="Random free questions of a lesson",
)
async def list_free_questions(
    lesson_id: Annotated[UUID, Query(alias="lesson")],
    service: FreeQuestionServiceDep,
    _student: StudentUser,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> FreeQuestionsResponse:
    settings = get_settings()
    limit = min(limit or settings.free_questions_default_limit, settings.pagination_max_limit)
    groups = await service.sample(lesson_id, limit)
    return FreeQuestionsResponse(
        docs=[FreeQuestionGroupResponse.from_free_group(g) for g in groups],
        limit=limit,
        total=len(groups),
    )
