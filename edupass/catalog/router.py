"""Catalog endpoints: admin CRUD and student browsing."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from edupass.auth.dependencies import AdminUser, StudentUser
from edupass.core.pagination import Page, PageParamsDep, paginate
from edupass.core.schemas import MessageResponse

from .dependencies import (
    LessonServiceDep,
    MaterialServiceDep,
    TeacherServiceDep,
    UnitServiceDep,
)
from .schemas import (
    LessonCreate,
    LessonResponse,
    LessonUpdate,
    MaterialCreate,
    MaterialResponse,
    MaterialUpdate,
    TeacherCreate,
    TeacherResponse,
    UnitCreate,
    UnitResponse,
)
from .service import LessonService, UnitService


admin_router = APIRouter(prefix="/v1/admin", tags=["admin-catalog"])
student_router = APIRouter(prefix="/v1/student", tags=["student-catalog"])

MaterialQuery = Annotated[UUID, Query(alias="material")]
UnitQuery = Annotated[UUID, Query(alias="unit")]


async def _units_page(
    units: UnitService, lessons: LessonService, material_id: UUID, page: int, limit: int
) -> Page[UnitResponse]:
    items = [
        UnitResponse.from_unit(unit, await lessons.count_by_unit(unit.id))
        for unit in await units.list_by_material(material_id)
    ]
    return paginate(items, page, limit)


async def _lessons_page(
    lessons: LessonService, unit_id: UUID, page: int, limit: int
) -> Page[LessonResponse]:
    items = [LessonResponse.from_lesson(lesson) for lesson in await lessons.list_by_unit(unit_id)]
    return paginate(items, page, limit)


# ==============================================================================
# Admin: materials
# ==============================================================================


@admin_router.post(
    "/materials",
    response_model=MaterialResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create material",
)
async def create_material(
    data: MaterialCreate, service: MaterialServiceDep, _admin: AdminUser
) -> MaterialResponse:
    return MaterialResponse.from_material(await service.create(data))


@admin_router.get("/materials", response_model=list[MaterialResponse], summary="List materials")
async def admin_list_materials(
    service: MaterialServiceDep, _admin: AdminUser
) -> list[MaterialResponse]:
    return [MaterialResponse.from_material(m) for m in await service.list_all()]


@admin_router.get(
    "/materials/{material_id}", response_model=MaterialResponse, summary="Get material"
)
async def get_material(
    material_id: UUID, service: MaterialServiceDep, _admin: AdminUser
) -> MaterialResponse:
    return MaterialResponse.from_material(await service.require(material_id))


@admin_router.put(
    "/materials/{material_id}", response_model=MaterialResponse, summary="Update material"
)
async def update_material(
    material_id: UUID, data: MaterialUpdate, service: MaterialServiceDep, _admin: AdminUser
) -> MaterialResponse:
    return MaterialResponse.from_material(await service.update(material_id, data))


@admin_router.delete(
    "/materials/{material_id}", response_model=MessageResponse, summary="Delete material"
)
async def delete_material(
    material_id: UUID, service: MaterialServiceDep, _admin: AdminUser
) -> MessageResponse:
    await service.delete(material_id)
    return MessageResponse(message="Material deleted")


# ==============================================================================
# Admin: units and lessons
# ==============================================================================


@admin_router.post(
    "/units",
    response_model=UnitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create unit",
)
async def create_unit(data: UnitCreate, service: UnitServiceDep, _admin: AdminUser) -> UnitResponse:
    return UnitResponse.from_unit(await service.create(data), lesson_count=0)


@admin_router.get("/units", response_model=Page[UnitResponse], summary="List units of a material")
async def admin_list_units(
    material_id: MaterialQuery,
    units: UnitServiceDep,
    lessons: LessonServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
) -> Page[UnitResponse]:
    return await _units_page(units, lessons, material_id, params.page, params.limit)


@admin_router.delete("/units/{unit_id}", response_model=MessageResponse, summary="Delete unit")
async def delete_unit(unit_id: UUID, service: UnitServiceDep, _admin: AdminUser) -> MessageResponse:
    await service.delete(unit_id)
    return MessageResponse(message="Unit deleted")


@admin_router.post(
    "/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create lesson",
)
async def create_lesson(
    data: LessonCreate, service: LessonServiceDep, _admin: AdminUser
) -> LessonResponse:
    return LessonResponse.from_lesson(await service.create(data))


@admin_router.get("/lessons", response_model=Page[LessonResponse], summary="List lessons of a unit")
async def admin_list_lessons(
    unit_id: UnitQuery,
    service: LessonServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
) -> Page[LessonResponse]:
    return await _lessons_page(service, unit_id, params.page, params.limit)


@admin_router.put("/lessons/{lesson_id}", response_model=LessonResponse, summary="Update lesson")
async def update_lesson(
    lesson_id: UUID, data: LessonUpdate, service: LessonServiceDep, _admin: AdminUser
) -> LessonResponse:
    return LessonResponse.from_lesson(await service.update(lesson_id, data))


@admin_router.delete(
    "/lessons/{lesson_id}", response_model=MessageResponse, summary="Delete lesson"
)
async def delete_lesson(
    lesson_id: UUID, service: LessonServiceDep, _admin: AdminUser
) -> MessageResponse:
    await service.delete(lesson_id)
    return MessageResponse(message="Lesson deleted")


# ==============================================================================
# Admin: teachers
# ==============================================================================


@admin_router.post(
    "/teachers",
    response_model=TeacherResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create teacher",
)
async def create_teacher(
    data: TeacherCreate, service: TeacherServiceDep, _admin: AdminUser
) -> TeacherResponse:
    return TeacherResponse.from_teacher(await service.create(data))


@admin_router.get("/teachers", response_model=list[TeacherResponse], summary="List teachers")
async def list_teachers(service: TeacherServiceDep, _admin: AdminUser) -> list[TeacherResponse]:
    return [TeacherResponse.from_teacher(t) for t in await service.list_all()]


@admin_router.delete(
    "/teachers/{teacher_id}", response_model=MessageResponse, summary="Delete teacher"
)
async def delete_teacher(
    teacher_id: UUID, service: TeacherServiceDep, _admin: AdminUser
) -> MessageResponse:
    await service.delete(teacher_id)
    return MessageResponse(message="Teacher deleted")


# ==============================================================================
# Student: browsing (not gated)
# ==============================================================================


@student_router.get("/materials", response_model=list[MaterialResponse], summary="All materials")
async def list_materials(
    service: MaterialServiceDep, _student: StudentUser
) -> list[MaterialResponse]:
    return [MaterialResponse.from_material(m) for m in await service.list_all()]


@student_router.get("/units", response_model=Page[UnitResponse], summary="Units of a material")
async def list_units(
    material_id: MaterialQuery,
    units: UnitServiceDep,
    lessons: LessonServiceDep,
    params: PageParamsDep,
    _student: StudentUser,
) -> Page[UnitResponse]:
    await units.materials.require(material_id)
    return await _units_page(units, lessons, material_id, params.page, params.limit)


@student_router.get("/lessons", response_model=Page[LessonResponse], summary="Lessons of a unit")
async def list_lessons(
    unit_id: UnitQuery,
    service: LessonServiceDep,
    params: PageParamsDep,
    _student: StudentUser,
) -> Page[LessonResponse]:
    await service.units.require(unit_id)
    return await _lessons_page(service, unit_id, params.page, params.limit)
