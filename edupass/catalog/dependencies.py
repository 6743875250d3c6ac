"""FastAPI dependencies for catalog services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import LessonService, MaterialService, TeacherService, UnitService


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog service not available",
        )
    return service


async def get_material_service(request: Request) -> MaterialService:
    return _from_state(request, "material_service")


async def get_unit_service(request: Request) -> UnitService:
    return _from_state(request, "unit_service")


async def get_lesson_service(request: Request) -> LessonService:
    return _from_state(request, "lesson_service")


async def get_teacher_service(request: Request) -> TeacherService:
    return _from_state(request, "teacher_service")


MaterialServiceDep = Annotated[MaterialService, Depends(get_material_service)]
UnitServiceDep = Annotated[UnitService, Depends(get_unit_service)]
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]
TeacherServiceDep = Annotated[TeacherService, Depends(get_teacher_service)]
