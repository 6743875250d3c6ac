"""FastAPI dependencies for course services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CourseFileService, CourseService, VideoService


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course service not available",
        )
    return service


async def get_course_service(request: Request) -> CourseService:
    return _from_state(request, "course_service")


async def get_video_service(request: Request) -> VideoService:
    return _from_state(request, "video_service")


async def get_course_file_service(request: Request) -> CourseFileService:
    return _from_state(request, "course_file_service")


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
VideoServiceDep = Annotated[VideoService, Depends(get_video_service)]
CourseFileServiceDep = Annotated[CourseFileService, Depends(get_course_file_service)]
