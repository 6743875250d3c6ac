"""Course, video and course-file endpoints; free previews for students."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from edupass.auth.dependencies import AdminUser, StudentUser
from edupass.core.pagination import Page, PageParamsDep, paginate
from edupass.storage.schemas import DeletionReport

from .dependencies import CourseFileServiceDep, CourseServiceDep, VideoServiceDep
from .schemas import (
    CourseCreate,
    CourseFileCreate,
    CourseFileResponse,
    CourseResponse,
    VideoCreate,
    VideoDeleteRequest,
    VideoResponse,
)


admin_router = APIRouter(prefix="/v1/admin", tags=["admin-courses"])
student_router = APIRouter(prefix="/v1/student", tags=["student-courses"])


# ==============================================================================
# Admin: courses
# ==============================================================================


@admin_router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CourseCreate, service: CourseServiceDep, _admin: AdminUser
) -> CourseResponse:
    """The promo video's download URL is looked up on Bunny when possible."""
    return CourseResponse.from_course(await service.create(data))


@admin_router.get("/courses", response_model=Page[CourseResponse], summary="List courses")
async def admin_list_courses(
    service: CourseServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
    material_id: Annotated[UUID | None, Query(alias="material")] = None,
    teacher_id: Annotated[UUID | None, Query(alias="teacher")] = None,
    name: Annotated[str | None, Query(max_length=200)] = None,
) -> Page[CourseResponse]:
    courses = await service.list_courses(material_id, teacher_id, name)
    return paginate([CourseResponse.from_course(c) for c in courses], params.page, params.limit)


@admin_router.get("/courses/{course_id}", response_model=CourseResponse, summary="Get course")
async def get_course(
    course_id: UUID, service: CourseServiceDep, _admin: AdminUser
) -> CourseResponse:
    return CourseResponse.from_course(await service.require(course_id))


@admin_router.delete(
    "/courses/{course_id}", response_model=DeletionReport, summary="Delete course"
)
async def delete_course(
    course_id: UUID, service: CourseServiceDep, _admin: AdminUser
) -> DeletionReport:
    results = await service.delete(course_id)
    return DeletionReport.from_results("Course deleted", results)


# ==============================================================================
# Admin: videos
# ==============================================================================


@admin_router.post(
    "/videos",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create video",
)
async def create_video(
    data: VideoCreate, service: VideoServiceDep, _admin: AdminUser
) -> VideoResponse:
    """The unit must belong to the course's material."""
    return VideoResponse.from_video(await service.create(data))


@admin_router.get("/videos", response_model=Page[VideoResponse], summary="List videos")
async def admin_list_videos(
    course_id: Annotated[UUID, Query(alias="course")],
    service: VideoServiceDep,
    params: PageParamsDep,
    _admin: AdminUser,
    unit_id: Annotated[UUID | None, Query(alias="unit")] = None,
) -> Page[VideoResponse]:
    videos = await service.list_by_course(course_id, unit_id)
    return paginate([VideoResponse.from_video(v) for v in videos], params.page, params.limit)


@admin_router.delete("/videos", response_model=DeletionReport, summary="Delete videos")
async def delete_videos(
    data: VideoDeleteRequest, service: VideoServiceDep, _admin: AdminUser
) -> DeletionReport:
    results = await service.delete(data.video_ids)
    return DeletionReport.from_results("Videos deleted", results)


# ==============================================================================
# Admin: course files
# ==============================================================================


@admin_router.post(
    "/courseFiles",
    response_model=CourseFileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course file",
)
async def create_course_file(
    data: CourseFileCreate, service: CourseFileServiceDep, _admin: AdminUser
) -> CourseFileResponse:
    return CourseFileResponse.from_file(await service.create(data))


@admin_router.get(
    "/courseFiles/{course_id}",
    response_model=list[CourseFileResponse],
    summary="List course files",
)
async def admin_list_course_files(
    course_id: UUID, service: CourseFileServiceDep, _admin: AdminUser
) -> list[CourseFileResponse]:
    return [CourseFileResponse.from_file(f) for f in await service.list_by_course(course_id)]


@admin_router.delete(
    "/courseFiles/{course_id}/{file_id}",
    response_model=DeletionReport,
    summary="Delete course file",
)
async def delete_course_file(
    course_id: UUID, file_id: UUID, service: CourseFileServiceDep, _admin: AdminUser
) -> DeletionReport:
    results = await service.delete(course_id, file_id)
    return DeletionReport.from_results("Course file deleted", results)


# ==============================================================================
# Student: free previews (not gated)
# ==============================================================================


@student_router.get("/freeCourses", response_model=Page[CourseResponse], summary="All courses")
async def list_free_courses(
    service: CourseServiceDep,
    params: PageParamsDep,
    _student: StudentUser,
) -> Page[CourseResponse]:
    courses = await service.list_courses()
    return paginate([CourseResponse.from_course(c) for c in courses], params.page, params.limit)


@student_router.get(
    "/freeVideos",
    response_model=Page[VideoResponse],
    summary="Video previews of a course",
)
async def list_free_videos(
    course_id: Annotated[UUID, Query(alias="course")],
    courses: CourseServiceDep,
    videos: VideoServiceDep,
    params: PageParamsDep,
    _student: StudentUser,
) -> Page[VideoResponse]:
    """Names and seek points only; stream locators are stripped."""
    await courses.require(course_id)
    items = [
        VideoResponse.from_video(v.without_locators())
        for v in await videos.list_by_course(course_id)
    ]
    return paginate(items, params.page, params.limit)
