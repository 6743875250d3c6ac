"""Request/response schemas for courses, videos and course files."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from edupass.core.schemas import ApiModel

from .models import Course, CourseFile, SeekPoint, Video, VideoLocator


class VideoLocatorSchema(ApiModel):
    video_id: str = Field(..., min_length=1)
    library_id: str = Field(..., min_length=1)
    access_url: str | None = None
    download_url: str | None = None

    def to_locator(self) -> VideoLocator:
        return VideoLocator(
            video_id=self.video_id,
            library_id=self.library_id,
            access_url=self.access_url,
            download_url=self.download_url,
        )

    @classmethod
    def from_locator(cls, locator: VideoLocator | None) -> "VideoLocatorSchema | None":
        if locator is None:
            return None
        return cls(
            video_id=locator.video_id,
            library_id=locator.library_id,
            access_url=locator.access_url,
            download_url=locator.download_url,
        )


class SeekPointSchema(ApiModel):
    moment: str
    description: str


def _points(points: list[SeekPointSchema]) -> list[SeekPoint]:
    return [SeekPoint(moment=p.moment, description=p.description) for p in points]


def _point_schemas(points: list[SeekPoint]) -> list[SeekPointSchema]:
    return [SeekPointSchema(moment=p.moment, description=p.description) for p in points]


# ==============================================================================
# Courses
# ==============================================================================


class CourseCreate(ApiModel):
    material_id: UUID
    teacher_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    promo_video720: VideoLocatorSchema | None = None
    seek_points: list[SeekPointSchema] = []

    def seek_point_values(self) -> list[SeekPoint]:
        return _points(self.seek_points)


class CourseResponse(ApiModel):
    id: UUID
    material_id: UUID
    teacher_id: UUID
    name: str
    description: str | None = None
    promo_video720: VideoLocatorSchema | None = None
    seek_points: list[SeekPointSchema] = []
    created_at: datetime

    @classmethod
    def from_course(cls, course: Course) -> "CourseResponse":
        return cls(
            id=course.id,
            material_id=course.material_id,
            teacher_id=course.teacher_id,
            name=course.name,
            description=course.description,
            promo_video720=VideoLocatorSchema.from_locator(course.promo_video),
            seek_points=_point_schemas(course.seek_points),
            created_at=course.created_at,
        )


# ==============================================================================
# Videos
# ==============================================================================


class VideoCreate(ApiModel):
    course_id: UUID
    unit_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    video720: VideoLocatorSchema | None = None
    seek_points: list[SeekPointSchema] = []

    def seek_point_values(self) -> list[SeekPoint]:
        return _points(self.seek_points)


class VideoResponse(ApiModel):
    id: UUID
    course_id: UUID
    unit_id: UUID
    name: str
    video720: VideoLocatorSchema | None = None
    seek_points: list[SeekPointSchema] = []
    created_at: datetime

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            course_id=video.course_id,
            unit_id=video.unit_id,
            name=video.name,
            video720=VideoLocatorSchema.from_locator(video.video720),
            seek_points=_point_schemas(video.seek_points),
            created_at=video.created_at,
        )


# ==============================================================================
# Course files
# ==============================================================================


class CourseFileCreate(ApiModel):
    course_id: UUID
    num: int = Field(..., ge=0)
    name: str = Field(..., min_length=1, max_length=200)
    filename: str = Field(..., min_length=1)
    access_url: str = Field(..., min_length=1)


class CourseFileResponse(ApiModel):
    """A course file; ``access_url`` is ``None`` for callers without access."""

    id: UUID
    course_id: UUID
    num: int
    name: str
    filename: str
    access_url: str | None = None

    @classmethod
    def from_file(cls, course_file: CourseFile, redact: bool = False) -> "CourseFileResponse":
        return cls(
            id=course_file.id,
            course_id=course_file.course_id,
            num=course_file.num,
            name=course_file.name,
            filename=course_file.filename,
            access_url=None if redact else course_file.access_url,
        )


class CourseFilesResponse(ApiModel):
    has_access: bool
    files: list[CourseFileResponse]


class VideoDeleteRequest(ApiModel):
    video_ids: list[UUID] = Field(..., min_length=1)
