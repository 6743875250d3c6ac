# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Course, video and course-file services.

Deletions follow "commit, then reconcile": the database row is removed
first, remote Bunny assets afterwards, and per-asset results are returned
to the caller instead of raising.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from edupass.core.exceptions import DatabaseError, NotFoundError, ValidationError
from edupass.core.logging import get_logger
from edupass.storage.bunny import BunnyServiceError, RemoteAsset, RemoteDeletionResult

from .models import (
    Course,
    CourseFile,
    Video,
    VideoLocator,
    locator_to_json,
    seek_points_to_json,
)
from .schemas import CourseCreate, CourseFileCreate, VideoCreate


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from edupass.catalog.service import MaterialService, TeacherService, UnitService
    from edupass.storage.bunny import BunnyStorageClient


logger = get_logger(__name__)


async def with_download_url(
    storage: "BunnyStorageClient", locator: VideoLocator | None
) -> VideoLocator | None:
    """Fill ``download_url`` from Bunny play data; leave it unset on failure."""
    if locator is None or locator.download_url:
        return locator
    try:
        download_url = await storage.get_play_fallback_url(
            locator.library_id, locator.video_id
        )
    except BunnyServiceError as e:
        logger.warning("video_download_url_unresolved", video_id=locator.video_id, error=str(e))
        return locator
    return VideoLocator(
        video_id=locator.video_id,
        library_id=locator.library_id,
        access_url=locator.access_url,
        download_url=download_url,
    )


class CourseService:
    """Service for courses."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        materials: "MaterialService",
        teachers: "TeacherService",
        storage: "BunnyStorageClient",
    ):
        self.session = session
        self.keyspace = keyspace
        self.materials = materials
        self.teachers = teachers
        self.storage = storage
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, material_id, teacher_id, name, description, promo_video,
             seek_points, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)
        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses
        """)
        self._list_by_material = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE material_id = ?
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses WHERE id = ?
        """)

    async def create(self, data: CourseCreate) -> Course:
        await self.materials.require(data.material_id)
        await self.teachers.require(data.teacher_id)

        promo = data.promo_video720.to_locator() if data.promo_video720 else None
        course = Course(
            material_id=data.material_id,
            teacher_id=data.teacher_id,
            name=data.name,
            description=data.description,
            promo_video=await with_download_url(self.storage, promo),
            seek_points=data.seek_point_values(),
        )
        try:
            await self.session.aexecute(
                self._insert,
                [
                    course.id,
                    course.material_id,
                    course.teacher_id,
                    course.name,
                    course.description,
                    locator_to_json(course.promo_video),
                    seek_points_to_json(course.seek_points),
                    course.created_at,
                    course.updated_at,
                ],
            )
        except Exception as e:
            logger.exception("database_error_saving_course", course_id=str(course.id))
            raise DatabaseError("Failed to save course", original_error=e) from e

        logger.info(
            "course_created", course_id=str(course.id), material_id=str(course.material_id)
        )
        return course

    async def get(self, course_id: UUID) -> Course | None:
        row = (await self.session.aexecute(self._get, [course_id])).one()
        return Course.from_row(row) if row else None

    async def require(self, course_id: UUID) -> Course:
        course = await self.get(course_id)
        if course is None:
            raise NotFoundError("Course not found", code="course_not_found")
        return course

    async def list_by_material(self, material_id: UUID) -> list[Course]:
        rows = await self.session.aexecute(self._list_by_material, [material_id])
        return sorted((Course.from_row(r) for r in rows), key=lambda c: c.created_at)

    async def list_courses(
        self,
        material_id: UUID | None = None,
        teacher_id: UUID | None = None,
        name: str | None = None,
    ) -> list[Course]:
        """All courses matching the optional filters, oldest first."""
        if material_id is not None:
            courses = await self.list_by_material(material_id)
        else:
            rows = await self.session.aexecute(self._list)
            courses = sorted((Course.from_row(r) for r in rows), key=lambda c: c.created_at)
        if teacher_id is not None:
            courses = [c for c in courses if c.teacher_id == teacher_id]
        if name:
            needle = name.casefold()
            courses = [c for c in courses if needle in c.name.casefold()]
        return courses

    async def resolve_material_id(self, course_id: UUID) -> UUID | None:
        course = await self.get(course_id)
        if course is None:
            return None
        material = await self.materials.get(course.material_id)
        return material.id if material else None

    async def delete(self, course_id: UUID) -> list[RemoteDeletionResult]:
        course = await self.require(course_id)
        await self.session.aexecute(self._delete, [course_id])
        logger.info("course_deleted", course_id=str(course_id))

        assets = []
        if course.promo_video:
            assets.append(
                RemoteAsset.video(course.promo_video.library_id, course.promo_video.video_id)
            )
        return await self.storage.delete_assets(assets)


class VideoService:
    """Service for course videos."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        courses: CourseService,
        units: "UnitService",
        storage: "BunnyStorageClient",
    ):
        self.session = session
        self.keyspace = keyspace
        self.courses = courses
        self.units = units
        self.storage = storage
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.videos
            (id, course_id, unit_id, name, video720, seek_points, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.videos WHERE id = ?
        """)
        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.videos WHERE course_id = ?
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.videos WHERE id = ?
        """)

    async def create(self, data: VideoCreate) -> Video:
        """Create a video.

        Raises:
            NotFoundError: Course or unit does not exist.
            ValidationError: The unit belongs to another material than the
                course. Nothing is written in that case.
        """
        course = await self.courses.require(data.course_id)
        unit = await self.units.require(data.unit_id)
        if unit.material_id != course.material_id:
            logger.warning(
                "video_material_mismatch",
                course_id=str(course.id),
                unit_id=str(unit.id),
            )
            raise ValidationError(
                "Unit and course belong to different materials",
                code="material_mismatch",
            )

        locator = data.video720.to_locator() if data.video720 else None
        video = Video(
            course_id=course.id,
            unit_id=unit.id,
            name=data.name,
            video720=await with_download_url(self.storage, locator),
            seek_points=data.seek_point_values(),
        )
        await self.session.aexecute(
            self._insert,
            [
                video.id,
                video.course_id,
                video.unit_id,
                video.name,
                locator_to_json(video.video720),
                seek_points_to_json(video.seek_points),
                video.created_at,
            ],
        )
        logger.info("video_created", video_id=str(video.id), course_id=str(course.id))
        return video

    async def get(self, video_id: UUID) -> Video | None:
        row = (await self.session.aexecute(self._get, [video_id])).one()
        return Video.from_row(row) if row else None

    async def require(self, video_id: UUID) -> Video:
        video = await self.get(video_id)
        if video is None:
            raise NotFoundError("Video not found", code="video_not_found")
        return video

    async def list_by_course(self, course_id: UUID, unit_id: UUID | None = None) -> list[Video]:
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        videos = sorted((Video.from_row(r) for r in rows), key=lambda v: v.created_at)
        if unit_id is not None:
            videos = [v for v in videos if v.unit_id == unit_id]
        return videos

    async def delete(self, video_ids: list[UUID]) -> list[RemoteDeletionResult]:
        """Delete videos, then their Bunny streams; one result per stream."""
        videos = [await self.require(video_id) for video_id in video_ids]
        for video in videos:
            await self.session.aexecute(self._delete, [video.id])
        logger.info("videos_deleted", count=len(videos))

        return await self.storage.delete_assets(
            [
                RemoteAsset.video(v.video720.library_id, v.video720.video_id)
                for v in videos
                if v.video720
            ]
        )


class CourseFileService:
    """Service for downloadable course files."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        courses: CourseService,
        storage: "BunnyStorageClient",
    ):
        self.session = session
        self.keyspace = keyspace
        self.courses = courses
        self.storage = storage
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_files
            (course_id, num, id, name, filename, access_url, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_files WHERE course_id = ?
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_files
            WHERE course_id = ? AND num = ? AND id = ?
        """)

    async def create(self, data: CourseFileCreate) -> CourseFile:
        await self.courses.require(data.course_id)
        course_file = CourseFile(
            course_id=data.course_id,
            num=data.num,
            name=data.name,
            filename=data.filename,
            access_url=data.access_url,
        )
        await self.session.aexecute(
            self._insert,
            [
                course_file.course_id,
                course_file.num,
                course_file.id,
                course_file.name,
                course_file.filename,
                course_file.access_url,
                course_file.created_at,
            ],
        )
        logger.info("course_file_created", course_id=str(data.course_id), num=data.num)
        return course_file

    async def list_by_course(self, course_id: UUID) -> list[CourseFile]:
        """Files of a course ordered by ``num`` (clustering order)."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [CourseFile.from_row(r) for r in rows]

    async def delete(self, course_id: UUID, file_id: UUID) -> list[RemoteDeletionResult]:
        course_file = next(
            (f for f in await self.list_by_course(course_id) if f.id == file_id), None
        )
        if course_file is None:
            raise NotFoundError("Course file not found", code="course_file_not_found")

        await self.session.aexecute(
            self._delete, [course_file.course_id, course_file.num, course_file.id]
        )
        logger.info("course_file_deleted", course_id=str(course_id), file_id=str(file_id))
        return await self.storage.delete_assets([RemoteAsset.file(course_file.access_url)])
