"""Access-gated content queries for students.

Primary content (question lists, question detail, course and video lists)
is refused with ``ForbiddenError`` when the student has no entitlement.
Course files are listed either way, with ``accessUrl`` removed for students
without access.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from edupass.catalog.schemas import MaterialResponse
from edupass.core.exceptions import ForbiddenError, NotFoundError
from edupass.core.logging import get_logger
from edupass.core.pagination import Page, paginate
from edupass.courses.schemas import (
    CourseFileResponse,
    CourseFilesResponse,
    CourseResponse,
    VideoResponse,
)
from edupass.entitlements.models import AccessTarget
from edupass.questions.schemas import QuestionGroupResponse


if TYPE_CHECKING:
    from edupass.catalog.service import LessonService, MaterialService
    from edupass.courses.service import CourseFileService, CourseService, VideoService
    from edupass.entitlements.resolver import EntitlementResolver
    from edupass.favorites.service import FavoriteService
    from edupass.questions.service import QuestionGroupService


logger = get_logger(__name__)


class PaidContentService:
    """Wraps catalog queries with an entitlement check."""

    def __init__(
        self,
        resolver: "EntitlementResolver",
        materials: "MaterialService",
        lessons: "LessonService",
        question_groups: "QuestionGroupService",
        courses: "CourseService",
        videos: "VideoService",
        course_files: "CourseFileService",
        favorites: "FavoriteService",
    ):
        self.resolver = resolver
        self.materials = materials
        self.lessons = lessons
        self.question_groups = question_groups
        self.courses = courses
        self.videos = videos
        self.files = course_files
        self.favorites = favorites

    async def _require_access(self, student_id: UUID, target: AccessTarget) -> None:
        if not await self.resolver.has_access(student_id, target):
            raise ForbiddenError()

    async def accessible_materials(
        self, student_id: UUID, page: int = 1, limit: int | None = None
    ) -> Page[MaterialResponse]:
        material_ids = await self.resolver.accessible_material_ids(student_id)
        materials = await self.materials.get_many(material_ids)
        return paginate([MaterialResponse.from_material(m) for m in materials], page, limit)

    # ==========================================================================
    # Questions
    # ==========================================================================

    async def questions_by_lesson(
        self, student_id: UUID, lesson_id: UUID, page: int = 1, limit: int | None = None
    ) -> Page[QuestionGroupResponse]:
        """Question groups of a lesson, each question flagged ``isFavorite``."""
        await self.lessons.require(lesson_id)
        material_id = await self.lessons.resolve_material_id(lesson_id)
        if material_id is None:
            raise NotFoundError("Lesson is not available", code="content_unavailable")
        await self._require_access(student_id, AccessTarget.material(material_id))

        groups = await self.question_groups.list_by_lesson(lesson_id)
        favorites = await self.favorites.favorite_pairs(student_id)
        return paginate(
            [QuestionGroupResponse.from_group(group, favorites) for group in groups],
            page,
            limit,
        )

    async def question_detail(
        self, student_id: UUID, group_id: UUID, index: int
    ) -> QuestionGroupResponse:
        """The group projected to the question at ``index``.

        Raises:
            NotFoundError: Group missing or detached from the catalog.
            ForbiddenError: No entitlement for the group's material.
            OutOfRangeError: ``index`` outside the group's questions.
        """
        group = await self.question_groups.require(group_id)
        material_id = await self.question_groups.resolve_material_id(group_id)
        if material_id is None:
            raise NotFoundError("Question group is not available", code="content_unavailable")
        await self._require_access(student_id, AccessTarget.material(material_id))

        projected = group.project(index)
        favorites = await self.favorites.favorite_pairs(student_id)
        return QuestionGroupResponse.from_group(projected, favorites, first_index=index)

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def courses_by_material(
        self, student_id: UUID, material_id: UUID, page: int = 1, limit: int | None = None
    ) -> Page[CourseResponse]:
        """Courses of a material the student may open.

        Every course with a material-level grant, otherwise only directly
        granted courses; ``ForbiddenError`` when neither applies.
        """
        await self.materials.require(material_id)
        scope = await self.resolver.course_scope(student_id, material_id)
        if scope.is_empty():
            logger.info(
                "entitlement_denied",
                student_id=str(student_id),
                target_kind="material",
                target_id=str(material_id),
                reason="no_course_grant",
            )
            raise ForbiddenError()

        courses = [
            course
            for course in await self.courses.list_by_material(material_id)
            if scope.allows(course.id)
        ]
        return paginate([CourseResponse.from_course(c) for c in courses], page, limit)

    async def videos_by_course(
        self,
        student_id: UUID,
        course_id: UUID,
        page: int = 1,
        limit: int | None = None,
        unit_id: UUID | None = None,
    ) -> Page[VideoResponse]:
        await self.courses.require(course_id)
        await self._require_access(student_id, AccessTarget.course(course_id))
        videos = await self.videos.list_by_course(course_id, unit_id)
        return paginate([VideoResponse.from_video(v) for v in videos], page, limit)

    async def course_files(self, student_id: UUID, course_id: UUID) -> CourseFilesResponse:
        """Files of a course; ``accessUrl`` is withheld without access."""
        await self.courses.require(course_id)
        has_access = await self.resolver.has_access(student_id, AccessTarget.course(course_id))
        files = await self.files.list_by_course(course_id)
        return CourseFilesResponse(
            has_access=has_access,
            files=[CourseFileResponse.from_file(f, redact=not has_access) for f in files],
        )
