"""Tests for access-gated content queries."""

from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from edupass.catalog.models import Lesson, Material
from edupass.content.service import PaidContentService
from edupass.core.exceptions import ForbiddenError, NotFoundError, OutOfRangeError
from edupass.courses.models import Course, CourseFile, Video
from edupass.entitlements import AccessTarget, CourseScope
from edupass.questions.models import Choice, Question, QuestionGroup


def make_question(text: str) -> Question:
    return Question(text=text, choices=(Choice("yes", True), Choice("no")))


@pytest.fixture
def material() -> Material:
    return Material(name="Chemistry")


@pytest.fixture
def lesson() -> Lesson:
    return Lesson(unit_id=uuid4(), name="Acids")


@pytest.fixture
def group(lesson: Lesson) -> QuestionGroup:
    return QuestionGroup(
        lesson_id=lesson.id,
        questions=[make_question("Q0"), make_question("Q1"), make_question("Q2")],
    )


@pytest.fixture
def course(material: Material) -> Course:
    return Course(material_id=material.id, teacher_id=uuid4(), name="Organic")


@pytest.fixture
def resolver() -> Mock:
    resolver = Mock()
    resolver.has_access = AsyncMock(return_value=True)
    resolver.accessible_material_ids = AsyncMock(return_value=set())
    resolver.course_scope = AsyncMock(return_value=CourseScope())
    return resolver


@pytest.fixture
def favorites() -> Mock:
    favorites = Mock()
    favorites.favorite_pairs = AsyncMock(return_value=set())
    return favorites


@pytest.fixture
def service(resolver, favorites, material, lesson, group, course) -> PaidContentService:
    materials = Mock()
    materials.require = AsyncMock(return_value=material)
    materials.get_many = AsyncMock(return_value=[material])
    lessons = Mock()
    lessons.require = AsyncMock(return_value=lesson)
    lessons.resolve_material_id = AsyncMock(return_value=material.id)
    question_groups = Mock()
    question_groups.require = AsyncMock(return_value=group)
    question_groups.resolve_material_id = AsyncMock(return_value=material.id)
    question_groups.list_by_lesson = AsyncMock(return_value=[group])
    courses = Mock()
    courses.require = AsyncMock(return_value=course)
    courses.list_by_material = AsyncMock(return_value=[course])
    videos = Mock()
    videos.list_by_course = AsyncMock(return_value=[])
    course_files = Mock()
    course_files.list_by_course = AsyncMock(
        return_value=[
            CourseFile(
                course_id=course.id,
                num=1,
                name="Summary",
                filename="summary.pdf",
                access_url="https://cdn.example.com/summary.pdf",
            ),
            CourseFile(
                course_id=course.id,
                num=2,
                name="Exercises",
                filename="exercises.pdf",
                access_url="https://cdn.example.com/exercises.pdf",
            ),
        ]
    )
    return PaidContentService(
        resolver=resolver,
        materials=materials,
        lessons=lessons,
        question_groups=question_groups,
        courses=courses,
        videos=videos,
        course_files=course_files,
        favorites=favorites,
    )


class TestQuestionsByLesson:
    """Tests for questions_by_lesson."""

    @pytest.mark.asyncio
    async def test_flags_favorites(self, service, favorites, group, lesson, student_id):
        """Each question should carry isFavorite from the student's favorites."""
        # Arrange
        favorites.favorite_pairs.return_value = {(group.id, 1)}

        # Act
        page = await service.questions_by_lesson(student_id, lesson.id)

        # Assert
        assert page.total_docs == 1
        flags = [q.is_favorite for q in page.docs[0].questions]
        assert flags == [False, True, False]

    @pytest.mark.asyncio
    async def test_checks_material_access(self, service, resolver, material, lesson, student_id):
        """Access should be checked against the lesson's material."""
        await service.questions_by_lesson(student_id, lesson.id)

        resolver.has_access.assert_awaited_once_with(student_id, AccessTarget.material(material.id))

    @pytest.mark.asyncio
    async def test_forbidden_without_access(self, service, resolver, lesson, student_id):
        """No partial data should be returned without access."""
        resolver.has_access.return_value = False

        with pytest.raises(ForbiddenError):
            await service.questions_by_lesson(student_id, lesson.id)

    @pytest.mark.asyncio
    async def test_detached_lesson(self, service, lesson, student_id):
        """A lesson whose unit or material is gone should read as not found."""
        service.lessons.resolve_material_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await service.questions_by_lesson(student_id, lesson.id)

        assert exc_info.value.code == "content_unavailable"

    @pytest.mark.asyncio
    async def test_paginates(self, service, lesson, student_id):
        """Pages should be 1-indexed with totals."""
        groups = [
            QuestionGroup(lesson_id=lesson.id, questions=[make_question(f"Q{i}")])
            for i in range(12)
        ]
        service.question_groups.list_by_lesson.return_value = groups

        page = await service.questions_by_lesson(student_id, lesson.id, page=2, limit=5)

        assert [d.id for d in page.docs] == [g.id for g in groups[5:10]]
        assert page.total_docs == 12
        assert page.total_pages == 3
        assert page.page == 2


class TestQuestionDetail:
    """Tests for question_detail."""

    @pytest.mark.asyncio
    async def test_projects_single_question(self, service, favorites, group, student_id):
        """Only the requested question should be returned, with its index."""
        favorites.favorite_pairs.return_value = {(group.id, 2)}

        detail = await service.question_detail(student_id, group.id, 2)

        assert len(detail.questions) == 1
        assert detail.questions[0].text == "Q2"
        assert detail.questions[0].index == 2
        assert detail.questions[0].is_favorite is True

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, service, group, student_id):
        """An index past the last question should raise OutOfRangeError."""
        with pytest.raises(OutOfRangeError):
            await service.question_detail(student_id, group.id, 3)

    @pytest.mark.asyncio
    async def test_forbidden_before_projection(self, service, resolver, group, student_id):
        """Access should be refused before the index is looked at."""
        resolver.has_access.return_value = False

        with pytest.raises(ForbiddenError):
            await service.question_detail(student_id, group.id, 99)


class TestCourses:
    """Tests for courses_by_material and videos_by_course."""

    @pytest.mark.asyncio
    async def test_forbidden_without_any_course_grant(self, service, material, student_id):
        """An empty course scope should be refused."""
        with pytest.raises(ForbiddenError):
            await service.courses_by_material(student_id, material.id)

    @pytest.mark.asyncio
    async def test_course_grant_filters_listing(
        self, service, resolver, material, course, student_id
    ):
        """Only directly granted courses should be listed."""
        other = Course(material_id=material.id, teacher_id=uuid4(), name="Inorganic")
        service.courses.list_by_material.return_value = [course, other]
        resolver.course_scope.return_value = CourseScope(course_ids=frozenset({other.id}))

        page = await service.courses_by_material(student_id, material.id)

        assert [c.id for c in page.docs] == [other.id]

    @pytest.mark.asyncio
    async def test_material_grant_lists_all(self, service, resolver, material, student_id):
        """A material-level grant should list every course."""
        resolver.course_scope.return_value = CourseScope(all_courses=True)

        page = await service.courses_by_material(student_id, material.id)

        assert page.total_docs == 1

    @pytest.mark.asyncio
    async def test_videos_require_course_access(self, service, resolver, course, student_id):
        """Video lists should be gated on the course."""
        resolver.has_access.return_value = False

        with pytest.raises(ForbiddenError):
            await service.videos_by_course(student_id, course.id)

        resolver.has_access.assert_awaited_once_with(student_id, AccessTarget.course(course.id))

    @pytest.mark.asyncio
    async def test_videos_filtered_by_unit(self, service, course, student_id):
        """The unit filter should be passed through."""
        unit_id: UUID = uuid4()
        video = Video(course_id=course.id, unit_id=unit_id, name="Intro")
        service.videos.list_by_course.return_value = [video]

        page = await service.videos_by_course(student_id, course.id, unit_id=unit_id)

        service.videos.list_by_course.assert_awaited_once_with(course.id, unit_id)
        assert page.docs[0].id == video.id


class TestCourseFiles:
    """Course files are listed either way; locators are withheld without access."""

    @pytest.mark.asyncio
    async def test_ungated_student_sees_names_only(self, service, resolver, course, student_id):
        """Filenames should be present and every accessUrl null."""
        resolver.has_access.return_value = False

        result = await service.course_files(student_id, course.id)

        assert result.has_access is False
        assert [f.filename for f in result.files] == ["summary.pdf", "exercises.pdf"]
        assert all(f.access_url is None for f in result.files)
        assert all(f["accessUrl"] is None for f in result.model_dump(by_alias=True)["files"])

    @pytest.mark.asyncio
    async def test_gated_student_sees_locators(self, service, course, student_id):
        """Both filename and accessUrl should be present with access."""
        result = await service.course_files(student_id, course.id)

        assert result.has_access is True
        assert [f.access_url for f in result.files] == [
            "https://cdn.example.com/summary.pdf",
            "https://cdn.example.com/exercises.pdf",
        ]

    @pytest.mark.asyncio
    async def test_unknown_course(self, service, student_id):
        """A missing course should raise NotFoundError."""
        service.courses.require.side_effect = NotFoundError("Course not found")

        with pytest.raises(NotFoundError):
            await service.course_files(student_id, uuid4())


@pytest.mark.asyncio
async def test_accessible_materials(service, resolver, material, student_id):
    """Materials unlocked by the ledger should be listed in a page."""
    resolver.accessible_material_ids.return_value = {material.id}

    page = await service.accessible_materials(student_id)

    service.materials.get_many.assert_awaited_once_with({material.id})
    assert [m.id for m in page.docs] == [material.id]
    assert page.limit == 10
