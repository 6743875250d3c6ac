"""Tests for course, video and course-file services."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import httpx
import pytest

from edupass.catalog.models import Material, Unit
from edupass.config import Settings
from edupass.core.exceptions import NotFoundError, ValidationError
from edupass.courses.models import Course, CourseFile, VideoLocator
from edupass.courses.schemas import CourseCreate, VideoCreate
from edupass.courses.service import (
    CourseFileService,
    CourseService,
    VideoService,
    with_download_url,
)
from edupass.storage.bunny import (
    BunnyApiError,
    BunnyStorageClient,
    RemoteAsset,
    RemoteAssetKind,
    RemoteDeletionResult,
    RemoteDeletionStatus,
)

from tests.fakes import FakeResult, executed_with


@pytest.fixture
def material() -> Material:
    return Material(name="Physics")


@pytest.fixture
def course(material: Material) -> Course:
    return Course(
        material_id=material.id,
        teacher_id=uuid4(),
        name="Mechanics",
        promo_video=VideoLocator(video_id="promo-1", library_id="lib-1"),
    )


@pytest.fixture
def storage() -> Mock:
    storage = Mock()
    storage.get_play_fallback_url = AsyncMock(return_value="https://cdn.example.com/v.mp4")
    storage.delete_assets = AsyncMock(return_value=[])
    return storage


@pytest.fixture
def materials(material) -> Mock:
    materials = Mock()
    materials.require = AsyncMock(return_value=material)
    materials.get = AsyncMock(return_value=material)
    return materials


@pytest.fixture
def course_service(mock_session, materials, storage) -> CourseService:
    teachers = Mock()
    teachers.require = AsyncMock()
    return CourseService(mock_session, "test_keyspace", materials, teachers, storage)


@pytest.fixture
def courses(course) -> Mock:
    courses = Mock()
    courses.require = AsyncMock(return_value=course)
    return courses


@pytest.fixture
def units() -> Mock:
    return Mock()


@pytest.fixture
def video_service(mock_session, courses, units, storage) -> VideoService:
    return VideoService(mock_session, "test_keyspace", courses, units, storage)


class TestCreateCourse:
    """Tests for CourseService.create."""

    @pytest.mark.asyncio
    async def test_resolves_promo_download_url(
        self, course_service, mock_session, storage, material
    ):
        """The promo video should be stored with its Bunny fallback URL."""
        data = CourseCreate(
            materialId=material.id,
            teacherId=uuid4(),
            name="Optics",
            promoVideo720={"videoId": "v-1", "libraryId": "lib-1"},
        )

        course = await course_service.create(data)

        assert course.promo_video.download_url == "https://cdn.example.com/v.mp4"
        storage.get_play_fallback_url.assert_awaited_once_with("lib-1", "v-1")
        assert len(executed_with(mock_session, course_service._insert)) == 1

    @pytest.mark.asyncio
    async def test_unknown_material(self, course_service, mock_session, materials):
        """A course for a missing material should not be written."""
        materials.require.side_effect = NotFoundError("Material not found")

        with pytest.raises(NotFoundError):
            await course_service.create(
                CourseCreate(materialId=uuid4(), teacherId=uuid4(), name="Optics")
            )

        mock_session.aexecute.assert_not_awaited()


class TestCreateVideo:
    """Tests for VideoService.create."""

    @pytest.mark.asyncio
    async def test_rejects_unit_of_other_material(
        self, video_service, mock_session, units, course
    ):
        """A unit of another material should fail before anything is written."""
        # Arrange
        units.require = AsyncMock(return_value=Unit(material_id=uuid4(), name="Elsewhere"))
        data = VideoCreate(courseId=course.id, unitId=uuid4(), name="Friction")

        # Act
        with pytest.raises(ValidationError) as exc_info:
            await video_service.create(data)

        # Assert
        assert exc_info.value.code == "material_mismatch"
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creates_video_in_same_material(
        self, video_service, mock_session, units, course
    ):
        """A unit of the course's material should be accepted."""
        unit = Unit(material_id=course.material_id, name="Dynamics")
        units.require = AsyncMock(return_value=unit)

        video = await video_service.create(
            VideoCreate(courseId=course.id, unitId=unit.id, name="Friction")
        )

        assert video.unit_id == unit.id
        assert executed_with(mock_session, video_service._insert)[0][0] == video.id


class TestDeletions:
    """The row is deleted first; remote cleanup results are returned."""

    @pytest.mark.asyncio
    async def test_course_delete_reports_cleanup(
        self, course_service, mock_session, storage, course
    ):
        """Remote failures should be reported, not raised."""
        # Arrange
        failure = RemoteDeletionResult(
            kind=RemoteAssetKind.VIDEO,
            target="promo-1",
            status=RemoteDeletionStatus.FAILED,
            error="HTTP 500",
        )
        storage.delete_assets.return_value = [failure]
        mock_session.aexecute.return_value = FakeResult([SimpleNamespace(**course_row(course))])

        # Act
        results = await course_service.delete(course.id)

        # Assert
        assert results == [failure]
        assert executed_with(mock_session, course_service._delete) == [[course.id]]
        storage.delete_assets.assert_awaited_once_with([RemoteAsset.video("lib-1", "promo-1")])

    @pytest.mark.asyncio
    async def test_video_delete_unknown(self, video_service, mock_session, storage):
        """Deleting a missing video should fail without touching Bunny."""
        mock_session.aexecute.return_value = FakeResult()

        with pytest.raises(NotFoundError):
            await video_service.delete([uuid4()])

        storage.delete_assets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_course_file_delete(self, mock_session, courses, storage, course):
        """A course file should be deleted by its full key, then its object."""
        service = CourseFileService(mock_session, "test_keyspace", courses, storage)
        course_file = CourseFile(
            course_id=course.id,
            num=3,
            name="Notes",
            filename="notes.pdf",
            access_url="https://storage.example.com/notes.pdf",
        )
        mock_session.aexecute.return_value = FakeResult(
            [SimpleNamespace(**vars(course_file))]
        )

        await service.delete(course.id, course_file.id)

        assert executed_with(mock_session, service._delete) == [
            [course.id, 3, course_file.id]
        ]
        storage.delete_assets.assert_awaited_once_with(
            [RemoteAsset.file("https://storage.example.com/notes.pdf")]
        )


@pytest.mark.asyncio
async def test_download_url_left_unset_on_bunny_error(storage) -> None:
    """A failing play-data lookup should keep the locator as given."""
    storage.get_play_fallback_url.side_effect = BunnyApiError("Bunny.net API error: 500")
    locator = VideoLocator(video_id="v-1", library_id="lib-1")

    assert await with_download_url(storage, locator) == locator


def course_row(course: Course) -> dict:
    return {
        "id": course.id,
        "material_id": course.material_id,
        "teacher_id": course.teacher_id,
        "name": course.name,
        "description": course.description,
        "promo_video": '{"videoId": "promo-1", "libraryId": "lib-1"}',
        "seek_points": None,
        "created_at": course.created_at,
        "updated_at": course.updated_at,
    }


@pytest.mark.asyncio
async def test_unreadable_play_data_leaves_locator_unset():
    """A play-data body that is not JSON should not fail course creation."""
    storage = BunnyStorageClient(
        Settings(bunny_api_key="stream-key", bunny_retry_attempts=1),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="oops")),
    )
    locator = VideoLocator(video_id="v-1", library_id="lib-1")

    result = await with_download_url(storage, locator)

    assert result == locator
    assert result.download_url is None
