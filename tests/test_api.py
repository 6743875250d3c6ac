"""HTTP tests for the student surface with services mocked on ``app.state``."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from edupass.content.service import PaidContentService
from edupass.core.exceptions import (
    AlreadyUsedError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from edupass.courses.models import CourseFile
from edupass.courses.service import CourseFileService, CourseService
from edupass.entitlements.resolver import EntitlementResolver

from tests.conftest import NOW


@pytest.fixture
def redemptions(app: FastAPI) -> Mock:
    service = Mock()
    service.redeem = AsyncMock()
    app.state.redemption_service = service
    return service


class TestRedeemCode:
    """Tests for POST /v1/student/redeemCode."""

    def test_success(self, client: TestClient, redemptions, student_headers, student_id) -> None:
        """Should answer with the batch id and expiration."""
        group_id = uuid4()
        redemptions.redeem.return_value = (
            SimpleNamespace(group_id=group_id),
            SimpleNamespace(expiration=NOW),
        )

        response = client.post(
            "/v1/student/redeemCode", json={"code": " A1 "}, headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()["codesGroup"] == str(group_id)
        redemptions.redeem.assert_awaited_once_with(student_id, " A1 ")

    @pytest.mark.parametrize(
        ("error", "status_code", "code"),
        [
            (NotFoundError("Code not found", code="code_not_found"), 404, "code_not_found"),
            (ExpiredError(), 400, "code_expired"),
            (AlreadyUsedError(), 400, "code_already_used"),
            (ValidationError("Code is required", code="code_required"), 400, "code_required"),
        ],
    )
    def test_rejections(
        self, client: TestClient, redemptions, student_headers, error, status_code, code
    ) -> None:
        """Service errors should map to the error envelope."""
        redemptions.redeem.side_effect = error

        response = client.post(
            "/v1/student/redeemCode", json={"code": "ZZ"}, headers=student_headers
        )

        assert response.status_code == status_code
        body = response.json()
        assert body["error"] is True
        assert body["code"] == code
        assert body["status_code"] == status_code
        assert body["request_id"]

    def test_missing_code_field(self, client: TestClient, redemptions, student_headers) -> None:
        """A body without ``code`` should fail validation before the service."""
        response = client.post("/v1/student/redeemCode", json={}, headers=student_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        assert response.json()["details"][0]["field"] == "body.code"
        redemptions.redeem.assert_not_awaited()


class TestCourseFiles:
    """Tests for GET /v1/student/courseFiles/{courseId}."""

    @pytest.fixture
    def content(self, app: FastAPI) -> PaidContentService:
        """A real content service over mocked catalog collaborators."""
        resolver = Mock(spec=EntitlementResolver)
        resolver.has_access = AsyncMock(return_value=False)
        courses = Mock(spec=CourseService)
        courses.require = AsyncMock()
        files = Mock(spec=CourseFileService)
        files.list_by_course = AsyncMock(return_value=[])
        service = PaidContentService(
            resolver=resolver,
            materials=Mock(),
            lessons=Mock(),
            question_groups=Mock(),
            courses=courses,
            videos=Mock(),
            course_files=files,
            favorites=Mock(),
        )
        app.state.paid_content_service = service
        return service

    @pytest.mark.parametrize("has_access", [False, True])
    def test_files_listed_with_or_without_urls(
        self, client: TestClient, content, student_headers, has_access
    ) -> None:
        """Files are always listed; accessUrl is null without access."""
        # Arrange
        course_id = uuid4()
        content.resolver.has_access.return_value = has_access
        content.files.list_by_course.return_value = [
            CourseFile(
                course_id=course_id,
                num=1,
                name="Guide",
                filename="g.pdf",
                access_url="https://cdn.example.com/g.pdf",
            )
        ]

        # Act
        response = client.get(f"/v1/student/courseFiles/{course_id}", headers=student_headers)

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["hasAccess"] is has_access
        assert data["files"][0]["filename"] == "g.pdf"
        expected_url = "https://cdn.example.com/g.pdf" if has_access else None
        assert data["files"][0]["accessUrl"] == expected_url

    def test_forbidden_envelope(self, app: FastAPI, client: TestClient, student_headers) -> None:
        """A denied video listing should answer 403 with the forbidden code."""
        content = Mock()
        content.videos_by_course = AsyncMock(side_effect=ForbiddenError())
        app.state.paid_content_service = content

        response = client.get(
            "/v1/student/videos", params={"course": str(uuid4())}, headers=student_headers
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"


class TestFavoritesApi:
    """Tests for the favorites endpoints."""

    @pytest.fixture
    def favorites(self, app: FastAPI) -> Mock:
        service = Mock()
        service.remove = AsyncMock()
        service.add = AsyncMock()
        app.state.favorite_service = service
        return service

    def test_remove_is_idempotent(self, client: TestClient, favorites, student_headers) -> None:
        """Removing twice should answer 200 both times."""
        group_id = uuid4()
        favorites.remove.side_effect = [True, False]

        first = client.request(
            "DELETE",
            f"/v1/student/favorites/{group_id}",
            json={"index": 0},
            headers=student_headers,
        )
        second = client.request(
            "DELETE",
            f"/v1/student/favorites/{group_id}",
            json={"index": 0},
            headers=student_headers,
        )

        assert (first.status_code, second.status_code) == (200, 200)
        assert first.json()["message"] == "Question removed from favorites"
        assert second.json()["message"] == "Favorite not found"

    def test_negative_index_rejected(self, client: TestClient, favorites, student_headers) -> None:
        """Negative indexes should fail validation."""
        response = client.post(
            "/v1/student/favorites",
            json={"questionGroupId": str(uuid4()), "index": -1},
            headers=student_headers,
        )

        assert response.status_code == 400
        favorites.add.assert_not_awaited()

    def test_add(self, client: TestClient, favorites, student_headers, student_id) -> None:
        """Adding should answer 201."""
        group_id = uuid4()

        response = client.post(
            "/v1/student/favorites",
            json={"questionGroupId": str(group_id), "index": 2},
            headers=student_headers,
        )

        assert response.status_code == 201
        favorites.add.assert_awaited_once_with(student_id, group_id, 2)


def test_missing_service_answers_503(client: TestClient, student_headers) -> None:
    """Routes should answer 503 while their service is not wired."""
    response = client.post("/v1/student/redeemCode", json={"code": "A1"}, headers=student_headers)

    assert response.status_code == 503
    assert response.json()["error"] is True
