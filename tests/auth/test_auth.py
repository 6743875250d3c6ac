"""Tests for bearer token handling and role checks."""

from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import JWTError, jwt

from edupass.auth.permissions import UserRole, parse_role
from edupass.auth.security import create_access_token, decode_access_token
from edupass.config import get_settings


def sign(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


class TestDecodeAccessToken:
    """Tests for decode_access_token."""

    def test_valid_token(self) -> None:
        """Should return the claims of a freshly minted token."""
        subject = str(uuid4())

        payload = decode_access_token(create_access_token(subject, "student"))

        assert payload["sub"] == subject
        assert payload["role"] == "student"

    def test_expired_token(self) -> None:
        """Expired tokens should be rejected."""
        token = create_access_token(str(uuid4()), "student", timedelta(seconds=-1))

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_type(self) -> None:
        """Refresh tokens should not be accepted as access tokens."""
        with pytest.raises(JWTError):
            decode_access_token(sign({"sub": str(uuid4()), "role": "student", "type": "refresh"}))

    def test_missing_subject(self) -> None:
        """A token without a subject should be rejected."""
        with pytest.raises(JWTError):
            decode_access_token(sign({"role": "student", "type": "access"}))

    def test_wrong_signature(self) -> None:
        """A token signed with another key should be rejected."""
        token = jwt.encode({"sub": str(uuid4()), "type": "access"}, "other", algorithm="HS256")

        with pytest.raises(JWTError):
            decode_access_token(token)


class TestParseRole:
    """Tests for parse_role."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("student", UserRole.STUDENT), ("admin", UserRole.ADMIN), ("teacher", None), (None, None)],
    )
    def test_roles(self, raw, expected) -> None:
        """Known roles parse, anything else maps to None."""
        assert parse_role(raw) == expected


class TestRouteProtection:
    """Role checks on the HTTP surface."""

    @pytest.fixture(autouse=True)
    def services(self, app: FastAPI) -> None:
        app.state.redemption_service = Mock()
        app.state.code_batch_service = Mock()

    def test_missing_token(self, client: TestClient) -> None:
        """Requests without a token should get 401 with a Bearer challenge."""
        response = client.get("/v1/student/redeemCodes")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["message"] == "Access token not provided"

    def test_invalid_token(self, client: TestClient) -> None:
        """Garbage tokens should get 401."""
        response = client.get(
            "/v1/student/redeemCodes", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_unknown_role(self, client: TestClient) -> None:
        """A valid token with an unknown role should get 401."""
        token = create_access_token(str(uuid4()), "teacher")

        response = client.get(
            "/v1/student/redeemCodes", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    def test_admin_cannot_use_student_surface(self, client: TestClient, admin_headers) -> None:
        """Admin tokens should be refused on student routes."""
        response = client.get("/v1/student/redeemCodes", headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permission"

    def test_student_cannot_use_admin_surface(self, client: TestClient, student_headers) -> None:
        """Student tokens should be refused on admin routes."""
        response = client.get("/v1/admin/codesGroup", headers=student_headers)

        assert response.status_code == 403
