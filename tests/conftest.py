"""Shared fixtures.

The environment is pinned before the application is imported so that the
cached settings never point at log files or a local Redis.
"""

import os


os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_TO_FILE"] = "false"
os.environ["REDIS_ENABLED"] = "false"

from collections.abc import Iterator  # noqa: E402
from datetime import UTC, datetime  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from edupass.auth.security import create_access_token  # noqa: E402
from edupass.main import create_app  # noqa: E402

from tests.fakes import make_session  # noqa: E402


NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def bearer(subject: UUID, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(subject), role)}"}


@pytest.fixture
def now() -> datetime:
    """Fixed point in time used as the services' clock."""
    return NOW


@pytest.fixture
def mock_session():
    """Mock Cassandra session (cassandra-asyncio-driver style)."""
    return make_session()


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_headers(student_id: UUID) -> dict[str, str]:
    return bearer(student_id, "student")


@pytest.fixture
def admin_headers(admin_id: UUID) -> dict[str, str]:
    return bearer(admin_id, "admin")


@pytest.fixture
def app() -> FastAPI:
    """Application without lifespan; tests put services on ``app.state``."""
    return create_app(use_lifespan=False)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
