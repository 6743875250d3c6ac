"""Tests for the code batch store."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from edupass.codes.models import CoursesGrant, MaterialsGrant
from edupass.codes.service import CodeBatchService
from edupass.config import Settings
from edupass.core.exceptions import (
    AlreadyUsedError,
    DatabaseError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)

from tests.fakes import CodeStore, executed_with, fixed_clock


@pytest.fixture
def settings() -> Settings:
    return Settings(codes_max_batch_size=5, codes_generated_length=6)


@pytest.fixture
def service(mock_session, settings: Settings, now: datetime) -> CodeBatchService:
    return CodeBatchService(
        session=mock_session,
        keyspace="test_keyspace",
        settings=settings,
        clock=fixed_clock(now),
    )


@pytest.fixture
def store(mock_session, service: CodeBatchService) -> CodeStore:
    return CodeStore().attach(mock_session, service)


@pytest.fixture
def grants() -> tuple:
    return (MaterialsGrant(materials=frozenset({uuid4()})),)


class TestCreateBatchValidation:
    """Input checks run before anything is written."""

    @pytest.mark.asyncio
    async def test_empty_codes_rejected(self, service, store, grants, now):
        """Should reject an empty code list."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_batch(now + timedelta(days=1), grants, codes=[])

        assert exc_info.value.code == "empty_batch"
        assert store.groups == {}

    @pytest.mark.asyncio
    async def test_duplicate_codes_rejected(self, service, store, grants, now):
        """Should reject values repeated within the batch, naming them."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_batch(now + timedelta(days=1), grants, codes=["A1", "B2", " A1"])

        assert exc_info.value.code == "duplicate_code"
        assert exc_info.value.details == {"codes": ["A1"]}
        assert store.lookup == {}

    @pytest.mark.asyncio
    async def test_blank_code_rejected(self, service, store, grants, now):
        """Should reject whitespace-only codes."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_batch(now + timedelta(days=1), grants, codes=["A1", "  "])

        assert exc_info.value.code == "blank_code"

    @pytest.mark.asyncio
    async def test_expiration_must_be_in_future(self, service, store, grants, now):
        """Should reject a batch that would be born expired."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_batch(now, grants, codes=["A1"])

        assert exc_info.value.code == "invalid_expiration"

    @pytest.mark.asyncio
    async def test_batch_size_limit(self, service, store, grants, now):
        """Should reject batches above the configured size."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_batch(now + timedelta(days=1), grants, count=6)

        assert exc_info.value.code == "batch_too_large"

    @pytest.mark.asyncio
    async def test_grants_required(self, service, store, now):
        """Should reject a batch without entitlement grants."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_batch(now + timedelta(days=1), (), codes=["A1"])

        assert exc_info.value.code == "invalid_grants"


class TestCreateBatch:
    """Tests for successful creation and global uniqueness."""

    @pytest.mark.asyncio
    async def test_creates_batch_with_explicit_codes(self, service, store, grants, now):
        """Should write every code unused and the batch row with its grants."""
        # Act
        batch = await service.create_batch(
            now + timedelta(days=30), grants, codes=["A1", " A2 "], name="March"
        )

        # Assert
        assert batch.code_count == 2
        assert batch.created_at == now
        assert store.lookup == {"A1": batch.id, "A2": batch.id}
        assert [c.value for c in await service.list_codes(batch.id)] == ["A1", "A2"]
        assert all(not c.is_used for c in await service.list_codes(batch.id))

        stored = await service.get_batch(batch.id)
        assert stored is not None
        assert stored.name == "March"
        assert stored.grants == grants

    @pytest.mark.asyncio
    async def test_collision_releases_claimed_codes(self, service, store, grants, now):
        """A code owned by another batch should fail the whole creation."""
        # Arrange
        first = await service.create_batch(now + timedelta(days=1), grants, codes=["TAKEN"])

        # Act
        with pytest.raises(DuplicateError) as exc_info:
            await service.create_batch(now + timedelta(days=1), grants, codes=["NEW", "TAKEN"])

        # Assert
        assert exc_info.value.code == "code_exists"
        assert exc_info.value.details == {"codes": ["TAKEN"]}
        assert store.lookup == {"TAKEN": first.id}
        assert list(store.groups) == [first.id]

    @pytest.mark.asyncio
    async def test_failed_write_releases_claimed_codes(self, service, store, grants, now):
        """A batch that cannot be stored should leave its codes free for reuse."""
        # Arrange
        store.fail_group_writes = True

        # Act
        with pytest.raises(DatabaseError):
            await service.create_batch(now + timedelta(days=1), grants, codes=["X1", "X2"])

        # Assert
        assert store.lookup == {}
        assert store.codes == {}
        assert store.groups == {}

        store.fail_group_writes = False
        batch = await service.create_batch(now + timedelta(days=1), grants, codes=["X1"])
        assert store.lookup == {"X1": batch.id}

    @pytest.mark.asyncio
    async def test_generates_requested_number_of_codes(self, service, store, grants, now):
        """Should generate ``count`` distinct codes of the configured length."""
        batch = await service.create_batch(now + timedelta(days=1), grants, count=4)

        codes = await service.list_codes(batch.id)
        assert batch.code_count == 4
        assert len(codes) == 4
        assert all(len(c.value) == 6 for c in codes)

    @pytest.mark.asyncio
    async def test_generation_retries_on_collision(
        self, service, store, grants, now, monkeypatch
    ):
        """Colliding generated codes should be replaced by fresh ones."""
        # Arrange
        await service.create_batch(now + timedelta(days=1), grants, codes=["AAAAAA"])
        rounds = iter([["AAAAAA", "BBBBBB"], ["CCCCCC"]])
        monkeypatch.setattr(
            "edupass.codes.service.generate_codes", lambda count, length: next(rounds)
        )

        # Act
        batch = await service.create_batch(now + timedelta(days=1), grants, count=2)

        # Assert
        assert sorted(c.value for c in await service.list_codes(batch.id)) == [
            "BBBBBB",
            "CCCCCC",
        ]


class TestMarkUsed:
    """Tests for the conditional usage flip."""

    @pytest_asyncio.fixture
    async def batch(self, service, store, grants, now):
        return await service.create_batch(now + timedelta(days=1), grants, codes=["A1", "A2"])

    @pytest.mark.asyncio
    async def test_marks_code_used(self, service, batch, now):
        """Should record the redeemer and time."""
        student_id = uuid4()

        code = await service.mark_used(batch.id, "A1", student_id)

        stored = await service.get_code(batch.id, "A1")
        assert code.is_used is True
        assert stored.is_used is True
        assert stored.redeemed_by == student_id
        assert stored.redeemed_at == now

    @pytest.mark.asyncio
    async def test_second_use_rejected(self, service, batch):
        """Should raise AlreadyUsedError once the code is used."""
        await service.mark_used(batch.id, "A1", uuid4())

        with pytest.raises(AlreadyUsedError):
            await service.mark_used(batch.id, "A1", uuid4())

    @pytest.mark.asyncio
    async def test_concurrent_uses_have_one_winner(self, service, batch):
        """Exactly one of many concurrent attempts should succeed."""
        students = [uuid4() for _ in range(8)]

        results = await asyncio.gather(
            *(service.mark_used(batch.id, "A2", s) for s in students),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 7
        assert all(isinstance(e, AlreadyUsedError) for e in losers)
        stored = await service.get_code(batch.id, "A2")
        assert stored.redeemed_by == winners[0].redeemed_by

    @pytest.mark.asyncio
    async def test_unknown_code(self, service, batch):
        """Should raise NotFoundError for a value outside the batch."""
        with pytest.raises(NotFoundError) as exc_info:
            await service.mark_used(batch.id, "ZZ", uuid4())

        assert exc_info.value.code == "code_not_found"

    @pytest.mark.asyncio
    async def test_unknown_batch(self, service, store):
        """Should raise NotFoundError when the batch does not exist."""
        with pytest.raises(NotFoundError) as exc_info:
            await service.mark_used(uuid4(), "A1", uuid4())

        assert exc_info.value.code == "codes_group_not_found"

    @pytest.mark.asyncio
    async def test_revert_only_for_recorded_redeemer(self, service, batch):
        """A revert by anyone but the redeemer should be skipped."""
        owner, other = uuid4(), uuid4()
        await service.mark_used(batch.id, "A1", owner)

        assert await service.revert_used(batch.id, "A1", other) is False
        assert (await service.get_code(batch.id, "A1")).is_used is True

        assert await service.revert_used(batch.id, "A1", owner) is True
        assert (await service.get_code(batch.id, "A1")).is_used is False


class TestListAndDelete:
    """Tests for listing and deleting batches."""

    @pytest.mark.asyncio
    async def test_list_batches_newest_first_with_usage(
        self, mock_session, settings, store, grants, now
    ):
        """Batches should be listed newest first with their used count."""
        # Arrange
        older = CodeBatchService(
            mock_session, "test_keyspace", settings=settings, clock=fixed_clock(now)
        )
        newer = CodeBatchService(
            mock_session,
            "test_keyspace",
            settings=settings,
            clock=fixed_clock(now + timedelta(minutes=5)),
        )
        store.attach(mock_session, older)
        first = await older.create_batch(now + timedelta(days=1), grants, codes=["A1", "A2"])
        await older.mark_used(first.id, "A1", uuid4())
        store.attach(mock_session, newer)
        second = await newer.create_batch(now + timedelta(days=1), grants, codes=["B1"])

        # Act
        listed = await newer.list_batches()

        # Assert
        assert [(b.id, used) for b, used in listed] == [(second.id, 0), (first.id, 1)]

    @pytest.mark.asyncio
    async def test_delete_batch_frees_codes_and_drops_cache(
        self, mock_session, settings, grants, now
    ):
        """Deleting should free code values and clear redeemers' cached access."""
        # Arrange
        redis_client = AsyncMock()
        redeemer = uuid4()

        async def scan_iter(match: str):
            yield f"access:{redeemer}:material:x"

        redis_client.scan_iter = scan_iter
        redis_client.delete = AsyncMock(return_value=1)
        service = CodeBatchService(
            mock_session,
            "test_keyspace",
            redis_client=redis_client,
            settings=settings,
            clock=fixed_clock(now),
        )
        store = CodeStore().attach(mock_session, service)
        batch = await service.create_batch(
            now + timedelta(days=1), (CoursesGrant(courses=frozenset({uuid4()})),), codes=["A1"]
        )
        await service.mark_used(batch.id, "A1", redeemer)

        # Act
        removed = await service.delete_batch(batch.id)

        # Assert
        assert removed == 1
        assert store.groups == {}
        assert store.codes == {}
        assert store.lookup == {}
        redis_client.delete.assert_awaited_once_with(f"access:{redeemer}:material:x")
        assert executed_with(mock_session, service._delete_group) == [[batch.id]]

    @pytest.mark.asyncio
    async def test_delete_unknown_batch(self, service, store):
        """Should raise NotFoundError for a missing batch."""
        with pytest.raises(NotFoundError):
            await service.delete_batch(uuid4())


@pytest.mark.asyncio
async def test_find_batch_by_code_is_exact(service, store):
    """Lookup should trim whitespace but not fold case."""
    group_id: UUID = uuid4()
    store.lookup["Ab12"] = group_id

    assert await service.find_batch_by_code(" Ab12 ") == group_id
    assert await service.find_batch_by_code("AB12") is None
