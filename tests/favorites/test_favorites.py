"""Tests for the favorites index."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from edupass.core.exceptions import (
    DuplicateError,
    ForbiddenError,
    NotFoundError,
    OutOfRangeError,
)
from edupass.entitlements import AccessTarget
from edupass.favorites.models import Favorite
from edupass.favorites.schemas import FavoriteResponse
from edupass.favorites.service import FavoriteService
from edupass.questions.models import Choice, Question, QuestionGroup

from tests.fakes import FakeResult, executed_with


def make_group(count: int = 3) -> QuestionGroup:
    return QuestionGroup(
        lesson_id=uuid4(),
        questions=[
            Question(text=f"Q{i}", choices=(Choice("a", True), Choice("b")))
            for i in range(count)
        ],
    )


@pytest.fixture
def group() -> QuestionGroup:
    return make_group()


@pytest.fixture
def material_id():
    return uuid4()


@pytest.fixture
def question_groups(group, material_id) -> Mock:
    question_groups = Mock()
    question_groups.require = AsyncMock(return_value=group)
    question_groups.get = AsyncMock(return_value=group)
    question_groups.resolve_material_id = AsyncMock(return_value=material_id)
    return question_groups


@pytest.fixture
def resolver() -> Mock:
    resolver = Mock()
    resolver.has_access = AsyncMock(return_value=True)
    return resolver


@pytest.fixture
def service(mock_session, question_groups, resolver) -> FavoriteService:
    return FavoriteService(mock_session, "test_keyspace", question_groups, resolver)


def favorite_row(student_id, group_id, index, created_at):
    return SimpleNamespace(
        student_id=student_id,
        question_group_id=group_id,
        question_index=index,
        created_at=created_at,
    )


class TestAddFavorite:
    """Tests for FavoriteService.add."""

    @pytest.mark.asyncio
    async def test_adds_favorite(self, service, mock_session, group, student_id):
        """Should insert the pair with a conditional write."""
        # Act
        favorite = await service.add(student_id, group.id, 1)

        # Assert
        assert favorite.key == (group.id, 1)
        params = executed_with(mock_session, service._insert)
        assert len(params) == 1
        assert params[0][:3] == [student_id, group.id, 1]

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, service, mock_session, group, student_id):
        """Adding the same pair twice should raise DuplicateError."""
        await service.add(student_id, group.id, 1)
        mock_session.aexecute.return_value = FakeResult(was_applied=False)

        with pytest.raises(DuplicateError) as exc_info:
            await service.add(student_id, group.id, 1)

        assert exc_info.value.code == "favorite_exists"

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, service, mock_session, group, student_id):
        """An index past the group's questions should be rejected before writing."""
        with pytest.raises(OutOfRangeError):
            await service.add(student_id, group.id, 3)

        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_access(self, service, resolver, material_id, group, student_id):
        """Favoriting content the student cannot access should be forbidden."""
        resolver.has_access.return_value = False

        with pytest.raises(ForbiddenError):
            await service.add(student_id, group.id, 0)

        resolver.has_access.assert_awaited_once_with(student_id, AccessTarget.material(material_id))

    @pytest.mark.asyncio
    async def test_missing_group(self, service, question_groups, student_id):
        """An unknown group should raise NotFoundError."""
        question_groups.require.side_effect = NotFoundError("Question group not found")

        with pytest.raises(NotFoundError):
            await service.add(student_id, uuid4(), 0)

    @pytest.mark.asyncio
    async def test_broken_chain(self, service, question_groups, group, student_id):
        """A group detached from its material should raise NotFoundError."""
        question_groups.resolve_material_id.return_value = None

        with pytest.raises(NotFoundError) as exc_info:
            await service.add(student_id, group.id, 0)

        assert exc_info.value.code == "content_unavailable"


class TestRemoveFavorite:
    """Removal is idempotent."""

    @pytest.mark.asyncio
    async def test_remove_twice(self, service, mock_session, group, student_id):
        """The first removal should report True, the second False, neither raise."""
        mock_session.aexecute.side_effect = [FakeResult(), FakeResult(was_applied=False)]

        assert await service.remove(student_id, group.id, 1) is True
        assert await service.remove(student_id, group.id, 1) is False


class TestListFavorites:
    """Tests for list_favorites and the projected response."""

    @pytest.mark.asyncio
    async def test_returns_only_bookmarked_question(
        self, service, mock_session, group, student_id, now
    ):
        """The response should hold exactly the question at the bookmarked index."""
        # Arrange
        mock_session.aexecute.return_value = FakeResult(
            [favorite_row(student_id, group.id, 2, now)]
        )

        # Act
        pairs = await service.list_favorites(student_id)
        responses = [FavoriteResponse.from_favorite(f, g) for f, g in pairs]

        # Assert
        assert len(responses) == 1
        assert responses[0].index == 2
        assert [q.text for q in responses[0].questions] == ["Q2"]
        assert responses[0].questions[0].index == 2
        assert responses[0].questions[0].is_favorite is True

    @pytest.mark.asyncio
    async def test_skips_missing_groups_and_stale_indexes(
        self, service, mock_session, question_groups, group, student_id, now
    ):
        """Favorites of deleted groups or removed positions should be skipped."""
        # Arrange
        gone = uuid4()
        mock_session.aexecute.return_value = FakeResult(
            [
                favorite_row(student_id, group.id, 7, now),
                favorite_row(student_id, gone, 0, now + timedelta(seconds=1)),
                favorite_row(student_id, group.id, 0, now + timedelta(seconds=2)),
            ]
        )
        question_groups.get = AsyncMock(
            side_effect=lambda group_id: group if group_id == group.id else None
        )

        # Act
        pairs = await service.list_favorites(student_id)

        # Assert
        assert [f.key for f, _ in pairs] == [(group.id, 0)]
        assert question_groups.get.await_count == 2

    @pytest.mark.asyncio
    async def test_favorite_pairs_is_a_set(self, service, mock_session, group, student_id, now):
        """favorite_pairs should support membership tests on (group, index)."""
        mock_session.aexecute.return_value = FakeResult(
            [favorite_row(student_id, group.id, 0, now), favorite_row(student_id, group.id, 2, now)]
        )

        pairs = await service.favorite_pairs(student_id)

        assert pairs == {(group.id, 0), (group.id, 2)}

    def test_favorite_key(self, student_id) -> None:
        """A favorite should be keyed by group and index."""
        group_id = uuid4()
        favorite = Favorite(student_id=student_id, question_group_id=group_id, question_index=4)

        assert favorite.key == (group_id, 4)
