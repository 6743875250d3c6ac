# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Favorites index."""

from typing import TYPE_CHECKING
from uuid import UUID

from edupass.core.exceptions import DatabaseError, DuplicateError, ForbiddenError, NotFoundError
from edupass.core.logging import get_logger
from edupass.entitlements.models import AccessTarget
from edupass.questions.models import QuestionGroup, check_index

from .models import Favorite


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from edupass.entitlements.resolver import EntitlementResolver
    from edupass.questions.service import QuestionGroupService


logger = get_logger(__name__)


class FavoriteService:
    """Per-student question bookmarks, gated by entitlement on write."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        question_groups: "QuestionGroupService",
        resolver: "EntitlementResolver",
    ):
        self.session = session
        self.keyspace = keyspace
        self.question_groups = question_groups
        self.resolver = resolver
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.student_favorites
            (student_id, question_group_id, question_index, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.student_favorites
            WHERE student_id = ? AND question_group_id = ? AND question_index = ?
            IF EXISTS
        """)
        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.student_favorites WHERE student_id = ?
        """)
        self._delete_all = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.student_favorites WHERE student_id = ?
        """)

    async def add(self, student_id: UUID, group_id: UUID, index: int) -> Favorite:
        """Bookmark question ``index`` of ``group_id``.

        Raises:
            NotFoundError: Group missing, or its lesson/unit/material chain
                is broken.
            ForbiddenError: The student has no access to the group.
            OutOfRangeError: ``index`` outside the group's questions.
            DuplicateError: Already bookmarked.
        """
        group = await self.question_groups.require(group_id)
        material_id = await self.question_groups.resolve_material_id(group_id)
        if material_id is None:
            raise NotFoundError("Question group is not available", code="content_unavailable")
        if not await self.resolver.has_access(student_id, AccessTarget.material(material_id)):
            raise ForbiddenError()
        check_index(group.questions, index)

        favorite = Favorite(student_id=student_id, question_group_id=group_id, question_index=index)
        result = await self.session.aexecute(
            self._insert,
            [
                favorite.student_id,
                favorite.question_group_id,
                favorite.question_index,
                favorite.created_at,
            ],
        )
        if not result.was_applied:
            raise DuplicateError("Question is already in favorites", code="favorite_exists")

        logger.info(
            "favorite_added",
            student_id=str(student_id),
            question_group_id=str(group_id),
            index=index,
        )
        return favorite

    async def remove(self, student_id: UUID, group_id: UUID, index: int) -> bool:
        """Remove a bookmark; ``False`` when there was nothing to remove."""
        result = await self.session.aexecute(self._delete, [student_id, group_id, index])
        removed = bool(result.was_applied)
        if removed:
            logger.info(
                "favorite_removed",
                student_id=str(student_id),
                question_group_id=str(group_id),
                index=index,
            )
        return removed

    async def list_entries(self, student_id: UUID) -> list[Favorite]:
        rows = await self.session.aexecute(self._list, [student_id])
        return sorted((Favorite.from_row(row) for row in rows), key=lambda f: f.created_at)

    async def favorite_pairs(self, student_id: UUID) -> set[tuple[UUID, int]]:
        return {favorite.key for favorite in await self.list_entries(student_id)}

    async def list_favorites(self, student_id: UUID) -> list[tuple[Favorite, QuestionGroup]]:
        """Favorites in creation order with their (whole) group.

        Favorites pointing at a deleted group or a question index that no
        longer exists are skipped.
        """
        groups: dict[UUID, QuestionGroup | None] = {}
        result = []
        for favorite in await self.list_entries(student_id):
            if favorite.question_group_id not in groups:
                groups[favorite.question_group_id] = await self.question_groups.get(
                    favorite.question_group_id
                )
            group = groups[favorite.question_group_id]
            if group is None or not 0 <= favorite.question_index < len(group.questions):
                continue
            result.append((favorite, group))
        return result

    async def remove_all(self, student_id: UUID) -> None:
        try:
            await self.session.aexecute(self._delete_all, [student_id])
        except Exception as e:
            logger.exception("database_error_removing_favorites", student_id=str(student_id))
            raise DatabaseError("Failed to remove favorites", original_error=e) from e
