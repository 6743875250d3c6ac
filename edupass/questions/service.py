# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Question group service layer.

Business logic for:
- Question group CRUD with question validation
- Positional edits (update/delete one question by index)
- Remote image cleanup after deletions
- The free-question snapshot (regeneration and sampling)
"""

import random
from typing import TYPE_CHECKING
from uuid import UUID

from edupass.catalog.models import utc_now
from edupass.core.exceptions import DatabaseError, NotFoundError
from edupass.core.logging import get_logger
from edupass.storage.bunny import RemoteAsset, RemoteDeletionResult

from .models import (
    FreeQuestionGroup,
    QuestionGroup,
    images_to_json,
    questions_to_json,
    validate_questions,
    with_question_replaced,
    without_question,
)
from .schemas import QuestionGroupCreate, QuestionGroupUpdate, QuestionSchema


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from edupass.catalog.service import LessonService
    from edupass.storage.bunny import BunnyStorageClient


logger = get_logger(__name__)


class QuestionGroupService:
    """Service for question groups."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        lessons: "LessonService",
        storage: "BunnyStorageClient",
    ):
        self.session = session
        self.keyspace = keyspace
        self.lessons = lessons
        self.storage = storage
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.question_groups
            (id, lesson_id, paragraph, images, questions, question_count,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.question_groups WHERE id = ?
        """)
        self._list_by_lesson = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.question_groups WHERE lesson_id = ?
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.question_groups WHERE id = ?
        """)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get(self, group_id: UUID) -> QuestionGroup | None:
        row = (await self.session.aexecute(self._get, [group_id])).one()
        return QuestionGroup.from_row(row) if row else None

    async def require(self, group_id: UUID) -> QuestionGroup:
        group = await self.get(group_id)
        if group is None:
            raise NotFoundError("Question group not found", code="question_group_not_found")
        return group

    async def list_by_lesson(self, lesson_id: UUID) -> list[QuestionGroup]:
        rows = await self.session.aexecute(self._list_by_lesson, [lesson_id])
        return sorted((QuestionGroup.from_row(r) for r in rows), key=lambda g: g.created_at)

    async def resolve_material_id(self, group_id: UUID) -> UUID | None:
        """Material of a group via lesson -> unit; ``None`` on a broken chain."""
        group = await self.get(group_id)
        if group is None:
            return None
        return await self.lessons.resolve_material_id(group.lesson_id)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def create(self, data: QuestionGroupCreate) -> QuestionGroup:
        await self.lessons.require(data.lesson_id)
        questions = [q.to_question() for q in data.questions]
        validate_questions(questions)

        group = QuestionGroup(
            lesson_id=data.lesson_id,
            paragraph=data.paragraph,
            images=[i.to_image() for i in data.images],
            questions=questions,
        )
        await self._save(group)
        logger.info(
            "question_group_created",
            question_group_id=str(group.id),
            lesson_id=str(group.lesson_id),
            question_count=len(questions),
        )
        return group

    async def update(self, group_id: UUID, data: QuestionGroupUpdate) -> QuestionGroup:
        group = await self.require(group_id)
        if data.questions is not None:
            questions = [q.to_question() for q in data.questions]
            validate_questions(questions)
            group.questions = questions
        if data.paragraph is not None:
            group.paragraph = data.paragraph
        if data.images is not None:
            group.images = [i.to_image() for i in data.images]
        await self._save(group)
        return group

    async def update_question(
        self, group_id: UUID, index: int, question: QuestionSchema
    ) -> QuestionGroup:
        group = await self.require(group_id)
        replacement = question.to_question()
        replacement.validate(index)
        group.questions = with_question_replaced(group.questions, index, replacement)
        await self._save(group)
        logger.info("question_updated", question_group_id=str(group_id), index=index)
        return group

    async def delete_question(
        self, group_id: UUID, index: int
    ) -> tuple[QuestionGroup, list[RemoteDeletionResult]]:
        """Remove one question, then clean up its info images.

        Favorites pointing at later positions are not renumbered.
        """
        group = await self.require(group_id)
        removed = group.questions[index] if 0 <= index < len(group.questions) else None
        group.questions = without_question(group.questions, index)
        await self._save(group)
        logger.info(
            "question_deleted",
            question_group_id=str(group_id),
            index=index,
            remaining=len(group.questions),
        )

        urls = [i.access_url for i in removed.info_images if i.access_url] if removed else []
        results = await self.storage.delete_assets([RemoteAsset.file(url) for url in urls])
        return group, results

    async def delete(self, group_id: UUID) -> list[RemoteDeletionResult]:
        """Delete the group, then its stored images (commit, then reconcile)."""
        group = await self.require(group_id)
        await self.session.aexecute(self._delete, [group_id])
        logger.info("question_group_deleted", question_group_id=str(group_id))

        results = await self.storage.delete_assets(
            [RemoteAsset.file(url) for url in group.remote_files()]
        )
        failed = [r for r in results if not r.ok]
        if failed:
            logger.warning(
                "question_group_cleanup_incomplete",
                question_group_id=str(group_id),
                failed=len(failed),
            )
        return results

    async def _save(self, group: QuestionGroup) -> None:
        group.updated_at = utc_now()
        try:
            await self.session.aexecute(
                self._insert,
                [
                    group.id,
                    group.lesson_id,
                    group.paragraph,
                    images_to_json(group.images),
                    questions_to_json(group.questions),
                    len(group.questions),
                    group.created_at,
                    group.updated_at,
                ],
            )
        except Exception as e:
            logger.exception(
                "database_error_saving_question_group", question_group_id=str(group.id)
            )
            raise DatabaseError("Failed to save question group", original_error=e) from e


class FreeQuestionService:
    """Free tier: a resampled snapshot of one-question groups, not gated.

    Regeneration is delete-all then insert; readers may briefly see an empty
    free set while it runs.
    """

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        groups: QuestionGroupService,
        lessons: "LessonService",
        rng: random.Random | None = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.groups = groups
        self.lessons = lessons
        self.rng = rng or random.SystemRandom()
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._truncate = f"TRUNCATE {self.keyspace}.free_question_groups"
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.free_question_groups
            (id, source_group_id, lesson_id, paragraph, images, questions, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_by_lesson = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.free_question_groups WHERE lesson_id = ?
        """)

    async def regenerate(self, num_of_groups: int) -> tuple[int, int]:
        """Replace the snapshot with up to ``num_of_groups`` groups per lesson.

        Only groups holding exactly one question are eligible.

        Returns:
            (groups created, lessons that contributed at least one group)
        """
        await self.session.aexecute(self._truncate)

        created = 0
        lessons_sampled = 0
        for lesson in await self.lessons.list_all():
            eligible = [
                g for g in await self.groups.list_by_lesson(lesson.id) if len(g.questions) == 1
            ]
            if not eligible:
                continue
            picked = self.rng.sample(eligible, min(num_of_groups, len(eligible)))
            for group in picked:
                await self._insert_snapshot(FreeQuestionGroup.snapshot_of(group))
            created += len(picked)
            lessons_sampled += 1

        logger.info(
            "free_questions_regenerated",
            groups_created=created,
            lessons_sampled=lessons_sampled,
            num_of_groups=num_of_groups,
        )
        return created, lessons_sampled

    async def _insert_snapshot(self, free_group: FreeQuestionGroup) -> None:
        await self.session.aexecute(
            self._insert,
            [
                free_group.id,
                free_group.source_group_id,
                free_group.lesson_id,
                free_group.paragraph,
                images_to_json(free_group.images),
                questions_to_json(free_group.questions),
                free_group.created_at,
            ],
        )

    async def sample(self, lesson_id: UUID, limit: int) -> list[FreeQuestionGroup]:
        """Random sample of at most ``limit`` free groups of a lesson."""
        await self.lessons.require(lesson_id)
        rows = await self.session.aexecute(self._list_by_lesson, [lesson_id])
        free_groups = [FreeQuestionGroup.from_row(r) for r in rows]
        if len(free_groups) <= limit:
            self.rng.shuffle(free_groups)
            return free_groups
        return self.rng.sample(free_groups, limit)
