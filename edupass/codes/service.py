# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Code batch store.

Code values are globally unique: each value is claimed in ``code_lookup``
with ``INSERT ... IF NOT EXISTS`` before the batch is written. The
``is_used`` flag of a code flips through a lightweight transaction so that
exactly one concurrent redeemer wins.
"""

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from edupass.catalog.models import ensure_utc_aware, utc_now
from edupass.config import Settings, get_settings
from edupass.core.exceptions import (
    AlreadyUsedError,
    DatabaseError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from edupass.core.logging import get_logger
from edupass.core.redis import invalidate_access_cache

from .models import (
    Code,
    CodeBatch,
    EntitlementGrant,
    grant_columns,
    normalize_code,
    validate_grants,
)
from .security import generate_codes


if TYPE_CHECKING:
    import redis.asyncio as redis
    from cassandra.cluster import Session


logger = get_logger(__name__)

# Rounds of regeneration when generated codes collide with existing ones
MAX_GENERATION_ROUNDS = 5


class CodeBatchService:
    """Service for code batches ("codes groups") and their codes."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis_client: "redis.Redis | None" = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.keyspace = keyspace
        self.redis = redis_client
        self.settings = settings or get_settings()
        self.clock = clock
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_group = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.codes_groups
            (id, name, expiration, grant_kinds, materials, materials_with_questions,
             materials_with_lectures, courses, code_count, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_group = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.codes_groups WHERE id = ?
        """)
        self._list_groups = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.codes_groups
        """)
        self._delete_group = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.codes_groups WHERE id = ?
        """)

        self._claim_code = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.code_lookup (value, group_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)
        self._release_code = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.code_lookup WHERE value = ? IF group_id = ?
        """)
        self._lookup_code = self.session.prepare(f"""
            SELECT group_id FROM {self.keyspace}.code_lookup WHERE value = ?
        """)

        self._insert_code = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.codes_by_group (group_id, value, is_used)
            VALUES (?, ?, false)
        """)
        self._get_code = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.codes_by_group
            WHERE group_id = ? AND value = ?
        """)
        self._list_codes = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.codes_by_group WHERE group_id = ?
        """)
        self._delete_codes = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.codes_by_group WHERE group_id = ?
        """)
        self._mark_used = self.session.prepare(f"""
            UPDATE {self.keyspace}.codes_by_group
            SET is_used = true, redeemed_by = ?, redeemed_at = ?
            WHERE group_id = ? AND value = ?
            IF is_used = false
        """)
        self._revert_used = self.session.prepare(f"""
            UPDATE {self.keyspace}.codes_by_group
            SET is_used = false, redeemed_by = null, redeemed_at = null
            WHERE group_id = ? AND value = ?
            IF redeemed_by = ?
        """)

    # ==========================================================================
    # Batch creation
    # ==========================================================================

    def _validate_values(self, codes: list[str]) -> list[str]:
        values = [normalize_code(code) for code in codes]
        if not values:
            raise ValidationError("At least one code is required", code="empty_batch")
        if any(not value for value in values):
            raise ValidationError("Codes must not be blank", code="blank_code")
        duplicates = sorted({value for value in values if values.count(value) > 1})
        if duplicates:
            raise ValidationError(
                "Codes must be unique within a batch",
                code="duplicate_code",
                details={"codes": duplicates},
            )
        return values

    async def _claim(self, values: list[str], group_id: UUID) -> tuple[list[str], list[str]]:
        """Claim values in the global lookup; returns (claimed, colliding)."""
        claimed: list[str] = []
        colliding: list[str] = []
        for value in values:
            result = await self.session.aexecute(self._claim_code, [value, group_id])
            if result.was_applied:
                claimed.append(value)
            else:
                colliding.append(value)
        return claimed, colliding

    async def _release(self, values: list[str], group_id: UUID) -> None:
        for value in values:
            await self.session.aexecute(self._release_code, [value, group_id])

    async def _abandon(self, values: list[str], group_id: UUID) -> None:
        """Undo a half-written batch: its code rows and its lookup claims."""
        try:
            await self.session.aexecute(self._delete_codes, [group_id])
            await self._release(values, group_id)
        except Exception:
            logger.exception("database_error_releasing_code_claims", group_id=str(group_id))

    async def create_batch(
        self,
        expiration: datetime,
        grants: tuple[EntitlementGrant, ...],
        codes: list[str] | None = None,
        count: int | None = None,
        name: str | None = None,
        created_by: UUID | None = None,
    ) -> CodeBatch:
        """Create a batch from explicit ``codes`` or ``count`` generated ones.

        Raises:
            ValidationError: Empty, blank or duplicated codes, a batch over
                the size limit, an expiration not in the future, or invalid
                grants.
            DuplicateError: Explicit codes already exist in another batch.
                Codes claimed by this call are released first.
            DatabaseError: The batch could not be stored. Its codes are
                released again.
        """
        now = self.clock()
        expiration = ensure_utc_aware(expiration)
        if codes is None and count is None:
            raise ValidationError("Provide codes or a count", code="empty_batch")
        if codes is not None:
            values = self._validate_values(codes)
        else:
            if count < 1:
                raise ValidationError("Count must be positive", code="empty_batch")
            values = []
        size = len(values) or count
        if size > self.settings.codes_max_batch_size:
            raise ValidationError(
                f"A batch holds at most {self.settings.codes_max_batch_size} codes",
                code="batch_too_large",
            )
        if expiration <= now:
            raise ValidationError("Expiration must be in the future", code="invalid_expiration")
        validate_grants(grants)

        batch = CodeBatch(
            expiration=expiration,
            grants=grants,
            name=name,
            code_count=size,
            created_by=created_by,
            created_at=now,
        )

        if codes is not None:
            claimed, colliding = await self._claim(values, batch.id)
            if colliding:
                await self._release(claimed, batch.id)
                logger.warning(
                    "code_batch_collision",
                    group_id=str(batch.id),
                    collisions=len(colliding),
                )
                raise DuplicateError(
                    "Some codes already exist",
                    code="code_exists",
                    details={"codes": sorted(colliding)},
                )
        else:
            claimed = []
            for _ in range(MAX_GENERATION_ROUNDS):
                missing = size - len(claimed)
                if missing == 0:
                    break
                candidates = [
                    value
                    for value in generate_codes(missing, self.settings.codes_generated_length)
                    if value not in claimed
                ]
                won, _ = await self._claim(candidates, batch.id)
                claimed.extend(won)
            if len(claimed) < size:
                await self._release(claimed, batch.id)
                raise DatabaseError("Could not generate unique codes")
            values = claimed

        try:
            for value in values:
                await self.session.aexecute(self._insert_code, [batch.id, value])
            columns = grant_columns(batch.grants)
            await self.session.aexecute(
                self._insert_group,
                [
                    batch.id,
                    batch.name,
                    batch.expiration,
                    columns["grant_kinds"],
                    columns["materials"],
                    columns["materials_with_questions"],
                    columns["materials_with_lectures"],
                    columns["courses"],
                    batch.code_count,
                    batch.created_by,
                    batch.created_at,
                ],
            )
        except Exception as e:
            logger.exception("database_error_creating_code_batch", group_id=str(batch.id))
            await self._abandon(values, batch.id)
            raise DatabaseError("Failed to create code batch", original_error=e) from e

        logger.info(
            "code_batch_created",
            group_id=str(batch.id),
            code_count=batch.code_count,
            grant_kinds=sorted(grant.kind.value for grant in batch.grants),
            expiration=batch.expiration.isoformat(),
        )
        return batch

    # ==========================================================================
    # Lookups
    # ==========================================================================

    def is_live(self, batch: CodeBatch, now: datetime | None = None) -> bool:
        return batch.is_live(now or self.clock())

    async def get_batch(self, batch_id: UUID) -> CodeBatch | None:
        row = (await self.session.aexecute(self._get_group, [batch_id])).one()
        return CodeBatch.from_row(row) if row else None

    async def require_batch(self, batch_id: UUID) -> CodeBatch:
        batch = await self.get_batch(batch_id)
        if batch is None:
            raise NotFoundError("Codes group not found", code="codes_group_not_found")
        return batch

    async def get_code(self, batch_id: UUID, value: str) -> Code | None:
        row = (await self.session.aexecute(self._get_code, [batch_id, value])).one()
        return Code.from_row(row) if row else None

    async def find_batch_by_code(self, value: str) -> UUID | None:
        """Id of the batch owning ``value``, via the global lookup table."""
        row = (await self.session.aexecute(self._lookup_code, [normalize_code(value)])).one()
        return row.group_id if row else None

    async def list_codes(self, batch_id: UUID) -> list[Code]:
        rows = await self.session.aexecute(self._list_codes, [batch_id])
        return [Code.from_row(row) for row in rows]

    async def list_batches(self) -> list[tuple[CodeBatch, int]]:
        """All batches, newest first, each with its count of used codes."""
        rows = await self.session.aexecute(self._list_groups)
        batches = sorted(
            (CodeBatch.from_row(row) for row in rows),
            key=lambda b: b.created_at,
            reverse=True,
        )
        result = []
        for batch in batches:
            codes = await self.list_codes(batch.id)
            result.append((batch, sum(1 for code in codes if code.is_used)))
        return result

    # ==========================================================================
    # Usage
    # ==========================================================================

    async def mark_used(
        self,
        batch_id: UUID,
        value: str,
        student_id: UUID,
        now: datetime | None = None,
    ) -> Code:
        """Flip ``is_used`` for one code.

        Raises:
            NotFoundError: The batch or the code does not exist.
            AlreadyUsedError: The code was used before (or concurrently).
        """
        now = now or self.clock()
        await self.require_batch(batch_id)

        result = await self.session.aexecute(self._mark_used, [student_id, now, batch_id, value])
        if not result.was_applied:
            if await self.get_code(batch_id, value) is None:
                raise NotFoundError("Code not found", code="code_not_found")
            raise AlreadyUsedError()

        return Code(
            group_id=batch_id,
            value=value,
            is_used=True,
            redeemed_by=student_id,
            redeemed_at=now,
        )

    async def revert_used(self, batch_id: UUID, value: str, student_id: UUID) -> bool:
        """Undo ``mark_used`` if ``student_id`` is still the recorded redeemer."""
        result = await self.session.aexecute(self._revert_used, [batch_id, value, student_id])
        applied = bool(result.was_applied)
        logger.warning(
            "code_usage_reverted" if applied else "code_usage_revert_skipped",
            group_id=str(batch_id),
            code=value,
            student_id=str(student_id),
        )
        return applied

    # ==========================================================================
    # Deletion
    # ==========================================================================

    async def delete_batch(self, batch_id: UUID) -> int:
        """Delete a batch, its codes and their lookup rows.

        Ledger entries pointing at the batch remain and grant nothing. Cached
        decisions of every redeemer are dropped. Returns the number of codes
        removed.
        """
        await self.require_batch(batch_id)
        codes = await self.list_codes(batch_id)
        try:
            for code in codes:
                await self.session.aexecute(self._release_code, [code.value, batch_id])
            await self.session.aexecute(self._delete_codes, [batch_id])
            await self.session.aexecute(self._delete_group, [batch_id])
        except Exception as e:
            logger.exception("database_error_deleting_code_batch", group_id=str(batch_id))
            raise DatabaseError("Failed to delete code batch", original_error=e) from e

        redeemers = {code.redeemed_by for code in codes if code.redeemed_by is not None}
        await invalidate_access_cache(self.redis, redeemers)
        logger.info(
            "code_batch_deleted",
            group_id=str(batch_id),
            code_count=len(codes),
            redeemers=len(redeemers),
        )
        return len(codes)
