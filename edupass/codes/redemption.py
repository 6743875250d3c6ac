# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Redemption ledger.

A student's ledger is the list of codes they redeemed, in redemption order.
It is append-only; entries are removed only when the account is deleted.
Entitlements are never stored here: they are derived from the ledger and
the live state of each referenced batch.
"""

from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from edupass.catalog.models import utc_now
from edupass.core.exceptions import (
    AlreadyUsedError,
    DatabaseError,
    ExpiredError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from edupass.core.logging import get_logger

from .models import CodeBatch, RedemptionEntry, normalize_code


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from .service import CodeBatchService


logger = get_logger(__name__)


class RedemptionService:
    """Redeems codes and reads the per-student ledger."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        batches: "CodeBatchService",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.keyspace = keyspace
        self.batches = batches
        self.clock = clock
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_entry = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.student_redemptions
            (student_id, redeemed_at, code, group_id)
            VALUES (?, ?, ?, ?)
        """)
        self._list_entries = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.student_redemptions WHERE student_id = ?
        """)
        self._delete_entries = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.student_redemptions WHERE student_id = ?
        """)

    async def redeem(
        self, student_id: UUID, code_value: str, now: datetime | None = None
    ) -> tuple[RedemptionEntry, CodeBatch]:
        """Consume ``code_value`` for ``student_id``.

        The usage flag is flipped with a conditional update first, then the
        ledger entry is appended. When the append fails the flip is undone
        (conditional on this student still being the redeemer) so that the
        code can be redeemed again.

        Raises:
            ValidationError: Blank code.
            NotFoundError: No batch owns the code.
            ExpiredError: The owning batch is past its expiration.
            AlreadyUsedError: The code was already consumed.
            InternalError: The ledger could not be written.
        """
        now = now or self.clock()
        value = normalize_code(code_value)
        if not value:
            raise ValidationError("Code is required", code="code_required")

        group_id = await self.batches.find_batch_by_code(value)
        batch = await self.batches.get_batch(group_id) if group_id else None
        if batch is None:
            logger.info("redemption_rejected", reason="not_found", student_id=str(student_id))
            raise NotFoundError("Code not found", code="code_not_found")

        code = await self.batches.get_code(batch.id, value)
        if code is None:
            logger.info("redemption_rejected", reason="not_found", student_id=str(student_id))
            raise NotFoundError("Code not found", code="code_not_found")

        # A consumed code reports as used even once its batch has expired
        if code.is_used:
            logger.info(
                "redemption_rejected",
                reason="already_used",
                student_id=str(student_id),
                group_id=str(batch.id),
            )
            raise AlreadyUsedError()
        if not batch.is_live(now):
            logger.info(
                "redemption_rejected",
                reason="expired",
                student_id=str(student_id),
                group_id=str(batch.id),
            )
            raise ExpiredError()

        await self.batches.mark_used(batch.id, value, student_id, now)

        entry = RedemptionEntry(
            student_id=student_id, code=value, group_id=batch.id, redeemed_at=now
        )
        try:
            await self.session.aexecute(
                self._insert_entry,
                [entry.student_id, entry.redeemed_at, entry.code, entry.group_id],
            )
        except Exception as e:
            logger.exception(
                "database_error_appending_redemption",
                student_id=str(student_id),
                group_id=str(batch.id),
            )
            await self.batches.revert_used(batch.id, value, student_id)
            raise InternalError("Failed to record redemption, please try again") from e

        logger.info(
            "code_redeemed",
            student_id=str(student_id),
            group_id=str(batch.id),
            code=value,
        )
        return entry, batch

    async def list_entries(self, student_id: UUID) -> list[RedemptionEntry]:
        """The student's ledger, oldest redemption first."""
        rows = await self.session.aexecute(self._list_entries, [student_id])
        return [RedemptionEntry.from_row(row) for row in rows]

    async def describe_entries(
        self, student_id: UUID
    ) -> list[tuple[RedemptionEntry, CodeBatch | None]]:
        """Ledger entries joined with the current batch (``None`` if deleted)."""
        entries = await self.list_entries(student_id)
        cache: dict[UUID, CodeBatch | None] = {}
        described = []
        for entry in entries:
            if entry.group_id not in cache:
                cache[entry.group_id] = await self.batches.get_batch(entry.group_id)
            described.append((entry, cache[entry.group_id]))
        return described

    async def remove_entries(self, student_id: UUID) -> int:
        """Drop the whole ledger of a student; codes stay used."""
        entries = await self.list_entries(student_id)
        try:
            await self.session.aexecute(self._delete_entries, [student_id])
        except Exception as e:
            logger.exception("database_error_removing_redemptions", student_id=str(student_id))
            raise DatabaseError("Failed to remove redemptions", original_error=e) from e
        logger.info("redemptions_removed", student_id=str(student_id), count=len(entries))
        return len(entries)
