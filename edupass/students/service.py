# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Student profile service and account deletion."""

from dataclasses import replace
from typing import TYPE_CHECKING
from uuid import UUID

from edupass.catalog.models import utc_now
from edupass.core.exceptions import DatabaseError, DuplicateError, NotFoundError
from edupass.core.logging import get_logger
from edupass.core.redis import invalidate_access_cache

from .models import Student
from .schemas import ProfileUpdate


if TYPE_CHECKING:
    import redis.asyncio as redis
    from cassandra.cluster import Session

    from edupass.codes.redemption import RedemptionService
    from edupass.favorites.service import FavoriteService


logger = get_logger(__name__)


class StudentService:
    """Profiles, push tokens, the block flag and account deletion."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redemptions: "RedemptionService",
        favorites: "FavoriteService",
        redis_client: "redis.Redis | None" = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.redemptions = redemptions
        self.favorites = favorites
        self.redis = redis_client
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._upsert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.students
            (id, fname, lname, email, phone, image, fcm_token, is_blocked,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.students WHERE id = ?
        """)
        self._get_by_phone = self.session.prepare(f"""
            SELECT id FROM {self.keyspace}.students WHERE phone = ?
        """)
        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.students
        """)
        self._update_fcm_token = self.session.prepare(f"""
            UPDATE {self.keyspace}.students SET fcm_token = ?, updated_at = ? WHERE id = ?
        """)
        self._update_blocked = self.session.prepare(f"""
            UPDATE {self.keyspace}.students SET is_blocked = ?, updated_at = ? WHERE id = ?
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.students WHERE id = ?
        """)

    async def get(self, student_id: UUID) -> Student | None:
        row = (await self.session.aexecute(self._get, [student_id])).one()
        return Student.from_row(row) if row else None

    async def require(self, student_id: UUID) -> Student:
        student = await self.get(student_id)
        if student is None:
            raise NotFoundError("Student not found", code="student_not_found")
        return student

    async def list_students(self, search: str | None = None) -> list[Student]:
        """All students, newest first, optionally filtered by name, email or phone."""
        rows = await self.session.aexecute(self._list)
        students = sorted(
            (Student.from_row(r) for r in rows), key=lambda s: s.created_at, reverse=True
        )
        if search:
            needle = search.casefold()
            students = [
                s
                for s in students
                if needle in s.full_name.casefold()
                or needle in (s.email or "").casefold()
                or needle in (s.phone or "")
            ]
        return students

    async def update_profile(self, student_id: UUID, data: ProfileUpdate) -> Student:
        """Update the profile; the first update creates the row.

        Raises:
            DuplicateError: The phone number belongs to another student.
        """
        current = await self.get(student_id) or Student(id=student_id)
        if data.phone is not None and data.phone != current.phone:
            for row in await self.session.aexecute(self._get_by_phone, [data.phone]):
                if row.id != student_id:
                    raise DuplicateError("Phone number already in use", code="phone_in_use")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        student = replace(current, **changes, updated_at=utc_now())
        await self._save(student)
        logger.info("student_profile_updated", student_id=str(student_id), fields=sorted(changes))
        return student

    async def _save(self, student: Student) -> None:
        try:
            await self.session.aexecute(
                self._upsert,
                [
                    student.id,
                    student.fname,
                    student.lname,
                    student.email,
                    student.phone,
                    student.image,
                    student.fcm_token,
                    student.is_blocked,
                    student.created_at,
                    student.updated_at,
                ],
            )
        except Exception as e:
            logger.exception("database_error_saving_student", student_id=str(student.id))
            raise DatabaseError("Failed to save student", original_error=e) from e

    async def update_fcm_token(self, student_id: UUID, fcm_token: str) -> None:
        await self.require(student_id)
        await self.session.aexecute(self._update_fcm_token, [fcm_token, utc_now(), student_id])
        logger.info("student_fcm_token_updated", student_id=str(student_id))

    async def toggle_block(self, student_id: UUID) -> bool:
        """Flip the block flag and return its new value."""
        student = await self.require(student_id)
        blocked = not student.is_blocked
        await self.session.aexecute(self._update_blocked, [blocked, utc_now(), student_id])
        logger.info("student_block_toggled", student_id=str(student_id), is_blocked=blocked)
        return blocked

    async def is_blocked(self, student_id: UUID) -> bool:
        return (await self.require(student_id)).is_blocked

    async def delete_account(self, student_id: UUID) -> None:
        """Remove the ledger, favorites and profile. Redeemed codes stay used."""
        await self.require(student_id)
        removed = await self.redemptions.remove_entries(student_id)
        await self.favorites.remove_all(student_id)
        try:
            await self.session.aexecute(self._delete, [student_id])
        except Exception as e:
            logger.exception("database_error_deleting_student", student_id=str(student_id))
            raise DatabaseError("Failed to delete student", original_error=e) from e
        await invalidate_access_cache(self.redis, [student_id])
        logger.info("student_account_deleted", student_id=str(student_id), redemptions=removed)
