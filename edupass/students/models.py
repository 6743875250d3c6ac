"""Student profile model and Cassandra schema.

Accounts are created by the identity service; this table holds the profile
data the platform manages (contact fields, push token, block flag).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from edupass.catalog.models import ensure_utc_aware, utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

STUDENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.students (
    id UUID PRIMARY KEY,
    fname TEXT,
    lname TEXT,
    email TEXT,
    phone TEXT,
    image TEXT,
    fcm_token TEXT,
    is_blocked BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

STUDENTS_PHONE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS students_phone_idx ON {keyspace}.students (phone)
"""

STUDENTS_TABLES_CQL = [STUDENTS_TABLE_CQL, STUDENTS_PHONE_INDEX_CQL]


@dataclass
class Student:
    id: UUID
    fname: str | None = None
    lname: str | None = None
    email: str | None = None
    phone: str | None = None
    image: str | None = None
    fcm_token: str | None = None
    is_blocked: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Student":
        return cls(
            id=row.id,
            fname=row.fname,
            lname=row.lname,
            email=row.email,
            phone=row.phone,
            image=row.image,
            fcm_token=row.fcm_token,
            is_blocked=bool(row.is_blocked),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at) or utc_now(),
        )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.fname, self.lname) if part)
