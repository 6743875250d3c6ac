"""Catalog models and Cassandra schema.

Containment chain: Material -> Unit -> Lesson (-> QuestionGroup, see
``edupass.questions``). Parent links are plain id columns backed by
secondary indexes, so a deleted parent leaves children pointing at nothing;
readers treat a missing link as "not found" and access checks fail closed.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MATERIALS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.materials (
    id UUID PRIMARY KEY,
    name TEXT,
    color TEXT,
    icon_filename TEXT,
    icon_access_url TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

UNITS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.units (
    id UUID PRIMARY KEY,
    material_id UUID,
    name TEXT,
    color TEXT,
    icon_filename TEXT,
    icon_access_url TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

UNITS_MATERIAL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.units (material_id)
"""

LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    unit_id UUID,
    name TEXT,
    color TEXT,
    icon_filename TEXT,
    icon_access_url TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

LESSONS_UNIT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.lessons (unit_id)
"""

TEACHERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.teachers (
    id UUID PRIMARY KEY,
    fname TEXT,
    lname TEXT,
    phone TEXT,
    created_at TIMESTAMP
)
"""


CATALOG_TABLES_CQL = [
    MATERIALS_TABLE_CQL,
    UNITS_TABLE_CQL,
    UNITS_MATERIAL_INDEX_CQL,
    LESSONS_TABLE_CQL,
    LESSONS_UNIT_INDEX_CQL,
    TEACHERS_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Icon:
    filename: str
    access_url: str


def _icon_from_row(row: "Row") -> Icon | None:
    if not getattr(row, "icon_access_url", None):
        return None
    return Icon(filename=row.icon_filename or "", access_url=row.icon_access_url)


@dataclass
class Material:
    name: str
    id: UUID = field(default_factory=uuid4)
    color: str | None = None
    icon: Icon | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Material":
        return cls(
            id=row.id,
            name=row.name,
            color=row.color,
            icon=_icon_from_row(row),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at) or utc_now(),
        )


@dataclass
class Unit:
    material_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    color: str | None = None
    icon: Icon | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Unit":
        return cls(
            id=row.id,
            material_id=row.material_id,
            name=row.name,
            color=row.color,
            icon=_icon_from_row(row),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at) or utc_now(),
        )


@dataclass
class Lesson:
    unit_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    color: str | None = None
    icon: Icon | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Lesson":
        return cls(
            id=row.id,
            unit_id=row.unit_id,
            name=row.name,
            color=row.color,
            icon=_icon_from_row(row),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at) or utc_now(),
        )


@dataclass
class Teacher:
    fname: str
    lname: str
    id: UUID = field(default_factory=uuid4)
    phone: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Teacher":
        return cls(
            id=row.id,
            fname=row.fname,
            lname=row.lname,
            phone=row.phone,
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    @property
    def full_name(self) -> str:
        return f"{self.fname} {self.lname}".strip()
