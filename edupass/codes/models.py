"""Access-code models and Cassandra schema.

A code batch ("codes group") is a set of single-use codes sharing one
expiration and a set of entitlement grants. Grants are a closed family of
variants, each answering ``covers(scope)`` for itself:

- ``MaterialsGrant``: legacy single ``materials`` list.
- ``SplitMaterialsGrant``: ``materialsWithQuestions`` and
  ``materialsWithLectures``; a material in either list is covered.
- ``CoursesGrant``: direct grant on specific courses.

The stored row records which variants a batch carries (``grant_kinds``) and
decoding dispatches on that column, never on which optional columns happen
to be filled.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

from edupass.catalog.models import ensure_utc_aware, utc_now
from edupass.core.exceptions import ValidationError


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CODES_GROUPS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.codes_groups (
    id UUID PRIMARY KEY,
    name TEXT,
    expiration TIMESTAMP,
    grant_kinds SET<TEXT>,
    materials SET<UUID>,
    materials_with_questions SET<UUID>,
    materials_with_lectures SET<UUID>,
    courses SET<UUID>,
    code_count INT,
    created_by UUID,
    created_at TIMESTAMP
)
"""

# Codes of a batch; is_used is flipped with a lightweight transaction
CODES_BY_GROUP_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.codes_by_group (
    group_id UUID,
    value TEXT,
    is_used BOOLEAN,
    redeemed_by UUID,
    redeemed_at TIMESTAMP,
    PRIMARY KEY ((group_id), value)
) WITH CLUSTERING ORDER BY (value ASC)
"""

# Global uniqueness of code values (claimed with INSERT ... IF NOT EXISTS)
CODE_LOOKUP_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.code_lookup (
    value TEXT PRIMARY KEY,
    group_id UUID
)
"""

# Redemption ledger, one partition per student
STUDENT_REDEMPTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.student_redemptions (
    student_id UUID,
    redeemed_at TIMESTAMP,
    code TEXT,
    group_id UUID,
    PRIMARY KEY ((student_id), redeemed_at, code)
) WITH CLUSTERING ORDER BY (redeemed_at ASC, code ASC)
"""


CODES_TABLES_CQL = [
    CODES_GROUPS_TABLE_CQL,
    CODES_BY_GROUP_TABLE_CQL,
    CODE_LOOKUP_TABLE_CQL,
    STUDENT_REDEMPTIONS_TABLE_CQL,
]


# ==============================================================================
# Entitlement grants
# ==============================================================================


@dataclass(frozen=True)
class AccessScope:
    """What a grant must cover: a material, and the course when relevant."""

    material_id: UUID
    course_id: UUID | None = None


class GrantKind(str, Enum):
    MATERIALS = "materials"
    SPLIT_MATERIALS = "split_materials"
    COURSES = "courses"


@dataclass(frozen=True)
class MaterialsGrant:
    kind: ClassVar[GrantKind] = GrantKind.MATERIALS
    is_material_level: ClassVar[bool] = True

    materials: frozenset[UUID]

    def covers(self, scope: AccessScope) -> bool:
        return scope.material_id in self.materials

    def material_ids(self) -> frozenset[UUID]:
        return self.materials

    def course_ids(self) -> frozenset[UUID]:
        return frozenset()

    def is_empty(self) -> bool:
        return not self.materials


@dataclass(frozen=True)
class SplitMaterialsGrant:
    kind: ClassVar[GrantKind] = GrantKind.SPLIT_MATERIALS
    is_material_level: ClassVar[bool] = True

    with_questions: frozenset[UUID] = frozenset()
    with_lectures: frozenset[UUID] = frozenset()

    def covers(self, scope: AccessScope) -> bool:
        return scope.material_id in self.with_questions or scope.material_id in self.with_lectures

    def material_ids(self) -> frozenset[UUID]:
        return self.with_questions | self.with_lectures

    def course_ids(self) -> frozenset[UUID]:
        return frozenset()

    def is_empty(self) -> bool:
        return not (self.with_questions or self.with_lectures)


@dataclass(frozen=True)
class CoursesGrant:
    kind: ClassVar[GrantKind] = GrantKind.COURSES
    is_material_level: ClassVar[bool] = False

    courses: frozenset[UUID]

    def covers(self, scope: AccessScope) -> bool:
        return scope.course_id is not None and scope.course_id in self.courses

    def material_ids(self) -> frozenset[UUID]:
        return frozenset()

    def course_ids(self) -> frozenset[UUID]:
        return self.courses

    def is_empty(self) -> bool:
        return not self.courses


EntitlementGrant = MaterialsGrant | SplitMaterialsGrant | CoursesGrant


def validate_grants(grants: tuple[EntitlementGrant, ...]) -> None:
    """A batch needs at least one grant, at most one per kind, and at most
    one material-level grant (legacy or split, not both)."""
    if not grants:
        raise ValidationError("At least one entitlement grant is required", code="invalid_grants")
    kinds = [grant.kind for grant in grants]
    if len(kinds) != len(set(kinds)):
        raise ValidationError("Each grant kind may appear once", code="invalid_grants")
    if sum(1 for grant in grants if grant.is_material_level) > 1:
        raise ValidationError(
            "Use either materials or materialsWithQuestions/materialsWithLectures",
            code="invalid_grants",
        )
    if any(grant.is_empty() for grant in grants):
        raise ValidationError("Grants must not be empty", code="invalid_grants")


def grants_from_row(row: "Row") -> tuple[EntitlementGrant, ...]:
    grants: list[EntitlementGrant] = []
    kinds = set(row.grant_kinds or ())
    if GrantKind.MATERIALS.value in kinds:
        grants.append(MaterialsGrant(materials=frozenset(row.materials or ())))
    if GrantKind.SPLIT_MATERIALS.value in kinds:
        grants.append(
            SplitMaterialsGrant(
                with_questions=frozenset(row.materials_with_questions or ()),
                with_lectures=frozenset(row.materials_with_lectures or ()),
            )
        )
    if GrantKind.COURSES.value in kinds:
        grants.append(CoursesGrant(courses=frozenset(row.courses or ())))
    return tuple(grants)


def grant_columns(grants: tuple[EntitlementGrant, ...]) -> dict[str, set]:
    """Column values for ``codes_groups`` (unused variants stay empty)."""
    columns: dict[str, set] = {
        "grant_kinds": {grant.kind.value for grant in grants},
        "materials": set(),
        "materials_with_questions": set(),
        "materials_with_lectures": set(),
        "courses": set(),
    }
    for grant in grants:
        if isinstance(grant, MaterialsGrant):
            columns["materials"] = set(grant.materials)
        elif isinstance(grant, SplitMaterialsGrant):
            columns["materials_with_questions"] = set(grant.with_questions)
            columns["materials_with_lectures"] = set(grant.with_lectures)
        elif isinstance(grant, CoursesGrant):
            columns["courses"] = set(grant.courses)
    return columns


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class CodeBatch:
    expiration: datetime
    grants: tuple[EntitlementGrant, ...]
    id: UUID = field(default_factory=uuid4)
    name: str | None = None
    code_count: int = 0
    created_by: UUID | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "CodeBatch":
        return cls(
            id=row.id,
            name=row.name,
            expiration=ensure_utc_aware(row.expiration),
            grants=grants_from_row(row),
            code_count=row.code_count or 0,
            created_by=row.created_by,
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    def is_live(self, now: datetime) -> bool:
        return self.expiration > now

    def covers(self, scope: AccessScope) -> bool:
        return any(grant.covers(scope) for grant in self.grants)

    def material_ids(self) -> frozenset[UUID]:
        return frozenset().union(*(grant.material_ids() for grant in self.grants))

    def course_ids(self) -> frozenset[UUID]:
        return frozenset().union(*(grant.course_ids() for grant in self.grants))


@dataclass
class Code:
    group_id: UUID
    value: str
    is_used: bool = False
    redeemed_by: UUID | None = None
    redeemed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: "Row") -> "Code":
        return cls(
            group_id=row.group_id,
            value=row.value,
            is_used=bool(row.is_used),
            redeemed_by=row.redeemed_by,
            redeemed_at=ensure_utc_aware(row.redeemed_at),
        )


@dataclass(frozen=True)
class RedemptionEntry:
    student_id: UUID
    code: str
    group_id: UUID
    redeemed_at: datetime

    @classmethod
    def from_row(cls, row: "Row") -> "RedemptionEntry":
        return cls(
            student_id=row.student_id,
            code=row.code,
            group_id=row.group_id,
            redeemed_at=ensure_utc_aware(row.redeemed_at),
        )


def normalize_code(value: str) -> str:
    return value.strip()
