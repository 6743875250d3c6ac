"""Favorite question bookmarks.

A favorite is a ``(question_group_id, question_index)`` pair. Indexes are
positional; deleting a question from a group does not renumber existing
favorites, and a favorite whose index no longer exists is skipped when
listing.
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

STUDENT_FAVORITES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.student_favorites (
    student_id UUID,
    question_group_id UUID,
    question_index INT,
    created_at TIMESTAMP,
    PRIMARY KEY ((student_id), question_group_id, question_index)
)
"""

FAVORITES_TABLES_CQL = [STUDENT_FAVORITES_TABLE_CQL]


@dataclass(frozen=True)
class Favorite:
    student_id: UUID
    question_group_id: UUID
    question_index: int
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Favorite":
        return cls(
            student_id=row.student_id,
            question_group_id=row.question_group_id,
            question_index=row.question_index,
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    @property
    def key(self) -> tuple[UUID, int]:
        return self.question_group_id, self.question_index
