"""Course, video and course-file models and Cassandra schema.

Courses belong to a material and a teacher. Videos belong to a course and a
unit of the same material. Course files are ordered by ``num`` inside the
course partition.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from edupass.catalog.models import ensure_utc_aware, utc_now


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    material_id UUID,
    teacher_id UUID,
    name TEXT,
    description TEXT,
    promo_video TEXT,
    seek_points TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSES_MATERIAL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.courses (material_id)
"""

COURSES_TEACHER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.courses (teacher_id)
"""

VIDEOS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.videos (
    id UUID PRIMARY KEY,
    course_id UUID,
    unit_id UUID,
    name TEXT,
    video720 TEXT,
    seek_points TEXT,
    created_at TIMESTAMP
)
"""

VIDEOS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.videos (course_id)
"""

COURSE_FILES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_files (
    course_id UUID,
    num INT,
    id UUID,
    name TEXT,
    filename TEXT,
    access_url TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((course_id), num, id)
) WITH CLUSTERING ORDER BY (num ASC, id ASC)
"""


COURSES_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COURSES_MATERIAL_INDEX_CQL,
    COURSES_TEACHER_INDEX_CQL,
    VIDEOS_TABLE_CQL,
    VIDEOS_COURSE_INDEX_CQL,
    COURSE_FILES_TABLE_CQL,
]


# ==============================================================================
# Value objects
# ==============================================================================


@dataclass(frozen=True)
class VideoLocator:
    """Where a Bunny Stream video lives and how to play/download it."""

    video_id: str
    library_id: str
    access_url: str | None = None
    download_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "libraryId": self.library_id,
            "accessUrl": self.access_url,
            "downloadUrl": self.download_url,
        }

    @classmethod
    def from_json(cls, raw: str | None) -> "VideoLocator | None":
        if not raw:
            return None
        data = json.loads(raw)
        return cls(
            video_id=data["videoId"],
            library_id=data["libraryId"],
            access_url=data.get("accessUrl"),
            download_url=data.get("downloadUrl"),
        )


@dataclass(frozen=True)
class SeekPoint:
    moment: str
    description: str


def seek_points_to_json(points: list[SeekPoint]) -> str:
    return json.dumps([{"moment": p.moment, "description": p.description} for p in points])


def seek_points_from_json(raw: str | None) -> list[SeekPoint]:
    if not raw:
        return []
    return [SeekPoint(moment=p["moment"], description=p["description"]) for p in json.loads(raw)]


def locator_to_json(locator: VideoLocator | None) -> str | None:
    return json.dumps(locator.to_dict()) if locator else None


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class Course:
    material_id: UUID
    teacher_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    promo_video: VideoLocator | None = None
    seek_points: list[SeekPoint] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Course":
        return cls(
            id=row.id,
            material_id=row.material_id,
            teacher_id=row.teacher_id,
            name=row.name,
            description=row.description,
            promo_video=VideoLocator.from_json(row.promo_video),
            seek_points=seek_points_from_json(row.seek_points),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at) or utc_now(),
        )


@dataclass
class Video:
    course_id: UUID
    unit_id: UUID
    name: str
    id: UUID = field(default_factory=uuid4)
    video720: VideoLocator | None = None
    seek_points: list[SeekPoint] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Video":
        return cls(
            id=row.id,
            course_id=row.course_id,
            unit_id=row.unit_id,
            name=row.name,
            video720=VideoLocator.from_json(row.video720),
            seek_points=seek_points_from_json(row.seek_points),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    def without_locators(self) -> "Video":
        """Free-preview copy: metadata only, no playable stream."""
        return replace(self, video720=None)


@dataclass
class CourseFile:
    course_id: UUID
    num: int
    name: str
    filename: str
    access_url: str
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "CourseFile":
        return cls(
            course_id=row.course_id,
            num=row.num,
            id=row.id,
            name=row.name,
            filename=row.filename,
            access_url=row.access_url,
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )
