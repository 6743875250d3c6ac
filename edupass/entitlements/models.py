"""Access targets and course scopes."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class TargetKind(str, Enum):
    MATERIAL = "material"
    COURSE = "course"
    QUESTION_GROUP = "question_group"
    VIDEO = "video"


@dataclass(frozen=True)
class AccessTarget:
    """Content a student asks for; resolved to a material (and course)."""

    kind: TargetKind
    id: UUID

    @classmethod
    def material(cls, material_id: UUID) -> "AccessTarget":
        return cls(TargetKind.MATERIAL, material_id)

    @classmethod
    def course(cls, course_id: UUID) -> "AccessTarget":
        return cls(TargetKind.COURSE, course_id)

    @classmethod
    def question_group(cls, group_id: UUID) -> "AccessTarget":
        return cls(TargetKind.QUESTION_GROUP, group_id)

    @classmethod
    def video(cls, video_id: UUID) -> "AccessTarget":
        return cls(TargetKind.VIDEO, video_id)


@dataclass(frozen=True)
class CourseScope:
    """Courses of one material a student may open.

    ``all_courses`` when a material-level grant covers the material,
    otherwise only the directly granted ``course_ids``.
    """

    all_courses: bool = False
    course_ids: frozenset[UUID] = frozenset()

    def allows(self, course_id: UUID) -> bool:
        return self.all_courses or course_id in self.course_ids

    def is_empty(self) -> bool:
        return not self.all_courses and not self.course_ids
