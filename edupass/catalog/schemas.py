"""Request/response schemas for the catalog."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from edupass.core.schemas import ApiModel

from .models import Icon, Lesson, Material, Teacher, Unit


class IconSchema(ApiModel):
    filename: str = Field(..., min_length=1)
    access_url: str = Field(..., min_length=1)

    def to_icon(self) -> Icon:
        return Icon(filename=self.filename, access_url=self.access_url)

    @classmethod
    def from_icon(cls, icon: Icon | None) -> "IconSchema | None":
        if icon is None:
            return None
        return cls(filename=icon.filename, access_url=icon.access_url)


# ==============================================================================
# Materials
# ==============================================================================


class MaterialCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    color: str | None = None
    icon: IconSchema | None = None


class MaterialUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    color: str | None = None
    icon: IconSchema | None = None


class MaterialResponse(ApiModel):
    id: UUID
    name: str
    color: str | None = None
    icon: IconSchema | None = None
    created_at: datetime

    @classmethod
    def from_material(cls, material: Material) -> "MaterialResponse":
        return cls(
            id=material.id,
            name=material.name,
            color=material.color,
            icon=IconSchema.from_icon(material.icon),
            created_at=material.created_at,
        )


# ==============================================================================
# Units
# ==============================================================================


class UnitCreate(ApiModel):
    material_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    color: str | None = None
    icon: IconSchema | None = None


class UnitResponse(ApiModel):
    id: UUID
    material_id: UUID
    name: str
    color: str | None = None
    icon: IconSchema | None = None
    lesson_count: int | None = None
    created_at: datetime

    @classmethod
    def from_unit(cls, unit: Unit, lesson_count: int | None = None) -> "UnitResponse":
        return cls(
            id=unit.id,
            material_id=unit.material_id,
            name=unit.name,
            color=unit.color,
            icon=IconSchema.from_icon(unit.icon),
            lesson_count=lesson_count,
            created_at=unit.created_at,
        )


# ==============================================================================
# Lessons
# ==============================================================================


class LessonCreate(ApiModel):
    unit_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    color: str | None = None
    icon: IconSchema | None = None


class LessonUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    color: str | None = None
    icon: IconSchema | None = None


class LessonResponse(ApiModel):
    id: UUID
    unit_id: UUID
    name: str
    color: str | None = None
    icon: IconSchema | None = None
    created_at: datetime

    @classmethod
    def from_lesson(cls, lesson: Lesson) -> "LessonResponse":
        return cls(
            id=lesson.id,
            unit_id=lesson.unit_id,
            name=lesson.name,
            color=lesson.color,
            icon=IconSchema.from_icon(lesson.icon),
            created_at=lesson.created_at,
        )


# ==============================================================================
# Teachers
# ==============================================================================


class TeacherCreate(ApiModel):
    fname: str = Field(..., min_length=1, max_length=100)
    lname: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=30)


class TeacherResponse(ApiModel):
    id: UUID
    fname: str
    lname: str
    phone: str | None = None

    @classmethod
    def from_teacher(cls, teacher: Teacher) -> "TeacherResponse":
        return cls(
            id=teacher.id, fname=teacher.fname, lname=teacher.lname, phone=teacher.phone
        )
