"""Catalog: materials, units, lessons and teachers."""

from .models import Icon, Lesson, Material, Teacher, Unit
from .service import LessonService, MaterialService, TeacherService, UnitService


__all__ = [
    "Icon",
    "Lesson",
    "LessonService",
    "Material",
    "MaterialService",
    "Teacher",
    "TeacherService",
    "Unit",
    "UnitService",
]
