# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Catalog service layer: materials, units, lessons and teachers."""

from typing import TYPE_CHECKING
from uuid import UUID

from edupass.core.exceptions import DatabaseError, NotFoundError
from edupass.core.logging import get_logger

from .models import Lesson, Material, Teacher, Unit, utc_now
from .schemas import (
    LessonCreate,
    LessonUpdate,
    MaterialCreate,
    MaterialUpdate,
    TeacherCreate,
    UnitCreate,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


def _icon_columns(icon) -> tuple[str | None, str | None]:
    if icon is None:
        return None, None
    return icon.filename, icon.access_url


class MaterialService:
    """Materials: the top of the catalog and the unit of entitlement."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.materials
            (id, name, color, icon_filename, icon_access_url, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.materials WHERE id = ?
        """)
        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.materials
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.materials WHERE id = ?
        """)

    async def create(self, data: MaterialCreate) -> Material:
        material = Material(
            name=data.name,
            color=data.color,
            icon=data.icon.to_icon() if data.icon else None,
        )
        await self._save(material)
        logger.info("material_created", material_id=str(material.id))
        return material

    async def _save(self, material: Material) -> None:
        try:
            await self.session.aexecute(
                self._insert,
                [
                    material.id,
                    material.name,
                    material.color,
                    *_icon_columns(material.icon),
                    material.created_at,
                    material.updated_at,
                ],
            )
        except Exception as e:
            logger.exception("database_error_saving_material", material_id=str(material.id))
            raise DatabaseError("Failed to save material", original_error=e) from e

    async def get(self, material_id: UUID) -> Material | None:
        row = (await self.session.aexecute(self._get, [material_id])).one()
        return Material.from_row(row) if row else None

    async def require(self, material_id: UUID) -> Material:
        material = await self.get(material_id)
        if material is None:
            raise NotFoundError("Material not found", code="material_not_found")
        return material

    async def list_all(self) -> list[Material]:
        rows = await self.session.aexecute(self._list)
        return sorted((Material.from_row(r) for r in rows), key=lambda m: m.created_at)

    async def get_many(self, material_ids: set[UUID]) -> list[Material]:
        """Existing materials among ``material_ids``, oldest first."""
        return [m for m in await self.list_all() if m.id in material_ids]

    async def update(self, material_id: UUID, data: MaterialUpdate) -> Material:
        material = await self.require(material_id)
        if data.name is not None:
            material.name = data.name
        if data.color is not None:
            material.color = data.color
        if data.icon is not None:
            material.icon = data.icon.to_icon()
        material.updated_at = utc_now()
        await self._save(material)
        return material

    async def delete(self, material_id: UUID) -> Material:
        material = await self.require(material_id)
        await self.session.aexecute(self._delete, [material_id])
        logger.info("material_deleted", material_id=str(material_id))
        return material


class UnitService:
    def __init__(self, session: "Session", keyspace: str, materials: MaterialService):
        self.session = session
        self.keyspace = keyspace
        self.materials = materials
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.units
            (id, material_id, name, color, icon_filename, icon_access_url,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.units WHERE id = ?
        """)
        self._list_by_material = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.units WHERE material_id = ?
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.units WHERE id = ?
        """)

    async def create(self, data: UnitCreate) -> Unit:
        await self.materials.require(data.material_id)
        unit = Unit(
            material_id=data.material_id,
            name=data.name,
            color=data.color,
            icon=data.icon.to_icon() if data.icon else None,
        )
        try:
            await self.session.aexecute(
                self._insert,
                [
                    unit.id,
                    unit.material_id,
                    unit.name,
                    unit.color,
                    *_icon_columns(unit.icon),
                    unit.created_at,
                    unit.updated_at,
                ],
            )
        except Exception as e:
            logger.exception("database_error_saving_unit", unit_id=str(unit.id))
            raise DatabaseError("Failed to save unit", original_error=e) from e
        logger.info("unit_created", unit_id=str(unit.id), material_id=str(unit.material_id))
        return unit

    async def get(self, unit_id: UUID) -> Unit | None:
        row = (await self.session.aexecute(self._get, [unit_id])).one()
        return Unit.from_row(row) if row else None

    async def require(self, unit_id: UUID) -> Unit:
        unit = await self.get(unit_id)
        if unit is None:
            raise NotFoundError("Unit not found", code="unit_not_found")
        return unit

    async def list_by_material(self, material_id: UUID) -> list[Unit]:
        rows = await self.session.aexecute(self._list_by_material, [material_id])
        return sorted((Unit.from_row(r) for r in rows), key=lambda u: u.created_at)

    async def delete(self, unit_id: UUID) -> Unit:
        unit = await self.require(unit_id)
        await self.session.aexecute(self._delete, [unit_id])
        logger.info("unit_deleted", unit_id=str(unit_id))
        return unit


class LessonService:
    def __init__(self, session: "Session", keyspace: str, units: UnitService):
        self.session = session
        self.keyspace = keyspace
        self.units = units
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons
            (id, unit_id, name, color, icon_filename, icon_access_url,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE id = ?
        """)
        self._list_by_unit = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE unit_id = ?
        """)
        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons WHERE id = ?
        """)

    async def create(self, data: LessonCreate) -> Lesson:
        await self.units.require(data.unit_id)
        lesson = Lesson(
            unit_id=data.unit_id,
            name=data.name,
            color=data.color,
            icon=data.icon.to_icon() if data.icon else None,
        )
        await self._save(lesson)
        logger.info("lesson_created", lesson_id=str(lesson.id), unit_id=str(lesson.unit_id))
        return lesson

    async def _save(self, lesson: Lesson) -> None:
        try:
            await self.session.aexecute(
                self._insert,
                [
                    lesson.id,
                    lesson.unit_id,
                    lesson.name,
                    lesson.color,
                    *_icon_columns(lesson.icon),
                    lesson.created_at,
                    lesson.updated_at,
                ],
            )
        except Exception as e:
            logger.exception("database_error_saving_lesson", lesson_id=str(lesson.id))
            raise DatabaseError("Failed to save lesson", original_error=e) from e

    async def get(self, lesson_id: UUID) -> Lesson | None:
        row = (await self.session.aexecute(self._get, [lesson_id])).one()
        return Lesson.from_row(row) if row else None

    async def require(self, lesson_id: UUID) -> Lesson:
        lesson = await self.get(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", code="lesson_not_found")
        return lesson

    async def list_by_unit(self, unit_id: UUID) -> list[Lesson]:
        rows = await self.session.aexecute(self._list_by_unit, [unit_id])
        return sorted((Lesson.from_row(r) for r in rows), key=lambda x: x.created_at)

    async def list_all(self) -> list[Lesson]:
        rows = await self.session.aexecute(self._list)
        return [Lesson.from_row(r) for r in rows]

    async def count_by_unit(self, unit_id: UUID) -> int:
        return len(await self.list_by_unit(unit_id))

    async def update(self, lesson_id: UUID, data: LessonUpdate) -> Lesson:
        lesson = await self.require(lesson_id)
        if data.name is not None:
            lesson.name = data.name
        if data.color is not None:
            lesson.color = data.color
        if data.icon is not None:
            lesson.icon = data.icon.to_icon()
        lesson.updated_at = utc_now()
        await self._save(lesson)
        return lesson

    async def delete(self, lesson_id: UUID) -> Lesson:
        lesson = await self.require(lesson_id)
        await self.session.aexecute(self._delete, [lesson_id])
        logger.info("lesson_deleted", lesson_id=str(lesson_id))
        return lesson

    async def resolve_material_id(self, lesson_id: UUID) -> UUID | None:
        """Walk lesson -> unit -> material; ``None`` if any link is missing."""
        lesson = await self.get(lesson_id)
        if lesson is None:
            return None
        unit = await self.units.get(lesson.unit_id)
        if unit is None:
            return None
        material = await self.units.materials.get(unit.material_id)
        return material.id if material else None


class TeacherService:
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.teachers (id, fname, lname, phone, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.teachers WHERE id = ?
        """)
        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.teachers
        """)
        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.teachers WHERE id = ?
        """)

    async def create(self, data: TeacherCreate) -> Teacher:
        teacher = Teacher(fname=data.fname, lname=data.lname, phone=data.phone)
        await self.session.aexecute(
            self._insert,
            [teacher.id, teacher.fname, teacher.lname, teacher.phone, teacher.created_at],
        )
        logger.info("teacher_created", teacher_id=str(teacher.id))
        return teacher

    async def get(self, teacher_id: UUID) -> Teacher | None:
        row = (await self.session.aexecute(self._get, [teacher_id])).one()
        return Teacher.from_row(row) if row else None

    async def require(self, teacher_id: UUID) -> Teacher:
        teacher = await self.get(teacher_id)
        if teacher is None:
            raise NotFoundError("Teacher not found", code="teacher_not_found")
        return teacher

    async def list_all(self) -> list[Teacher]:
        rows = await self.session.aexecute(self._list)
        return sorted((Teacher.from_row(r) for r in rows), key=lambda t: t.created_at)

    async def delete(self, teacher_id: UUID) -> None:
        await self.require(teacher_id)
        await self.session.aexecute(self._delete, [teacher_id])
        logger.info("teacher_deleted", teacher_id=str(teacher_id))
