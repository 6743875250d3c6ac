"""In-memory stand-ins for the Cassandra session and catalog collaborators."""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

from cassandra.cluster import Session

from edupass.catalog.models import Material
from edupass.core.exceptions import NotFoundError
from edupass.courses.models import Course, Video


class FakeResult:
    """Just enough of a driver ``ResultSet``: ``one()``, iteration, LWT flag."""

    def __init__(self, rows=(), was_applied: bool = True):
        self._rows = list(rows)
        self.was_applied = was_applied

    def one(self):
        return self._rows[0] if self._rows else None

    def __iter__(self):
        return iter(self._rows)


def make_session() -> Mock:
    """Mock session whose prepared statements are distinct objects."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(query_string=cql))
    session.aexecute = AsyncMock(return_value=FakeResult())
    return session


def executed_with(session: Mock, statement) -> list[list]:
    """Parameter lists of every ``aexecute`` call made with ``statement``."""
    return [
        list(c.args[1]) if len(c.args) > 1 else []
        for c in session.aexecute.await_args_list
        if c.args[0] is statement
    ]


class CodeStore:
    """Code batch tables and the redemption ledger, kept in dicts.

    Conditional statements behave like Cassandra lightweight transactions:
    each one checks and writes without yielding to the event loop.
    """

    def __init__(self):
        self.groups: dict[UUID, SimpleNamespace] = {}
        self.codes: dict[tuple[UUID, str], SimpleNamespace] = {}
        self.lookup: dict[str, UUID] = {}
        self.ledger: dict[UUID, list[SimpleNamespace]] = {}
        self.fail_ledger_writes = False
        self.fail_group_writes = False
        self._handlers: dict[int, object] = {}

    def attach(self, session: Mock, batches, redemptions=None) -> "CodeStore":
        handlers = {
            batches._insert_group: self._insert_group,
            batches._get_group: self._get_group,
            batches._list_groups: self._list_groups,
            batches._delete_group: self._delete_group,
            batches._claim_code: self._claim_code,
            batches._release_code: self._release_code,
            batches._lookup_code: self._lookup_code,
            batches._insert_code: self._insert_code,
            batches._get_code: self._get_code,
            batches._list_codes: self._list_codes,
            batches._delete_codes: self._delete_codes,
            batches._mark_used: self._mark_used,
            batches._revert_used: self._revert_used,
        }
        if redemptions is not None:
            handlers.update(
                {
                    redemptions._insert_entry: self._insert_entry,
                    redemptions._list_entries: self._list_entries,
                    redemptions._delete_entries: self._delete_entries,
                }
            )
        self._handlers = {id(statement): handler for statement, handler in handlers.items()}
        session.aexecute.side_effect = self.execute
        return self

    async def execute(self, statement, params=None):
        return self._handlers[id(statement)](*(params or []))

    # Batches

    def _insert_group(
        self,
        group_id,
        name,
        expiration,
        grant_kinds,
        materials,
        materials_with_questions,
        materials_with_lectures,
        courses,
        code_count,
        created_by,
        created_at,
    ):
        if self.fail_group_writes:
            raise RuntimeError("write timeout")
        self.groups[group_id] = SimpleNamespace(
            id=group_id,
            name=name,
            expiration=expiration,
            grant_kinds=grant_kinds,
            materials=materials,
            materials_with_questions=materials_with_questions,
            materials_with_lectures=materials_with_lectures,
            courses=courses,
            code_count=code_count,
            created_by=created_by,
            created_at=created_at,
        )
        return FakeResult()

    def _get_group(self, group_id):
        row = self.groups.get(group_id)
        return FakeResult([row] if row else [])

    def _list_groups(self):
        return FakeResult(self.groups.values())

    def _delete_group(self, group_id):
        self.groups.pop(group_id, None)
        return FakeResult()

    # Codes

    def _claim_code(self, value, group_id):
        if value in self.lookup:
            return FakeResult(was_applied=False)
        self.lookup[value] = group_id
        return FakeResult()

    def _release_code(self, value, group_id):
        if self.lookup.get(value) != group_id:
            return FakeResult(was_applied=False)
        del self.lookup[value]
        return FakeResult()

    def _lookup_code(self, value):
        if value not in self.lookup:
            return FakeResult()
        return FakeResult([SimpleNamespace(group_id=self.lookup[value])])

    def _insert_code(self, group_id, value):
        self.codes[(group_id, value)] = SimpleNamespace(
            group_id=group_id, value=value, is_used=False, redeemed_by=None, redeemed_at=None
        )
        return FakeResult()

    def _get_code(self, group_id, value):
        row = self.codes.get((group_id, value))
        return FakeResult([row] if row else [])

    def _list_codes(self, group_id):
        rows = sorted(
            (row for (gid, _), row in self.codes.items() if gid == group_id),
            key=lambda row: row.value,
        )
        return FakeResult(rows)

    def _delete_codes(self, group_id):
        for key in [key for key in self.codes if key[0] == group_id]:
            del self.codes[key]
        return FakeResult()

    def _mark_used(self, student_id, now, group_id, value):
        row = self.codes.get((group_id, value))
        if row is None or row.is_used:
            return FakeResult(was_applied=False)
        row.is_used = True
        row.redeemed_by = student_id
        row.redeemed_at = now
        return FakeResult()

    def _revert_used(self, group_id, value, student_id):
        row = self.codes.get((group_id, value))
        if row is None or row.redeemed_by != student_id:
            return FakeResult(was_applied=False)
        row.is_used = False
        row.redeemed_by = None
        row.redeemed_at = None
        return FakeResult()

    # Ledger

    def _insert_entry(self, student_id, redeemed_at, code, group_id):
        if self.fail_ledger_writes:
            raise RuntimeError("write timeout")
        self.ledger.setdefault(student_id, []).append(
            SimpleNamespace(
                student_id=student_id, redeemed_at=redeemed_at, code=code, group_id=group_id
            )
        )
        return FakeResult()

    def _list_entries(self, student_id):
        rows = sorted(self.ledger.get(student_id, []), key=lambda row: row.redeemed_at)
        return FakeResult(rows)

    def _delete_entries(self, student_id):
        self.ledger.pop(student_id, None)
        return FakeResult()


class FakeRepository:
    """Entities by id with the ``get``/``require`` pair services expose."""

    def __init__(self, label: str):
        self.label = label
        self.items: dict[UUID, object] = {}

    def add(self, entity):
        self.items[entity.id] = entity
        return entity

    def remove(self, entity_id: UUID) -> None:
        self.items.pop(entity_id, None)

    async def get(self, entity_id: UUID):
        return self.items.get(entity_id)

    async def require(self, entity_id: UUID):
        entity = self.items.get(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.label} not found")
        return entity


class FakeQuestionGroups:
    def __init__(self):
        self.materials: dict[UUID, UUID | None] = {}

    async def resolve_material_id(self, group_id: UUID) -> UUID | None:
        return self.materials.get(group_id)


class FakeCatalog:
    """Materials, courses, videos and question-group chains for access checks."""

    def __init__(self):
        self.materials = FakeRepository("Material")
        self.courses = FakeRepository("Course")
        self.videos = FakeRepository("Video")
        self.question_groups = FakeQuestionGroups()

    def add_material(self, name: str = "Biology") -> Material:
        return self.materials.add(Material(name=name))

    def add_course(self, material: Material, name: str = "Cell biology") -> Course:
        return self.courses.add(Course(material_id=material.id, teacher_id=uuid4(), name=name))

    def add_video(self, course: Course, name: str = "Mitosis") -> Video:
        return self.videos.add(Video(course_id=course.id, unit_id=uuid4(), name=name))

    def add_question_group(self, material: Material | None) -> UUID:
        group_id = uuid4()
        self.question_groups.materials[group_id] = material.id if material else None
        return group_id


def fixed_clock(moment: datetime):
    return lambda: moment
