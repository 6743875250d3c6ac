"""Question group models and Cassandra schema.

A question group belongs to a lesson and owns an ordered list of questions.
The list is stored as a JSON document; favorites reference a question by
its position in that list, so positional edits go through the helpers below
(which return a new list and leave the input untouched).

Deleting a question shifts the positions of every later question. Existing
favorites are not renumbered: a favorite pointing past the removed position
now refers to the next question (or to nothing, and is then skipped when
favorites are listed).
"""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from edupass.catalog.models import ensure_utc_aware, utc_now
from edupass.core.exceptions import OutOfRangeError, ValidationError


if TYPE_CHECKING:
    from cassandra.cluster import Row


MIN_CHOICES = 2


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUESTION_GROUPS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.question_groups (
    id UUID PRIMARY KEY,
    lesson_id UUID,
    paragraph TEXT,
    images TEXT,
    questions TEXT,
    question_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

QUESTION_GROUPS_LESSON_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.question_groups (lesson_id)
"""

# Snapshot regenerated wholesale by the admin "change free questions" job
FREE_QUESTION_GROUPS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.free_question_groups (
    id UUID PRIMARY KEY,
    source_group_id UUID,
    lesson_id UUID,
    paragraph TEXT,
    images TEXT,
    questions TEXT,
    created_at TIMESTAMP
)
"""

FREE_QUESTION_GROUPS_LESSON_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS ON {keyspace}.free_question_groups (lesson_id)
"""


QUESTIONS_TABLES_CQL = [
    QUESTION_GROUPS_TABLE_CQL,
    QUESTION_GROUPS_LESSON_INDEX_CQL,
    FREE_QUESTION_GROUPS_TABLE_CQL,
    FREE_QUESTION_GROUPS_LESSON_INDEX_CQL,
]


# ==============================================================================
# Value objects
# ==============================================================================


@dataclass(frozen=True)
class Image:
    filename: str
    access_url: str

    def to_dict(self) -> dict[str, str]:
        return {"filename": self.filename, "accessUrl": self.access_url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Image":
        return cls(filename=data.get("filename", ""), access_url=data.get("accessUrl", ""))


@dataclass(frozen=True)
class Choice:
    text: str
    is_correct: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "isCorrect": self.is_correct}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Choice":
        return cls(text=data.get("text", ""), is_correct=bool(data.get("isCorrect")))


@dataclass(frozen=True)
class Question:
    text: str
    choices: tuple[Choice, ...] = ()
    info_images: tuple[Image, ...] = ()
    is_multiple_choice: bool = False
    is_english: bool = False
    information: str | None = None

    def validate(self, position: int) -> None:
        """Raise ``ValidationError`` unless the question is well formed."""
        label = f"Question {position + 1}"
        if not self.text or not self.text.strip():
            raise ValidationError(f"{label}: text is required", code="invalid_question")
        if len(self.choices) < MIN_CHOICES:
            raise ValidationError(
                f"{label}: at least {MIN_CHOICES} choices are required",
                code="invalid_question",
            )
        if any(not choice.text or not choice.text.strip() for choice in self.choices):
            raise ValidationError(
                f"{label}: every choice needs text", code="invalid_question"
            )
        if not any(choice.is_correct for choice in self.choices):
            raise ValidationError(
                f"{label}: at least one choice must be correct",
                code="invalid_question",
            )
        for image in self.info_images:
            if not image.filename or not image.access_url:
                raise ValidationError(
                    f"{label}: info images need filename and accessUrl",
                    code="invalid_question",
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "choices": [c.to_dict() for c in self.choices],
            "infoImages": [i.to_dict() for i in self.info_images],
            "isMultipleChoice": self.is_multiple_choice,
            "isEnglish": self.is_english,
            "information": self.information,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Question":
        return cls(
            text=data.get("text", ""),
            choices=tuple(Choice.from_dict(c) for c in data.get("choices", [])),
            info_images=tuple(Image.from_dict(i) for i in data.get("infoImages", [])),
            is_multiple_choice=bool(data.get("isMultipleChoice")),
            is_english=bool(data.get("isEnglish")),
            information=data.get("information"),
        )


def validate_questions(questions: list[Question]) -> None:
    if not questions:
        raise ValidationError("At least one question is required", code="invalid_question")
    for position, question in enumerate(questions):
        question.validate(position)


def questions_to_json(questions: list[Question]) -> str:
    return json.dumps([q.to_dict() for q in questions])


def questions_from_json(raw: str | None) -> list[Question]:
    if not raw:
        return []
    return [Question.from_dict(item) for item in json.loads(raw)]


def images_to_json(images: list[Image]) -> str:
    return json.dumps([i.to_dict() for i in images])


def images_from_json(raw: str | None) -> list[Image]:
    if not raw:
        return []
    return [Image.from_dict(item) for item in json.loads(raw)]


def check_index(questions: list[Question], index: int) -> None:
    if index < 0 or index >= len(questions):
        raise OutOfRangeError(
            f"Question index {index} is out of range (0..{len(questions) - 1})"
        )


def with_question_replaced(
    questions: list[Question], index: int, question: Question
) -> list[Question]:
    """New list with ``questions[index]`` replaced; order preserved."""
    check_index(questions, index)
    return [question if i == index else q for i, q in enumerate(questions)]


def without_question(questions: list[Question], index: int) -> list[Question]:
    """New list with ``questions[index]`` removed; later positions shift down."""
    check_index(questions, index)
    return [q for i, q in enumerate(questions) if i != index]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class QuestionGroup:
    lesson_id: UUID
    questions: list[Question]
    id: UUID = field(default_factory=uuid4)
    paragraph: str | None = None
    images: list[Image] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "QuestionGroup":
        return cls(
            id=row.id,
            lesson_id=row.lesson_id,
            paragraph=row.paragraph,
            images=images_from_json(row.images),
            questions=questions_from_json(row.questions),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
            updated_at=ensure_utc_aware(row.updated_at) or utc_now(),
        )

    def project(self, index: int) -> "QuestionGroup":
        """Copy of the group carrying only the question at ``index``."""
        check_index(self.questions, index)
        return replace(self, questions=[self.questions[index]])

    def remote_files(self) -> list[str]:
        """Access URLs of every stored image (group images and info images)."""
        urls = [image.access_url for image in self.images]
        for question in self.questions:
            urls.extend(image.access_url for image in question.info_images)
        return [url for url in urls if url]


@dataclass
class FreeQuestionGroup:
    source_group_id: UUID
    lesson_id: UUID
    questions: list[Question]
    id: UUID = field(default_factory=uuid4)
    paragraph: str | None = None
    images: list[Image] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: "Row") -> "FreeQuestionGroup":
        return cls(
            id=row.id,
            source_group_id=row.source_group_id,
            lesson_id=row.lesson_id,
            paragraph=row.paragraph,
            images=images_from_json(row.images),
            questions=questions_from_json(row.questions),
            created_at=ensure_utc_aware(row.created_at) or utc_now(),
        )

    @classmethod
    def snapshot_of(cls, group: QuestionGroup) -> "FreeQuestionGroup":
        return cls(
            source_group_id=group.id,
            lesson_id=group.lesson_id,
            paragraph=group.paragraph,
            images=list(group.images),
            questions=list(group.questions),
        )
