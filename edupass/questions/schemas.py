"""Request/response schemas for question groups."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from edupass.core.schemas import ApiModel

from .models import Choice, FreeQuestionGroup, Image, Question, QuestionGroup


class ImageSchema(ApiModel):
    filename: str
    access_url: str

    def to_image(self) -> Image:
        return Image(filename=self.filename, access_url=self.access_url)


class ChoiceSchema(ApiModel):
    text: str
    is_correct: bool = False


class QuestionSchema(ApiModel):
    """Question as submitted by admins (checked by the service, not here)."""

    text: str
    choices: list[ChoiceSchema] = []
    info_images: list[ImageSchema] = []
    is_multiple_choice: bool = False
    is_english: bool = False
    information: str | None = None

    def to_question(self) -> Question:
        return Question(
            text=self.text,
            choices=tuple(Choice(text=c.text, is_correct=c.is_correct) for c in self.choices),
            info_images=tuple(i.to_image() for i in self.info_images),
            is_multiple_choice=self.is_multiple_choice,
            is_english=self.is_english,
            information=self.information,
        )


class QuestionGroupCreate(ApiModel):
    lesson_id: UUID
    paragraph: str | None = None
    images: list[ImageSchema] = []
    questions: list[QuestionSchema]


class QuestionGroupUpdate(ApiModel):
    paragraph: str | None = None
    images: list[ImageSchema] | None = None
    questions: list[QuestionSchema] | None = None


class QuestionUpdate(ApiModel):
    index: int = Field(..., ge=0)
    question: QuestionSchema


class QuestionIndexBody(ApiModel):
    index: int = Field(..., ge=0)


class QuestionResponse(QuestionSchema):
    index: int
    is_favorite: bool | None = None

    @classmethod
    def from_question(
        cls, question: Question, index: int, is_favorite: bool | None = None
    ) -> "QuestionResponse":
        return cls(
            index=index,
            is_favorite=is_favorite,
            text=question.text,
            choices=[ChoiceSchema(text=c.text, is_correct=c.is_correct) for c in question.choices],
            info_images=[
                ImageSchema(filename=i.filename, access_url=i.access_url)
                for i in question.info_images
            ],
            is_multiple_choice=question.is_multiple_choice,
            is_english=question.is_english,
            information=question.information,
        )


class QuestionGroupResponse(ApiModel):
    id: UUID
    lesson_id: UUID
    paragraph: str | None = None
    images: list[ImageSchema] = []
    questions: list[QuestionResponse]
    created_at: datetime

    @classmethod
    def from_group(
        cls,
        group: QuestionGroup,
        favorites: set[tuple[UUID, int]] | None = None,
        first_index: int = 0,
    ) -> "QuestionGroupResponse":
        """Build the response; ``favorites`` turns on the ``isFavorite`` flag.

        ``first_index`` is the original position of ``group.questions[0]``,
        for groups projected down to a single question.
        """
        return cls(
            id=group.id,
            lesson_id=group.lesson_id,
            paragraph=group.paragraph,
            images=[
                ImageSchema(filename=i.filename, access_url=i.access_url) for i in group.images
            ],
            questions=[
                QuestionResponse.from_question(
                    question,
                    first_index + offset,
                    is_favorite=(
                        (group.id, first_index + offset) in favorites
                        if favorites is not None
                        else None
                    ),
                )
                for offset, question in enumerate(group.questions)
            ],
            created_at=group.created_at,
        )


class FreeQuestionGroupResponse(ApiModel):
    id: UUID
    source_group_id: UUID
    lesson_id: UUID
    paragraph: str | None = None
    images: list[ImageSchema] = []
    questions: list[QuestionResponse]

    @classmethod
    def from_free_group(cls, group: FreeQuestionGroup) -> "FreeQuestionGroupResponse":
        return cls(
            id=group.id,
            source_group_id=group.source_group_id,
            lesson_id=group.lesson_id,
            paragraph=group.paragraph,
            images=[
                ImageSchema(filename=i.filename, access_url=i.access_url) for i in group.images
            ],
            questions=[QuestionResponse.from_question(q, i) for i, q in enumerate(group.questions)],
        )


class RegenerateFreeQuestionsRequest(ApiModel):
    num_of_groups: int = Field(..., ge=1, le=100)


class RegenerateFreeQuestionsResponse(ApiModel):
    message: str
    groups_created: int
    lessons_sampled: int


class FreeQuestionsResponse(ApiModel):
    """Random free sample for a lesson (not paginated)."""

    docs: list[FreeQuestionGroupResponse]
    limit: int
    total: int
