"""Favorites request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from edupass.core.schemas import ApiModel
from edupass.questions.models import QuestionGroup
from edupass.questions.schemas import QuestionGroupResponse

from .models import Favorite


class FavoriteCreate(ApiModel):
    question_group_id: UUID
    index: int = Field(..., ge=0)


class FavoriteResponse(QuestionGroupResponse):
    """The bookmarked question, projected out of its group."""

    index: int
    favorited_at: datetime

    @classmethod
    def from_favorite(cls, favorite: Favorite, group: QuestionGroup) -> "FavoriteResponse":
        projected = QuestionGroupResponse.from_group(
            group.project(favorite.question_index),
            favorites={favorite.key},
            first_index=favorite.question_index,
        )
        return cls(
            **projected.model_dump(),
            index=favorite.question_index,
            favorited_at=favorite.created_at,
        )
