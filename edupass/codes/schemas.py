"""Request/response schemas for code batches and redemptions."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from edupass.core.schemas import ApiModel

from .models import (
    Code,
    CodeBatch,
    CoursesGrant,
    EntitlementGrant,
    MaterialsGrant,
    RedemptionEntry,
    SplitMaterialsGrant,
)


class GrantFields(ApiModel):
    """Entitlement lists as exchanged with clients.

    ``materials`` is the legacy single list; ``materialsWithQuestions`` /
    ``materialsWithLectures`` the split form; ``courses`` a direct grant.
    """

    materials: list[UUID] | None = None
    materials_with_questions: list[UUID] | None = None
    materials_with_lectures: list[UUID] | None = None
    courses: list[UUID] | None = None

    def to_grants(self) -> tuple[EntitlementGrant, ...]:
        grants: list[EntitlementGrant] = []
        if self.materials is not None:
            grants.append(MaterialsGrant(materials=frozenset(self.materials)))
        if self.materials_with_questions is not None or self.materials_with_lectures is not None:
            grants.append(
                SplitMaterialsGrant(
                    with_questions=frozenset(self.materials_with_questions or ()),
                    with_lectures=frozenset(self.materials_with_lectures or ()),
                )
            )
        if self.courses is not None:
            grants.append(CoursesGrant(courses=frozenset(self.courses)))
        return tuple(grants)

    @classmethod
    def grant_kwargs(cls, grants: tuple[EntitlementGrant, ...]) -> dict:
        values: dict = {}
        for grant in grants:
            if isinstance(grant, MaterialsGrant):
                values["materials"] = sorted(grant.materials, key=str)
            elif isinstance(grant, SplitMaterialsGrant):
                values["materials_with_questions"] = sorted(grant.with_questions, key=str)
                values["materials_with_lectures"] = sorted(grant.with_lectures, key=str)
            elif isinstance(grant, CoursesGrant):
                values["courses"] = sorted(grant.courses, key=str)
        return values


class CodeBatchCreate(GrantFields):
    """Either explicit ``codes`` or a ``count`` of codes to generate."""

    name: str | None = Field(default=None, max_length=200)
    expiration: datetime
    codes: list[str] | None = None
    count: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def codes_or_count(self) -> "CodeBatchCreate":
        if (self.codes is None) == (self.count is None):
            raise ValueError("Provide exactly one of 'codes' or 'count'")
        return self


class CodeBatchResponse(GrantFields):
    id: UUID
    name: str | None = None
    expiration: datetime
    is_live: bool
    code_count: int
    used_count: int | None = None
    created_at: datetime

    @classmethod
    def from_batch(
        cls, batch: CodeBatch, now: datetime, used_count: int | None = None
    ) -> "CodeBatchResponse":
        return cls(
            id=batch.id,
            name=batch.name,
            expiration=batch.expiration,
            is_live=batch.is_live(now),
            code_count=batch.code_count,
            used_count=used_count,
            created_at=batch.created_at,
            **cls.grant_kwargs(batch.grants),
        )


class CodeResponse(ApiModel):
    value: str
    is_used: bool
    redeemed_by: UUID | None = None
    redeemed_at: datetime | None = None

    @classmethod
    def from_code(cls, code: Code) -> "CodeResponse":
        return cls(
            value=code.value,
            is_used=code.is_used,
            redeemed_by=code.redeemed_by,
            redeemed_at=code.redeemed_at,
        )


class CodeBatchDetailResponse(ApiModel):
    batch: CodeBatchResponse
    codes: list[CodeResponse]


class RedeemCodeRequest(ApiModel):
    code: str = Field(..., min_length=1, max_length=64)


class RedeemCodeResponse(ApiModel):
    message: str
    codes_group: UUID
    expiration: datetime


class RedemptionInfoResponse(GrantFields):
    """One ledger entry joined with the current state of its batch."""

    code: str
    codes_group: UUID
    redeemed_at: datetime
    batch_exists: bool
    is_live: bool
    expiration: datetime | None = None

    @classmethod
    def from_entry(
        cls, entry: RedemptionEntry, batch: CodeBatch | None, now: datetime
    ) -> "RedemptionInfoResponse":
        if batch is None:
            return cls(
                code=entry.code,
                codes_group=entry.group_id,
                redeemed_at=entry.redeemed_at,
                batch_exists=False,
                is_live=False,
            )
        return cls(
            code=entry.code,
            codes_group=entry.group_id,
            redeemed_at=entry.redeemed_at,
            batch_exists=True,
            is_live=batch.is_live(now),
            expiration=batch.expiration,
            **cls.grant_kwargs(batch.grants),
        )
