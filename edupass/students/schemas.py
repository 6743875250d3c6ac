"""Student profile schemas."""

import re
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from edupass.core.schemas import ApiModel

from .models import Student


PHONE_MIN_DIGITS = 8
PHONE_MAX_DIGITS = 15


def normalize_phone(phone: str) -> str:
    """Keep digits and a leading ``+``.

    Example:
        >>> normalize_phone("+20 (100) 123-4567")
        '+201001234567'
    """
    digits = re.sub(r"\D", "", phone)
    return f"+{digits}" if phone.strip().startswith("+") else digits


class ProfileUpdate(ApiModel):
    fname: str | None = Field(None, min_length=1, max_length=100)
    lname: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, max_length=200)
    phone: str | None = None
    image: str | None = Field(None, max_length=500)

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v: str | None) -> str | None:
        if v is None:
            return None
        normalized = normalize_phone(v)
        digit_count = len(normalized.lstrip("+"))
        if digit_count < PHONE_MIN_DIGITS or digit_count > PHONE_MAX_DIGITS:
            msg = "Invalid phone number"
            raise ValueError(msg)
        return normalized


class FcmTokenUpdate(ApiModel):
    fcm_token: str = Field(..., min_length=1, max_length=4096)


class StudentResponse(ApiModel):
    id: UUID
    fname: str | None = None
    lname: str | None = None
    email: str | None = None
    phone: str | None = None
    image: str | None = None
    is_blocked: bool
    created_at: datetime

    @classmethod
    def from_student(cls, student: Student) -> "StudentResponse":
        return cls(
            id=student.id,
            fname=student.fname,
            lname=student.lname,
            email=student.email,
            phone=student.phone,
            image=student.image,
            is_blocked=student.is_blocked,
            created_at=student.created_at,
        )


class BlockStatusResponse(ApiModel):
    student_id: UUID
    is_blocked: bool
