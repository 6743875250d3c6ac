"""Authenticated caller."""

from uuid import UUID

from edupass.core.schemas import ApiModel

from .permissions import UserRole


class Principal(ApiModel):
    """Id and role of the caller, passed explicitly to services."""

    id: UUID
    role: UserRole
