"""Roles known to the service.

Students consume content; admins manage the catalog, code batches and
student accounts. Admin does not inherit the student surface.
"""

from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


def parse_role(role: str | None) -> UserRole | None:
    """Role from a token claim; unknown values map to ``None``."""
    if role is None:
        return None
    try:
        return UserRole(role)
    except ValueError:
        return None
