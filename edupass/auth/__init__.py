"""Authentication seam: bearer token to ``Principal``."""

from .dependencies import AdminUser, CurrentPrincipal, StudentUser
from .permissions import UserRole
from .schemas import Principal


__all__ = ["AdminUser", "CurrentPrincipal", "Principal", "StudentUser", "UserRole"]
