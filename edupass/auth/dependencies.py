"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Principal extraction from the bearer token
- Role checks for the student and admin surfaces
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from edupass.core.context import set_principal
from edupass.core.logging import get_logger

from .permissions import UserRole, parse_role
from .schemas import Principal
from .security import decode_access_token


logger = get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Decode the access token into a ``Principal``.

    Raises:
        HTTPException(401): Token missing, invalid, expired, or carrying an
            unknown role or a malformed subject.
    """
    if not token:
        raise _unauthorized("Access token not provided")

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.info("token_rejected", error=str(e))
        raise _unauthorized("Invalid or expired token") from e

    role = parse_role(payload.get("role"))
    try:
        principal_id = UUID(str(payload["sub"]))
    except ValueError as e:
        raise _unauthorized("Invalid or expired token") from e
    if role is None:
        raise _unauthorized("Invalid or expired token")

    set_principal(principal_id, role.value)
    return Principal(id=principal_id, role=role)


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring one of ``allowed_roles``."""

    async def role_checker(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if principal.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permission",
            )
        return principal

    return role_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
StudentUser = Annotated[Principal, Depends(require_role(UserRole.STUDENT))]
AdminUser = Annotated[Principal, Depends(require_role(UserRole.ADMIN))]
