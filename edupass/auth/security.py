"""Bearer token handling.

Tokens are issued by the identity collaborator; this service only decodes
them. ``create_access_token`` mints tokens with the same claims for
development and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from edupass.config.settings import get_settings


ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    subject: str,
    role: str,
    expires_delta: timedelta = timedelta(minutes=30),
) -> str:
    """Sign an access token carrying ``sub``, ``role`` and ``type``."""
    settings = get_settings()
    now = datetime.now(UTC)
    payload = {
        "sub": subject,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates the signature, the expiration time and ``type == "access"``.

    Raises:
        JWTError: If token is invalid, expired, or wrong type
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)
    if not payload.get("sub"):
        msg = "Token has no subject"
        raise JWTError(msg)

    return payload
