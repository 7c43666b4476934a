"""Session token helpers.

Session tokens are signed JWTs issued by the login frontend. ``sub`` holds the
external auth identity; profile claims are used to provision the user on
first access.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from tracksubs.core.config import get_settings

settings = get_settings()

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token carrying ``data`` as claims."""
    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": ACCESS_TOKEN_TYPE})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and verify a token. Returns None when it is invalid or expired."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
    return payload


def verify_token_type(payload: dict[str, Any], expected_type: str) -> bool:
    """Check the ``type`` claim of a decoded token."""
    return payload.get("type") == expected_type
