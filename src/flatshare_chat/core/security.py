"""Bearer token helpers built on python-jose."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from flatshare_chat.core.settings import settings

__all__ = ["TokenError", "create_access_token", "decode_access_token"]


class TokenError(ValueError):
    """Raised when a bearer token cannot be verified."""


def create_access_token(user_id: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a signed JWT whose subject is the user identifier."""
    if not user_id:
        raise ValueError("Token subject must be provided")
    to_encode: dict[str, object] = {"sub": user_id}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> str:
    """Verify a JWT and return its subject.

    Args:
        token: Encoded bearer token.

    Returns:
        The verified user identifier.

    Raises:
        TokenError: If the signature, expiry or subject claim is invalid.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise TokenError("Could not validate credentials") from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise TokenError("Could not validate credentials")
    return subject
