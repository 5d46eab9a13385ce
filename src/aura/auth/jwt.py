"""
Identity token verification.

Tokens are issued by the identity provider and carry the opaque user id in
``sub`` plus ``email`` and ``email_verified`` claims. HMAC algorithms (HS*)
use ``jwt_secret``; asymmetric algorithms read PEM keys from disk.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from aura.config import get_settings

_private_key: str | None = None
_public_key: str | None = None


def _uses_shared_secret(algorithm: str) -> bool:
    return algorithm.upper().startswith("HS")


def _load_keys() -> tuple[str, str]:
    """Return (signing_key, verification_key), cached after first call."""
    global _private_key, _public_key  # noqa: PLW0603
    if _private_key is None or _public_key is None:
        settings = get_settings()
        if _uses_shared_secret(settings.jwt_algorithm):
            _private_key = _public_key = settings.jwt_secret
        else:
            _private_key = Path(settings.jwt_private_key_path).read_text()
            _public_key = Path(settings.jwt_public_key_path).read_text()
    return _private_key, _public_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _private_key, _public_key  # noqa: PLW0603
    _private_key = None
    _public_key = None


def create_access_token(
    user_id: str,
    email: str | None = None,
    email_verified: bool = True,
) -> str:
    """
    Create an identity token.

    Production tokens come from the identity provider; this exists for local
    development and tests.

    Args:
        user_id: Opaque identity-provider user id.
        email: The user's email address, if known.
        email_verified: Whether the provider has verified the email.

    Returns:
        Encoded JWT string.
    """
    private_key, _ = _load_keys()
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "email_verified": email_verified,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
    }
    return jwt.encode(payload, private_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an identity token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    _, public_key = _load_keys()
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return payload
