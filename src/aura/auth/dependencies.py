"""FastAPI authentication dependencies.

The authenticated user is resolved once per request and passed explicitly
into every handler.
"""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from aura.auth.jwt import verify_token
from aura.config import get_settings
from aura.database import get_session
from aura.db.models import User

_bearer = HTTPBearer()


@dataclass(frozen=True)
class Identity:
    """Verified identity-provider claims for the current request."""

    user_id: str
    email: str | None
    email_verified: bool


async def get_identity(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> Identity:
    """Verify the bearer token. Raises 401 on a bad token, 403 on an unverified email."""
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    identity = Identity(
        user_id=str(payload["sub"]),
        email=payload.get("email"),
        email_verified=bool(payload.get("email_verified", False)),
    )
    if get_settings().require_verified_email and not identity.email_verified:
        raise HTTPException(status_code=403, detail="Email address is not verified")
    return identity


async def get_current_user(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Return the profile for the authenticated identity.

    Raises 403 when the identity has not registered a profile yet.
    """
    user = await db.get(User, identity.user_id)
    if user is None:
        raise HTTPException(status_code=403, detail="Profile not registered")
    return user
