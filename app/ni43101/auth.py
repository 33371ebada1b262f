"""
Authentication dependencies for FastAPI routes.

Callers present a Supabase-style access token (HS256, ``sub`` claim holding
the user id, audience ``authenticated``). The verified ``sub`` is the owner
id used for storage paths and record ownership.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """The authenticated caller."""

    id: str
    email: str | None = None
    role: str | None = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str, secret: str, audience: str) -> dict:
    """
    Verify ``token`` and return its claims.

    Raises:
        jwt.InvalidTokenError: On a bad signature, expiry, audience or a
            missing ``sub`` claim.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        audience=audience,
        options={"require": ["sub"]},
    )


def create_access_token(
    user_id: str,
    secret: str,
    audience: str = "authenticated",
    email: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Mint an access token in the same shape the auth provider issues."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": audience,
        "role": audience,
        "iat": now,
        "exp": now + expires_in,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """
    Get the current authenticated user from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid.
    """
    if not credentials:
        logger.warning("No authorization credentials provided")
        raise _unauthorized("Unauthorized")

    settings = request.app.state.settings
    try:
        claims = decode_access_token(
            credentials.credentials,
            settings.jwt_secret,
            settings.jwt_audience,
        )
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token: %s", e)
        raise _unauthorized("Unauthorized") from e

    user_id = str(claims["sub"]).strip()
    # The id is used as a storage folder name.
    if not user_id or "/" in user_id or user_id in (".", ".."):
        logger.warning("Rejected token with unusable subject %r", user_id)
        raise _unauthorized("Unauthorized")

    return CurrentUser(id=user_id, email=claims.get("email"), role=claims.get("role"))
