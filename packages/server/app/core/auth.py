"""
Authentication for the AI Service Platform API.

Supports:
- Owner auth: signed JWT bearer tokens whose subject is the owner's user id
- Watcher auth: shared secret bearer token for the deployment watcher
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from app.core.config import get_settings
from app.core.errors import AuthenticationError

log = structlog.get_logger()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    settings = get_settings()
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    settings = get_settings()
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def _bearer(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Authentication required")
    return authorization[7:].strip()


# ---------------------------------------------------------------------------
# Authentication dependencies
# ---------------------------------------------------------------------------

class AuthenticatedUser:
    """The project owner behind a request."""

    def __init__(self, user_id: uuid.UUID, jti: Optional[str] = None):
        self.user_id = user_id
        self.jti = jti


async def get_authenticated_user(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
) -> AuthenticatedUser:
    token = _bearer(authorization)
    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session has expired")
    except (jwt.PyJWTError, KeyError, ValueError):
        raise AuthenticationError("Invalid or expired session")

    auth = AuthenticatedUser(user_id=user_id, jti=payload.get("jti"))
    request.state.auth = auth
    structlog.contextvars.bind_contextvars(user_id=str(user_id))
    return auth


async def require_watcher(
    authorization: Optional[str] = Depends(api_key_header),
) -> None:
    """Only the deployment watcher may report and poll builds."""
    expected = get_settings().watcher_token
    if not expected:
        raise AuthenticationError("Watcher access is not configured")
    if not secrets.compare_digest(_bearer(authorization), expected):
        log.warning("auth.watcher_rejected")
        raise AuthenticationError("Invalid watcher token")
