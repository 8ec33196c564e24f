"""
JWT Handler — access token creation and verification.
Tokens carry the caller's organisation in the `org` claim; every workspace
query is scoped by it.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from jose import JWTError, jwt

from ...application.config import get_settings

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    subject: str,           # user_id
    org_id: str,
    role: str = "ap_analyst",
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT access token. Used by the identity service and by tests."""
    settings = get_settings()
    now = _utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    payload: dict[str, Any] = {
        "sub":  subject,
        "role": role,
        "org":  org_id,
        "iat":  now,
        "exp":  expire,
        "type": "access",
        "jti":  str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a JWT access token.
    Raises JWTError on invalid/expired tokens.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        if payload.get("type") != "access":
            raise JWTError("Token is not an access token")
        if not payload.get("sub"):
            raise JWTError("Token has no subject")
        return payload
    except JWTError as e:
        logger.warning("jwt_verification_failed", error=str(e))
        raise
