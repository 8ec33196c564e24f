"""
Authentication Dependencies
Validates the bearer JWT on every workspace request and resolves the
caller's organisation before any store access happens.
"""
from __future__ import annotations

from typing import Annotated

from bson import ObjectId
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from ...domain.auth_entities import User
from ...domain.exceptions import InvalidOrganizationError
from ...infrastructure.auth.jwt_handler import verify_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)] = None,
) -> User:
    """Populates User from JWT claims (no DB round-trip on each request)."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        payload = verify_access_token(token)
    except JWTError:
        raise credentials_exception

    user = User(
        id=payload["sub"],
        organisation_id=str(payload.get("org") or ""),
    )
    request.state.org_id = user.organisation_id
    request.state.user_id = user.id
    return user


async def get_organization_id(
    user: Annotated[User, Depends(get_current_user)],
) -> str:
    """The caller's organisation, validated as a store identifier."""
    if not user.organisation_id:
        raise InvalidOrganizationError("Organization not found")
    if not ObjectId.is_valid(user.organisation_id):
        raise InvalidOrganizationError("Invalid organization id")
    return user.organisation_id


OrganizationId = Annotated[str, Depends(get_organization_id)]
