"""
Auth Tests — JWT verification and organisation resolution.
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt


class TestJWTHandler:
    """Unit tests for JWT creation and verification."""

    def test_create_and_verify_access_token(self):
        from recon_workspace.infrastructure.auth.jwt_handler import create_access_token, verify_access_token
        token = create_access_token(
            subject="user-123",
            role="ap_manager",
            org_id="65a000000000000000000001",
        )
        payload = verify_access_token(token)
        assert payload["sub"] == "user-123"
        assert payload["role"] == "ap_manager"
        assert payload["org"] == "65a000000000000000000001"
        assert payload["type"] == "access"

    def test_expired_token_raises_jwt_error(self):
        from jose import JWTError
        from recon_workspace.infrastructure.auth.jwt_handler import create_access_token, verify_access_token
        token = create_access_token(
            subject="user-123",
            org_id="65a000000000000000000001",
            expires_delta=timedelta(seconds=-1),  # Already expired
        )
        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_non_access_token_is_rejected(self):
        from jose import JWTError
        from recon_workspace.application.config import get_settings
        from recon_workspace.infrastructure.auth.jwt_handler import verify_access_token
        settings = get_settings()
        token = jwt.encode(
            {"sub": "user-123", "org": "65a000000000000000000001", "type": "refresh"},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(JWTError):
            verify_access_token(token)


class TestOrganizationResolution:

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self):
        from unittest.mock import MagicMock
        from recon_workspace.presentation.middleware.auth_middleware import get_current_user
        with pytest.raises(HTTPException) as exc:
            await get_current_user(MagicMock(), token=None)
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_claims_populate_user_and_request_state(self):
        from unittest.mock import MagicMock
        from recon_workspace.infrastructure.auth.jwt_handler import create_access_token
        from recon_workspace.presentation.middleware.auth_middleware import get_current_user
        request = MagicMock()
        token = create_access_token("user-9", "65a000000000000000000001")

        user = await get_current_user(request, token=token)

        assert user.id == "user-9"
        assert user.organisation_id == "65a000000000000000000001"
        assert request.state.org_id == "65a000000000000000000001"
        assert request.state.user_id == "user-9"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("org, message", [
        ("", "Organization not found"),
        ("acme-corp", "Invalid organization id"),
    ])
    async def test_bad_organization(self, org, message):
        from recon_workspace.domain.auth_entities import User
        from recon_workspace.domain.exceptions import InvalidOrganizationError
        from recon_workspace.presentation.middleware.auth_middleware import get_organization_id
        with pytest.raises(InvalidOrganizationError, match=message):
            await get_organization_id(User(id="user-1", organisation_id=org))
