"""
Unit tests for authentication middleware.
"""

from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from marketplace.middleware.auth import (
    ensure_same_organization,
    get_current_active_user,
    get_current_user,
    get_optional_user,
    require_admin,
    require_permissions,
    require_roles,
)
from marketplace.models import Profile
from marketplace.security import create_access_token, create_refresh_token

pytestmark = pytest.mark.unit


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def access_token_for(user: Profile) -> str:
    return create_access_token(user.id, user.organization_id, user.email, user.role)


class TestGetCurrentUser:
    """Test token validation."""

    @pytest.mark.asyncio
    async def test_valid_token(self, test_db, seller_user: Profile):
        user = await get_current_user(bearer(access_token_for(seller_user)), test_db)
        assert user.id == seller_user.id

    @pytest.mark.asyncio
    async def test_missing_credentials(self, test_db):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None, test_db)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_token_rejected(self, test_db, seller_user: Profile):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(bearer(create_refresh_token(seller_user.id)), test_db)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_db):
        token = create_access_token(uuid4(), None, "ghost@test.fi", "seller")

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(bearer(token), test_db)

        assert exc_info.value.status_code == 401


class TestGetCurrentActiveUser:
    """Test get_current_active_user function."""

    @pytest.mark.asyncio
    async def test_active_user_passes(self, seller_user: Profile):
        assert await get_current_active_user(seller_user) == seller_user

    @pytest.mark.asyncio
    async def test_inactive_user_raises_exception(self, inactive_user: Profile):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_active_user(inactive_user)

        assert exc_info.value.status_code == 403
        assert "Inactive user" in exc_info.value.detail


class TestGetOptionalUser:
    """Test the optional authentication dependency."""

    @pytest.mark.asyncio
    async def test_anonymous(self, test_db):
        assert await get_optional_user(None, test_db) is None

    @pytest.mark.asyncio
    async def test_invalid_token_is_anonymous(self, test_db):
        assert await get_optional_user(bearer("not-a-jwt"), test_db) is None

    @pytest.mark.asyncio
    async def test_inactive_user_is_anonymous(self, test_db, inactive_user: Profile):
        assert await get_optional_user(bearer(access_token_for(inactive_user)), test_db) is None

    @pytest.mark.asyncio
    async def test_logged_in(self, test_db, buyer_user: Profile):
        user = await get_optional_user(bearer(access_token_for(buyer_user)), test_db)
        assert user.id == buyer_user.id


class TestRequirePermissions:
    """Test require_permissions authorization."""

    @pytest.mark.asyncio
    async def test_user_with_permission_passes(self, broker_user: Profile):
        checker = require_permissions("deal:create", "nda:create")
        assert await checker(current_user=broker_user) == broker_user

    @pytest.mark.asyncio
    async def test_user_without_permission_raises_exception(self, seller_user: Profile):
        checker = require_permissions("deal:create")

        with pytest.raises(HTTPException) as exc_info:
            await checker(current_user=seller_user)

        assert exc_info.value.status_code == 403
        assert "deal:create" in exc_info.value.detail


class TestRequireRoles:
    """Test role restrictions."""

    @pytest.mark.asyncio
    async def test_allowed_role(self, broker_user: Profile):
        checker = require_roles("admin", "broker")
        assert await checker(current_user=broker_user) == broker_user

    @pytest.mark.asyncio
    async def test_custom_detail(self, buyer_user: Profile):
        checker = require_roles("admin", "broker", detail="Only admins and brokers can delete deals")

        with pytest.raises(HTTPException) as exc_info:
            await checker(current_user=buyer_user)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Only admins and brokers can delete deals"

    @pytest.mark.asyncio
    async def test_require_admin(self, admin_user: Profile, seller_user: Profile):
        assert await require_admin(admin_user) == admin_user

        with pytest.raises(HTTPException) as exc_info:
            await require_admin(seller_user)

        assert exc_info.value.status_code == 403


class TestEnsureSameOrganization:
    """Test tenant isolation on loaded rows."""

    @pytest.mark.asyncio
    async def test_same_organization(self, seller_user: Profile):
        ensure_same_organization(seller_user.organization_id, seller_user)

    @pytest.mark.asyncio
    async def test_other_organization(self, outsider_user: Profile, seller_user: Profile):
        with pytest.raises(HTTPException) as exc_info:
            ensure_same_organization(seller_user.organization_id, outsider_user)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_sees_every_organization(self, admin_user: Profile):
        ensure_same_organization(uuid4(), admin_user)
