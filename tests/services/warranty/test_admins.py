"""Tests for the admin directory."""

import pytest

from services.warranty.models import AdminRole
from services.warranty.services import AdminDirectory
from shared.auth import decode_token


class TestAdminDirectory:
    """Tests for admin bootstrap and login."""

    @pytest.mark.asyncio
    async def test_ensure_default_admin_is_idempotent(self, admins: AdminDirectory) -> None:
        """Test a second bootstrap leaves the first account in place."""
        assert await admins.ensure_default_admin() is True
        first = await admins.store.get_admin_by_username("admin")

        assert await admins.ensure_default_admin() is False
        second = await admins.store.get_admin_by_username("admin")

        assert first is not None and second is not None
        assert second.id == first.id
        assert second.role == AdminRole.SUPER_ADMIN

    @pytest.mark.asyncio
    async def test_login_issues_tokens(self, admins: AdminDirectory) -> None:
        await admins.create("support", "s3cret-pass")

        result = await admins.login("support", "s3cret-pass")

        assert result is not None
        account, tokens = result
        claims = decode_token(tokens.access_token, verify_type="access")
        assert claims is not None
        assert claims.sub == account.id
        assert claims.username == "support"
        assert claims.roles == ["admin"]

    @pytest.mark.asyncio
    async def test_login_rejects_bad_credentials(self, admins: AdminDirectory) -> None:
        await admins.create("support", "s3cret-pass")

        assert await admins.login("support", "wrong") is None
        assert await admins.login("nobody", "s3cret-pass") is None

    @pytest.mark.asyncio
    async def test_stored_account_is_not_shared(self, admins: AdminDirectory) -> None:
        """Test mutating a fetched account does not change the stored one."""
        await admins.create("support", "s3cret-pass")

        fetched = await admins.store.get_admin_by_username("support")
        assert fetched is not None
        fetched.role = AdminRole.SUPER_ADMIN
        fetched.password_hash = "tampered"

        again = await admins.store.get_admin_by_username("support")
        assert again is not None
        assert again.role == AdminRole.ADMIN
        assert await admins.login("support", "s3cret-pass") is not None
