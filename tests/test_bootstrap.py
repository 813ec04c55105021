import pytest

from repair_desk.config import Collections
from repair_desk.core.bootstrap import ensure_admin_account


class TestEnsureAdminAccount:
    """Unit tests for the admin account bootstrap"""

    @pytest.mark.asyncio
    async def test_creates_admin(self, auth, remote, provider, settings):
        """Test a fresh install gets the admin identity and role record"""
        result = await ensure_admin_account(auth, settings)

        assert result["success"] is True
        assert result["created"] is True
        assert "owner@example.com" in provider.accounts
        record = remote.docs(Collections.USERS)[0]
        assert record["role"] == "superAdmin"
        assert record["uid"] == result["uid"]
        assert record["full_name"] == "Owner"
        assert provider.current is None

    @pytest.mark.asyncio
    async def test_is_idempotent(self, auth, remote, settings):
        """Test running twice creates one record"""
        await ensure_admin_account(auth, settings)
        result = await ensure_admin_account(auth, settings)

        assert result == {"success": True, "created": False}
        assert len(remote.docs(Collections.USERS)) == 1

    @pytest.mark.asyncio
    async def test_backfills_missing_record(self, auth, remote, provider, settings):
        """Test an existing identity without a role record is backfilled"""
        identity = provider.add_account("owner@example.com", "s3cret-pass", uid="admin-1")

        result = await ensure_admin_account(auth, settings)

        assert result["success"] is True
        assert result["uid"] == identity.uid
        assert await auth.get_user_role("admin-1") == "superAdmin"

    @pytest.mark.asyncio
    async def test_backfill_with_wrong_password(self, auth, remote, provider, settings):
        """Test a backfill that cannot sign in reports the failure"""
        provider.add_account("owner@example.com", "other-pass")

        result = await ensure_admin_account(auth, settings)

        assert result["success"] is False
        assert remote.docs(Collections.USERS) == []

    @pytest.mark.asyncio
    async def test_skipped_without_password(self, auth, remote, settings):
        """Test the bootstrap does nothing without a configured password"""
        settings.ADMIN_PASSWORD = ""

        result = await ensure_admin_account(auth, settings)

        assert result["skipped"] is True
        assert remote.calls == []
