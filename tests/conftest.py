import pytest

from repair_desk.config import Settings
from repair_desk.services.auth import AuthService
from tests.fakes import FakeAuthProvider, FakeRemote


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def provider():
    return FakeAuthProvider()


@pytest.fixture
def settings():
    return Settings(
        SUPABASE_URL="https://example.supabase.co",
        SUPABASE_ANON_KEY="anon-key",
        ADMIN_EMAIL="owner@example.com",
        ADMIN_PASSWORD="s3cret-pass",
        ADMIN_FULL_NAME="Owner",
        ADMIN_PHONE="0600000001",
        _env_file=None,
    )


@pytest.fixture
def auth(provider, remote, settings):
    return AuthService(provider, remote, settings)
