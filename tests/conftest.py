import random

import pytest
from fastapi.testclient import TestClient

from fake_supabase import FakeSupabase
from rewards.config.tiers_config import TIER_CATALOG
from rewards.database.supabase_client import get_service_supabase, get_supabase
from rewards.modules.auth import service as auth_service_module
from rewards.modules.onboarding.schemas import IdentityEvent
from rewards.modules.onboarding.service import OnboardingService


@pytest.fixture
def supabase():
    fake = FakeSupabase()
    for tier in TIER_CATALOG:
        fake.seed("vip_levels", dict(tier))
    return fake


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def onboarding(supabase, sleeps):
    return OnboardingService(supabase, sleep=sleeps.append, rng=random.Random(42))


@pytest.fixture
def make_user(supabase, onboarding):
    """Create an identity, onboard it and issue a token for it."""

    def _make(email, metadata=None, phone=None, app_metadata=None):
        identity = supabase.auth.add_identity(
            email=email, metadata=metadata, phone=phone, app_metadata=app_metadata
        )
        result = onboarding.onboard(IdentityEvent.from_auth_user(identity))
        user_row = next(r for r in supabase.rows("users") if r["id"] == result.user_id)
        return user_row, supabase.auth.issue_token(identity.id)

    return _make


@pytest.fixture
def admin_token(supabase):
    identity = supabase.auth.add_identity(email="root@example.com", app_metadata={"role": "admin"})
    return supabase.auth.issue_token(identity.id)


@pytest.fixture
def client(supabase):
    from rewards.main import app

    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_service_supabase] = lambda: supabase
    auth_service_module._AUTH_USER_CACHE.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    auth_service_module._AUTH_USER_CACHE.clear()
