import random
import threading

import httpx
import pytest

from fake_supabase import api_error
from rewards.config.settings import settings
from rewards.config.tiers_config import TIER_CATALOG
from rewards.core.errors import (
    OnboardingConfigError,
    OnboardingConflictError,
    OnboardingPermissionError,
    OnboardingSchemaError,
)
from rewards.modules.onboarding.schemas import IdentityEvent
from rewards.modules.onboarding.service import OnboardingService
from rewards.modules.onboarding.usernames import fallback_username, random_suffix_candidate
from rewards.modules.reconciliation.service import plan_reconciliation


def _event(supabase, email, metadata=None):
    identity = supabase.auth.add_identity(email=email, metadata=metadata)
    return IdentityEvent.from_auth_user(identity)


def _profile_for(supabase, user_id):
    return [p for p in supabase.rows("user_profiles") if p["user_id"] == user_id]


def test_onboard_creates_linked_user_and_profile(supabase, onboarding):
    event = _event(supabase, "Alice@example.com", {"full_name": "Alice Smith", "phone_number": "+15550001"})

    result = onboarding.onboard(event)

    users = supabase.rows("users")
    assert len(users) == 1
    user = users[0]
    assert user["auth_user_id"] == event.identity_id
    assert user["username"] == "alice"
    assert user["full_name"] == "Alice Smith"
    assert user["phone_number"] == "+15550001"
    assert user["vip_level"] == settings.default_tier_code
    assert user["vip_level"] in {t["code"] for t in TIER_CATALOG}

    profiles = _profile_for(supabase, user["id"])
    assert len(profiles) == 1
    assert profiles[0]["membership_level"] == user["vip_level"]
    assert profiles[0]["membership_type"] == "intern"
    assert profiles[0]["is_trial_active"] is True

    assert result.created is True
    assert result.attempts == 1
    assert result.user_id == user["id"]
    assert result.username == "alice"
    assert len(result.referral_code) == 8


def test_identity_without_email_gets_default_base(supabase, onboarding):
    result = onboarding.onboard(_event(supabase, None))
    assert result.username == "user"
    assert supabase.rows("users")[0]["full_name"] == "User"


def test_same_base_username_gets_suffix(supabase, onboarding):
    first = onboarding.onboard(_event(supabase, "alice@example.com"))
    second = onboarding.onboard(_event(supabase, "alice@other.org"))
    third = onboarding.onboard(_event(supabase, "ALICE@third.net"))

    assert [first.username, second.username, third.username] == ["alice", "alice_1", "alice_2"]
    assert len({u["username"] for u in supabase.rows("users")}) == 3


def test_lost_username_race_retries_with_next_candidate(supabase, onboarding, sleeps):
    event = _event(supabase, "alice@example.com")
    state = {"fired": False}

    def other_onboarding_wins(query):
        if query.table_name == "users" and query.op == "insert" and not state["fired"]:
            state["fired"] = True
            supabase.seed("users", {"auth_user_id": "someone-else", "username": "alice"})

    supabase.before_execute = other_onboarding_wins
    result = onboarding.onboard(event)

    assert result.username == "alice_1"
    assert result.attempts == 2
    assert len(sleeps) == 1
    assert len(_profile_for(supabase, result.user_id)) == 1


def test_concurrent_onboarding_of_same_base_username(supabase):
    barrier = threading.Barrier(2, timeout=5)
    waited = set()
    waited_lock = threading.Lock()

    def line_up_first_inserts(query):
        if query.table_name != "users" or query.op != "insert":
            return
        me = threading.get_ident()
        with waited_lock:
            if me in waited:
                return
            waited.add(me)
        barrier.wait()

    supabase.before_execute = line_up_first_inserts
    events = [_event(supabase, "alice@example.com"), _event(supabase, "alice@example.org")]
    results, errors = [], []

    def run(event, seed):
        service = OnboardingService(supabase, sleep=lambda s: None, rng=random.Random(seed))
        try:
            results.append(service.onboard(event))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=run, args=(e, i)) for i, e in enumerate(events)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert errors == []
    assert sorted(r.username for r in results) == ["alice", "alice_1"]
    users = supabase.rows("users")
    assert len(users) == 2
    for user in users:
        assert len(_profile_for(supabase, user["id"])) == 1


def test_reonboarding_same_identity_is_idempotent(supabase, onboarding):
    event = _event(supabase, "bob@example.com")
    first = onboarding.onboard(event)
    writes = supabase.writes

    again = onboarding.onboard(event)

    assert supabase.writes == writes
    assert again.created is False
    assert again.repaired is False
    assert again.user_id == first.user_id
    assert len(supabase.rows("users")) == 1


def test_reonboarding_repairs_missing_profile(supabase, onboarding):
    event = _event(supabase, "bob@example.com")
    first = onboarding.onboard(event)
    supabase.rows("user_profiles").clear()

    again = onboarding.onboard(event)

    assert again.repaired is True
    assert len(_profile_for(supabase, first.user_id)) == 1


def test_profile_lookup_failure_on_reonboarding_is_classified(supabase, onboarding, sleeps):
    event = _event(supabase, "bob@example.com")
    onboarding.onboard(event)
    supabase.fail("user_profiles", "select", api_error("42501", "permission denied for table user_profiles"))

    with pytest.raises(OnboardingPermissionError) as exc_info:
        onboarding.onboard(event)

    assert exc_info.value.identity_id == event.identity_id
    assert exc_info.value.code == "42501"
    assert sleeps == []


@pytest.mark.parametrize("code", ["gold", "VIP1", "Intern", ""])
def test_default_tier_not_in_catalog_fails_before_any_write(supabase, onboarding, monkeypatch, code):
    monkeypatch.setattr(settings, "default_tier_code", code)
    writes = supabase.writes

    with pytest.raises(OnboardingConfigError) as exc_info:
        onboarding.onboard(_event(supabase, "carol@example.com"))

    assert exc_info.value.category == "schema"
    assert supabase.writes == writes
    assert supabase.rows("users") == []


def test_inactive_default_tier_is_a_config_error(supabase, onboarding):
    for tier in supabase.rows("vip_levels"):
        if tier["code"] == settings.default_tier_code:
            tier["is_active"] = False

    with pytest.raises(OnboardingConfigError):
        onboarding.onboard(_event(supabase, "carol@example.com"))
    assert supabase.rows("users") == []


def test_profile_failure_rolls_back_users_row(supabase, onboarding, sleeps):
    supabase.fail(
        "user_profiles", "insert",
        api_error("PGRST204", "Could not find the 'membership_type' column of 'user_profiles'"),
        times=None,
    )

    with pytest.raises(OnboardingSchemaError) as exc_info:
        onboarding.onboard(_event(supabase, "dave@example.com"))

    assert exc_info.value.code == "PGRST204"
    assert "membership_type" in exc_info.value.message
    assert supabase.rows("users") == []
    assert supabase.rows("user_profiles") == []
    assert sleeps == []


def test_failed_rollback_leaves_row_for_reconciliation(supabase, onboarding):
    supabase.fail("user_profiles", "insert", api_error("42703", "column does not exist"))
    supabase.fail("users", "delete", httpx.ConnectError("connection reset"))

    with pytest.raises(OnboardingSchemaError):
        onboarding.onboard(_event(supabase, "erin@example.com"))

    users = supabase.rows("users")
    assert len(users) == 1
    plan = plan_reconciliation([], users, supabase.rows("user_profiles"))
    assert [u["id"] for u in plan.missing_profiles] == [users[0]["id"]]


def test_permission_error_is_not_retried(supabase, onboarding, sleeps):
    supabase.fail(
        "users", "insert",
        api_error("42501", 'new row violates row-level security policy for table "users"'),
        times=None,
    )

    with pytest.raises(OnboardingPermissionError) as exc_info:
        onboarding.onboard(_event(supabase, "frank@example.com"))

    assert exc_info.value.category == "permission"
    assert sleeps == []


def test_referral_code_collision_is_retried(supabase, onboarding, sleeps):
    supabase.fail("users", "insert", api_error("23505", "duplicate key value violates unique constraint"))

    result = onboarding.onboard(_event(supabase, "gina@example.com"))

    assert result.attempts == 2
    assert len(sleeps) == 1
    assert len(supabase.rows("users")) == 1


def test_transient_errors_are_retried(supabase, onboarding, sleeps):
    supabase.fail("users", "insert", httpx.ConnectTimeout("timed out"), times=2)

    result = onboarding.onboard(_event(supabase, "hank@example.com"))

    assert result.attempts == 3
    assert len(sleeps) == 2


def test_retries_are_bounded_with_growing_backoff(supabase, onboarding, sleeps, monkeypatch):
    monkeypatch.setattr(settings, "onboarding_max_attempts", 3)
    monkeypatch.setattr(settings, "onboarding_backoff_base", 0.1)
    monkeypatch.setattr(settings, "onboarding_backoff_max", 2.0)
    supabase.fail("users", "insert", api_error("23505", "duplicate key"), times=None)

    with pytest.raises(OnboardingConflictError) as exc_info:
        onboarding.onboard(_event(supabase, "ivan@example.com"))

    assert "3 attempts" in exc_info.value.message
    assert len(sleeps) == 2
    assert 0.1 <= sleeps[0] <= 0.15
    assert 0.2 <= sleeps[1] <= 0.3
    assert supabase.rows("users") == []


def test_username_space_exhausted_uses_random_suffix(supabase, onboarding, monkeypatch):
    monkeypatch.setattr(settings, "username_suffix_attempts", 1)
    monkeypatch.setattr(settings, "username_random_attempts", 1)
    for name in ("alice", "alice_1"):
        supabase.seed("users", {"auth_user_id": f"other-{name}", "username": name})
    expected = random_suffix_candidate("alice", random.Random(42))

    result = onboarding.onboard(_event(supabase, "alice@example.com"))

    assert result.username == expected


def test_username_space_exhausted_falls_back_to_identity(supabase, onboarding, monkeypatch):
    monkeypatch.setattr(settings, "username_suffix_attempts", 1)
    monkeypatch.setattr(settings, "username_random_attempts", 1)
    for name in ("alice", "alice_1", random_suffix_candidate("alice", random.Random(42))):
        supabase.seed("users", {"auth_user_id": f"other-{name}", "username": name})
    event = _event(supabase, "alice@example.com")

    result = onboarding.onboard(event)

    assert result.username == fallback_username(event.identity_id)


def test_referral_chain_is_linked_upward(supabase, onboarding):
    grandparent = onboarding.onboard(_event(supabase, "grandma@example.com"))
    parent = onboarding.onboard(_event(supabase, "parent@example.com", {"referral_code": grandparent.referral_code}))
    child = onboarding.onboard(_event(supabase, "child@example.com", {"referral_code": parent.referral_code}))

    links = {(r["parent_user_id"], r["child_user_id"], r["level"]) for r in supabase.rows("referrals")}
    assert links == {
        (grandparent.user_id, parent.user_id, "A"),
        (parent.user_id, child.user_id, "A"),
        (grandparent.user_id, child.user_id, "B"),
    }


def test_unknown_referral_code_does_not_block_onboarding(supabase, onboarding):
    result = onboarding.onboard(_event(supabase, "kim@example.com", {"referral_code": "NOPE1234"}))
    assert result.created is True
    assert supabase.rows("referrals") == []


def test_identity_event_from_webhook_record():
    event = IdentityEvent.from_auth_record({
        "id": "0b7c",
        "email": "lee@example.com",
        "phone": "",
        "raw_user_meta_data": {"full_name": "Lee"},
    })
    assert event.identity_id == "0b7c"
    assert event.phone is None
    assert event.metadata == {"full_name": "Lee"}


def test_failed_referral_link_is_logged_and_onboarding_completes(supabase, onboarding, caplog):
    parent = onboarding.onboard(_event(supabase, "parent@example.com"))
    supabase.fail("referrals", "insert", api_error("57014", "canceling statement due to statement timeout"))

    with caplog.at_level("ERROR"):
        child = onboarding.onboard(_event(supabase, "child@example.com", {"referral_code": parent.referral_code}))

    assert child.created is True
    assert supabase.rows("referrals") == []
    assert any(parent.referral_code in r.getMessage() for r in caplog.records if r.levelname == "ERROR")
