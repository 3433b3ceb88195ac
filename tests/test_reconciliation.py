import pytest

from fake_supabase import api_error
from rewards.config.settings import settings
from rewards.modules.onboarding.schemas import IdentityEvent
from rewards.modules.reconciliation.service import ReconciliationService, plan_reconciliation


@pytest.fixture
def reconciler(supabase, onboarding):
    return ReconciliationService(supabase, onboarding)


def test_plan_reconciliation_finds_orphans_and_half_created_users():
    identities = [{"id": "i1"}, {"id": "i2"}, {"id": "i3"}]
    users = [
        {"id": "u1", "auth_user_id": "i1"},
        {"id": "u2", "auth_user_id": "i2"},
    ]
    profiles = [{"user_id": "u1"}]

    plan = plan_reconciliation(identities, users, profiles)

    assert [i["id"] for i in plan.missing_users] == ["i3"]
    assert [u["id"] for u in plan.missing_profiles] == ["u2"]
    assert not plan.is_empty


def test_plan_reconciliation_consistent_is_empty():
    plan = plan_reconciliation(
        [{"id": "i1"}],
        [{"id": "u1", "auth_user_id": "i1"}],
        [{"user_id": "u1"}],
    )
    assert plan.is_empty


def test_plan_reconciliation_finds_unlinked_referrals():
    identities = [
        {"id": "i1", "user_metadata": {}},
        {"id": "i2", "user_metadata": {"referral_code": "PARENT01"}},
        {"id": "i3", "user_metadata": {"referral_code": "PARENT01"}},
        {"id": "i4", "user_metadata": {"referral_code": "GONE0000"}},
        {"id": "i5", "user_metadata": {"referral_code": "SELF0005"}},
    ]
    users = [
        {"id": "u1", "auth_user_id": "i1", "referral_code": "PARENT01"},
        {"id": "u2", "auth_user_id": "i2", "referral_code": "CHILD002"},
        {"id": "u3", "auth_user_id": "i3", "referral_code": "CHILD003"},
        {"id": "u4", "auth_user_id": "i4", "referral_code": "CHILD004"},
        {"id": "u5", "auth_user_id": "i5", "referral_code": "SELF0005"},
    ]
    profiles = [{"user_id": u["id"]} for u in users]
    referrals = [{"id": "r1", "child_user_id": "u3"}]

    plan = plan_reconciliation(identities, users, profiles, referrals)

    assert plan.missing_referrals == [{"user_id": "u2", "referral_code": "PARENT01"}]
    assert plan.missing_users == [] and plan.missing_profiles == []


def test_consistent_database_makes_no_writes(supabase, make_user, reconciler):
    make_user("alice@example.com")
    make_user("bob@example.com")
    writes = supabase.writes

    report = reconciler.run()

    assert supabase.writes == writes
    assert report.identities_scanned == 2
    assert report.missing_users == 0
    assert report.missing_profiles == 0
    assert report.writes == 0


def test_orphaned_identity_is_onboarded(supabase, make_user, reconciler):
    make_user("alice@example.com")
    orphan = supabase.auth.add_identity(email="orphan@example.com", metadata={"full_name": "Olive"})

    report = reconciler.run()

    assert report.missing_users == 1
    assert report.onboarded == 1
    assert report.failures == []
    row = next(u for u in supabase.rows("users") if u["auth_user_id"] == orphan.id)
    assert row["full_name"] == "Olive"
    assert any(p["user_id"] == row["id"] for p in supabase.rows("user_profiles"))

    writes = supabase.writes
    second = reconciler.run()
    assert second.writes == 0
    assert supabase.writes == writes


def test_users_row_without_profile_is_repaired(supabase, make_user, reconciler):
    user, _ = make_user("alice@example.com")
    supabase.rows("user_profiles").clear()

    report = reconciler.run()

    assert report.missing_profiles == 1
    assert report.profiles_created == 1
    profile = supabase.rows("user_profiles")[0]
    assert profile["user_id"] == user["id"]
    assert profile["membership_level"] == user["vip_level"]


def test_dry_run_reports_without_writing(supabase, reconciler):
    supabase.auth.add_identity(email="orphan@example.com")
    writes = supabase.writes

    report = reconciler.run(dry_run=True)

    assert report.dry_run is True
    assert report.missing_users == 1
    assert report.onboarded == 0
    assert supabase.writes == writes
    assert supabase.rows("users") == []


def test_one_failure_does_not_stop_the_sweep(supabase, reconciler):
    supabase.auth.add_identity(email="first@example.com")
    supabase.auth.add_identity(email="second@example.com")
    supabase.fail("users", "insert", api_error("XX000", "something odd"))

    report = reconciler.run()

    assert report.onboarded == 1
    assert len(report.failures) == 1
    assert report.failures[0].category == "unknown"
    assert len(supabase.rows("users")) == 1


def test_identities_and_rows_are_paged(supabase, onboarding, reconciler, monkeypatch):
    monkeypatch.setattr(settings, "reconcile_page_size", 2)
    identities = [supabase.auth.add_identity(email=f"user{i}@example.com") for i in range(5)]
    for identity in identities[:3]:
        onboarding.onboard(IdentityEvent.from_auth_user(identity))

    report = reconciler.run()

    assert report.identities_scanned == 5
    assert report.users_scanned == 3
    assert report.profiles_scanned == 3
    assert report.onboarded == 2
    assert len(supabase.rows("users")) == 5


def test_sweep_relinks_referral_that_failed_at_signup(supabase, make_user, reconciler):
    parent, _ = make_user("parent@example.com")
    supabase.fail("referrals", "insert", api_error("57014", "canceling statement due to statement timeout"))
    child, _ = make_user("child@example.com", metadata={"referral_code": parent["referral_code"]})
    assert supabase.rows("referrals") == []

    dry = reconciler.run(dry_run=True)
    assert dry.missing_referrals == 1
    assert supabase.rows("referrals") == []

    report = reconciler.run()

    assert report.referrals_linked == 1
    assert report.writes == 1
    assert [(r["parent_user_id"], r["child_user_id"], r["level"]) for r in supabase.rows("referrals")] == [
        (parent["id"], child["id"], "A")
    ]

    writes = supabase.writes
    assert reconciler.run().writes == 0
    assert supabase.writes == writes
