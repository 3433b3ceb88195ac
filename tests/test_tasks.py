from datetime import date

import pytest
from fastapi import HTTPException

from fake_supabase import api_error
from rewards.modules.tasks.service import TaskService


@pytest.fixture
def tasks(supabase):
    return [supabase.seed("tasks", {"title": f"Video {i}", "is_active": True}) for i in range(5)]


@pytest.fixture
def day():
    return {"today": date(2026, 3, 1)}


@pytest.fixture
def service(supabase, day):
    return TaskService(supabase, today=lambda: day["today"])


def _user(supabase, user_id):
    return next(u for u in supabase.rows("users") if u["id"] == user_id)


def test_complete_task_credits_tier_reward(supabase, make_user, tasks, service):
    user, _ = make_user("alice@example.com")

    result = service.complete_task(user, tasks[0]["id"])

    assert result.reward_earned == 10
    assert result.income_wallet_balance == 10
    assert result.remaining == 2
    stored = _user(supabase, user["id"])
    assert stored["income_wallet_balance"] == 10
    assert stored["total_earnings"] == 10
    record = supabase.rows("financial_records")[0]
    assert record["type"] == "task_reward"
    assert record["balance_before"] == 0
    assert record["balance_after"] == 10
    assert record["reference_id"] == result.completion_id


def test_same_task_twice_in_a_day_is_rejected(make_user, tasks, service):
    user, _ = make_user("alice@example.com")
    service.complete_task(user, tasks[0]["id"])

    with pytest.raises(HTTPException) as exc_info:
        service.complete_task(user, tasks[0]["id"])
    assert exc_info.value.status_code == 409


def test_daily_limit_follows_tier(make_user, tasks, service, day):
    user, _ = make_user("alice@example.com")
    for task in tasks[:3]:
        service.complete_task(user, task["id"])

    with pytest.raises(HTTPException) as exc_info:
        service.complete_task(user, tasks[3]["id"])
    assert exc_info.value.status_code == 400

    day["today"] = date(2026, 3, 2)
    assert service.get_daily_stats(user).remaining == 3
    service.complete_task(user, tasks[0]["id"])


def test_concurrent_duplicate_completion_maps_to_conflict(supabase, make_user, tasks, service):
    user, _ = make_user("alice@example.com")
    supabase.fail("task_completions", "insert", api_error("23505", "duplicate key"))

    with pytest.raises(HTTPException) as exc_info:
        service.complete_task(user, tasks[0]["id"])
    assert exc_info.value.status_code == 409


def test_ledger_failure_removes_completion_and_restores_balance(supabase, make_user, tasks, service):
    user, _ = make_user("alice@example.com")
    supabase.fail("financial_records", "insert", api_error("42P01", 'relation "financial_records" does not exist'))

    with pytest.raises(HTTPException) as exc_info:
        service.complete_task(user, tasks[0]["id"])

    assert exc_info.value.status_code == 500
    assert supabase.rows("task_completions") == []
    stored = _user(supabase, user["id"])
    assert stored["income_wallet_balance"] == 0
    assert stored["total_earnings"] == 0


def test_unknown_task(make_user, tasks, service):
    user, _ = make_user("alice@example.com")
    with pytest.raises(HTTPException) as exc_info:
        service.complete_task(user, "missing")
    assert exc_info.value.status_code == 404
