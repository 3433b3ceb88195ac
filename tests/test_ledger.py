import threading

import pytest
from fastapi import HTTPException

from fake_supabase import api_error
from rewards.config.settings import settings
from rewards.core.ledger import InsufficientBalance, apply_wallet_change


def _user(supabase, user_id):
    return next(u for u in supabase.rows("users") if u["id"] == user_id)


def _credit(supabase, user_id, amount, **kwargs):
    return apply_wallet_change(
        supabase, user_id, "personal_wallet_balance", amount,
        record_type="deposit", description="test credit", **kwargs
    )


def test_credit_writes_balance_and_ledger_row(supabase, make_user):
    user, _ = make_user("alice@example.com")

    balances = _credit(supabase, user["id"], 250, add_to_total_invested=True)

    assert balances == {"personal_wallet_balance": 250, "total_invested": 250}
    stored = _user(supabase, user["id"])
    assert stored["personal_wallet_balance"] == 250
    assert stored["total_invested"] == 250
    record = supabase.rows("financial_records")[0]
    assert (record["balance_before"], record["balance_after"], record["amount"]) == (0, 250, 250)


def test_debit_below_zero_is_refused(supabase, make_user):
    user, _ = make_user("alice@example.com")

    with pytest.raises(InsufficientBalance):
        _credit(supabase, user["id"], -1)

    assert _user(supabase, user["id"])["personal_wallet_balance"] == 0
    assert supabase.rows("financial_records") == []


def test_null_balance_column_counts_as_zero(supabase, make_user):
    user, _ = make_user("alice@example.com")
    _user(supabase, user["id"])["total_invested"] = None

    balances = _credit(supabase, user["id"], 40, add_to_total_invested=True)

    assert balances["total_invested"] == 40
    assert _user(supabase, user["id"])["total_invested"] == 40


def test_concurrent_credits_are_both_kept(supabase, make_user):
    user, _ = make_user("alice@example.com")
    barrier = threading.Barrier(2, timeout=5)
    held = set()
    held_lock = threading.Lock()

    def hold_first_update(query):
        # Both threads have read the same balance before either writes
        if query.table_name != "users" or query.op != "update":
            return
        me = threading.get_ident()
        with held_lock:
            if me in held:
                return
            held.add(me)
        barrier.wait()

    supabase.before_execute = hold_first_update
    errors = []

    def credit():
        try:
            _credit(supabase, user["id"], 100)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=credit) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert errors == []
    assert _user(supabase, user["id"])["personal_wallet_balance"] == 200
    records = sorted(supabase.rows("financial_records"), key=lambda r: r["balance_before"])
    assert [(r["balance_before"], r["balance_after"]) for r in records] == [(0, 100), (100, 200)]


def test_wallet_that_never_settles_gives_conflict(supabase, make_user, monkeypatch):
    monkeypatch.setattr(settings, "wallet_update_attempts", 3)
    user, _ = make_user("alice@example.com")
    row = _user(supabase, user["id"])
    updates = []

    def bump_before_update(query):
        if query.table_name == "users" and query.op == "update":
            updates.append(query)
            row["personal_wallet_balance"] += 1

    supabase.before_execute = bump_before_update

    with pytest.raises(HTTPException) as exc_info:
        _credit(supabase, user["id"], 100)

    assert exc_info.value.status_code == 409
    assert len(updates) == 3
    assert row["personal_wallet_balance"] == 3
    assert supabase.rows("financial_records") == []


def test_ledger_insert_failure_reverses_balance(supabase, make_user):
    user, _ = make_user("alice@example.com")
    supabase.fail("financial_records", "insert", api_error("42501", "permission denied"))

    with pytest.raises(Exception):
        _credit(supabase, user["id"], 75, add_to_total_invested=True)

    stored = _user(supabase, user["id"])
    assert stored["personal_wallet_balance"] == 0
    assert stored["total_invested"] == 0
