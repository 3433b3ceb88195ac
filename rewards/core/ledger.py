"""
Wallet balance changes with a matching financial_records row.

PostgREST gives no multi-statement transaction, so each balance write is a
compare-and-set: the update is filtered on the values just read and retried
when another request got there first. The ledger row is paired by hand: if
its insert fails the balance change is reversed before the error propagates.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
import logging

from fastapi import HTTPException
from supabase import Client

from rewards.config.settings import settings

logger = logging.getLogger(__name__)

WALLET_COLUMNS = ("personal_wallet_balance", "income_wallet_balance")
WALLET_SELECT = "id, personal_wallet_balance, income_wallet_balance, total_earnings, total_invested, vip_level"


class InsufficientBalance(Exception):
    def __init__(self, available: float, required: float):
        super().__init__(f"Insufficient balance. Required: {required}, Available: {available}")
        self.available = available
        self.required = required


def get_wallet(supabase: Client, user_id: str) -> Dict[str, Any]:
    result = supabase.table("users")\
        .select(WALLET_SELECT)\
        .eq("id", user_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(status_code=404, detail="User not found")
    return result.data[0]


def adjust_balances(
    supabase: Client,
    user_id: str,
    deltas: Dict[str, float],
    guard: Optional[str] = None,
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """
    Add each delta to its users column. Returns (before, after).
    `guard` names a column that must not go negative.
    """
    attempts = max(1, settings.wallet_update_attempts)
    for attempt in range(attempts):
        wallet = get_wallet(supabase, user_id)
        raw = {column: wallet.get(column) for column in deltas}
        before = {column: float(value or 0) for column, value in raw.items()}
        after = {column: round(before[column] + delta, 2) for column, delta in deltas.items()}
        if guard is not None and after[guard] < 0:
            raise InsufficientBalance(available=before[guard], required=abs(deltas[guard]))

        query = supabase.table("users")\
            .update({**after, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", user_id)
        for column, value in raw.items():
            query = query.is_(column, "null") if value is None else query.eq(column, value)
        result = query.execute()
        if result.data:
            return before, after
        logger.info(f"Wallet of user {user_id} changed concurrently; re-reading (attempt {attempt + 1}/{attempts})")

    logger.error(f"Wallet update for user {user_id} kept losing to concurrent writers after {attempts} attempts")
    raise HTTPException(status_code=409, detail="Balance changed concurrently, please retry")


def apply_wallet_change(
    supabase: Client,
    user_id: str,
    column: str,
    delta: float,
    record_type: str,
    description: str,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    add_to_total_earnings: bool = False,
    add_to_total_invested: bool = False,
) -> Dict[str, float]:
    """Add delta (may be negative) to a wallet column and log it. Returns the new values."""
    if column not in WALLET_COLUMNS:
        raise ValueError(f"Unknown wallet column: {column}")

    deltas = {column: delta}
    if add_to_total_earnings:
        deltas["total_earnings"] = delta
    if add_to_total_invested:
        deltas["total_invested"] = delta

    before, after = adjust_balances(supabase, user_id, deltas, guard=column)
    try:
        supabase.table("financial_records").insert({
            "user_id": user_id,
            "type": record_type,
            "amount": abs(delta),
            "description": description,
            "reference_id": reference_id,
            "reference_type": reference_type,
            "balance_before": before[column],
            "balance_after": after[column],
        }).execute()
    except Exception as e:
        logger.error(f"Ledger insert failed for user {user_id} ({record_type}); reversing {column}: {e}")
        try:
            adjust_balances(supabase, user_id, {c: -d for c, d in deltas.items()})
        except Exception as restore_error:
            logger.critical(
                f"Could not reverse {record_type} of {delta} on user {user_id} after ledger failure: {restore_error}"
            )
        raise
    return after
