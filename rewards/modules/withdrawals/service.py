from supabase import Client
from rewards.core.ledger import get_wallet
from rewards.core.pagination import page_bounds, paginate
from rewards.modules.withdrawals.schemas import UserWithdrawalListData, WithdrawalCreate
from typing import Any, Dict, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

WITHDRAWAL_STATUSES = ("pending", "approved", "rejected")


class WithdrawalService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _pending_total(self, user_id: str) -> float:
        result = self.supabase.table("withdrawals")\
            .select("amount")\
            .eq("user_id", user_id)\
            .eq("status", "pending")\
            .execute()
        return sum(float(row.get("amount") or 0) for row in (result.data or []))

    def submit(self, user_id: str, withdrawal: WithdrawalCreate) -> Dict[str, Any]:
        wallet = get_wallet(self.supabase, user_id)
        available = float(wallet.get("income_wallet_balance") or 0) - self._pending_total(user_id)
        if withdrawal.amount > available:
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient balance. Required: {withdrawal.amount}, Available: {max(available, 0)}"
            )

        now = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table("withdrawals").insert({
            "user_id": user_id,
            "payment_method_id": withdrawal.payment_method_id,
            "amount": withdrawal.amount,
            "account_number": withdrawal.account_number,
            "account_name": withdrawal.account_name,
            "status": "pending",
            "created_at": now,
            "updated_at": now,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create withdrawal request")
        logger.info(f"User {user_id} requested withdrawal {result.data[0]['id']} of {withdrawal.amount}")
        return result.data[0]

    def list_for_user(self, user_id: str, status: Optional[str], page: int, limit: int) -> UserWithdrawalListData:
        if status is not None and status not in WITHDRAWAL_STATUSES:
            raise HTTPException(status_code=400, detail=f"status must be one of {', '.join(WITHDRAWAL_STATUSES)}")
        start, end = page_bounds(page, limit)
        query = self.supabase.table("withdrawals")\
            .select("*", count="exact")\
            .eq("user_id", user_id)
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True)\
            .range(start, end)\
            .execute()
        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return UserWithdrawalListData(withdrawals=rows, pagination=paginate(page, limit, total))
