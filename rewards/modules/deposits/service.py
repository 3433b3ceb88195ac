from supabase import Client
from rewards.core.pagination import page_bounds, paginate
from rewards.modules.deposits.schemas import DepositCreate, PaymentMethod, UserDepositListData
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

DEPOSIT_STATUSES = ("pending", "approved", "rejected")


class DepositService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_payment_methods(self) -> List[PaymentMethod]:
        result = self.supabase.table("payment_methods")\
            .select("id, name, account_number, is_active")\
            .eq("is_active", True)\
            .order("name")\
            .execute()
        return [PaymentMethod(**row) for row in (result.data or [])]

    def _get_payment_method(self, payment_method_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("payment_methods")\
            .select("id, name, account_number")\
            .eq("id", payment_method_id)\
            .eq("is_active", True)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def submit(self, user_id: str, deposit: DepositCreate) -> Dict[str, Any]:
        """Record a pending deposit. Nothing is credited until an admin approves it."""
        if self._get_payment_method(deposit.payment_method_id) is None:
            raise HTTPException(status_code=404, detail="Payment method not found")

        now = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table("deposits").insert({
            "user_id": user_id,
            "payment_method_id": deposit.payment_method_id,
            "amount": deposit.amount,
            "till_id": deposit.till_id,
            "sender_account_number": deposit.sender_account_number,
            "payment_proof": deposit.payment_proof,
            "status": "pending",
            "created_at": now,
            "updated_at": now,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create deposit request")
        logger.info(f"User {user_id} submitted deposit {result.data[0]['id']} of {deposit.amount}")
        return result.data[0]

    def list_for_user(self, user_id: str, status: Optional[str], page: int, limit: int) -> UserDepositListData:
        if status is not None and status not in DEPOSIT_STATUSES:
            raise HTTPException(status_code=400, detail=f"status must be one of {', '.join(DEPOSIT_STATUSES)}")
        start, end = page_bounds(page, limit)
        query = self.supabase.table("deposits")\
            .select("*", count="exact")\
            .eq("user_id", user_id)
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True)\
            .range(start, end)\
            .execute()
        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return UserDepositListData(deposits=rows, pagination=paginate(page, limit, total))

    def get_for_user(self, user_id: str, deposit_id: str) -> Dict[str, Any]:
        result = self.supabase.table("deposits")\
            .select("*")\
            .eq("id", deposit_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Deposit not found")
        return result.data[0]
