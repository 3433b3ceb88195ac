from supabase import Client
from rewards.core.ledger import get_wallet
from rewards.core.pagination import page_bounds, paginate
from rewards.modules.users.schemas import FinancialRecordListData, ProfileUpdate, WalletResponse
from typing import Any, Dict, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    "id, full_name, email, username, phone_number, referral_code, position_title, vip_level, "
    "total_earnings, total_invested, income_wallet_balance, personal_wallet_balance, "
    "profile_avatar, created_at, last_login"
)
# Columns copied onto user_profiles
PROFILE_COPY_COLUMNS = ("full_name", "phone_number")


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table("users")\
            .select(PROFILE_COLUMNS)\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        return result.data[0]

    def update_profile(self, user_id: str, update: ProfileUpdate) -> Dict[str, Any]:
        """
        Update users and copy full_name/phone_number onto user_profiles.
        If the copy fails the users row is put back.
        """
        changes = update.model_dump(exclude_none=True)
        if not changes:
            raise HTTPException(status_code=400, detail="No fields to update")

        if "phone_number" in changes:
            taken = self.supabase.table("users")\
                .select("id")\
                .eq("phone_number", changes["phone_number"])\
                .execute()
            if any(row["id"] != user_id for row in (taken.data or [])):
                raise HTTPException(status_code=409, detail="Phone number already taken")

        previous = self.get_profile(user_id)
        now = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table("users")\
            .update({**changes, "updated_at": now})\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")

        profile_copy = {k: v for k, v in changes.items() if k in PROFILE_COPY_COLUMNS}
        if profile_copy:
            try:
                self.supabase.table("user_profiles")\
                    .update({**profile_copy, "updated_at": now})\
                    .eq("user_id", user_id)\
                    .execute()
            except Exception as e:
                logger.error(f"Profile copy failed for user {user_id}; restoring users row: {e}")
                self.supabase.table("users")\
                    .update({k: previous.get(k) for k in changes})\
                    .eq("id", user_id)\
                    .execute()
                raise HTTPException(status_code=500, detail="Failed to update profile")

        logger.info(f"User {user_id} updated profile fields {sorted(changes)}")
        return self.get_profile(user_id)

    def get_wallet(self, user_id: str) -> WalletResponse:
        wallet = get_wallet(self.supabase, user_id)
        return WalletResponse(
            personal_wallet=float(wallet.get("personal_wallet_balance") or 0),
            income_wallet=float(wallet.get("income_wallet_balance") or 0),
            total_earnings=float(wallet.get("total_earnings") or 0),
            total_invested=float(wallet.get("total_invested") or 0),
            vip_level=wallet.get("vip_level"),
        )

    def list_financial_records(self, user_id: str, record_type: Optional[str],
                               page: int, limit: int) -> FinancialRecordListData:
        start, end = page_bounds(page, limit)
        query = self.supabase.table("financial_records")\
            .select("*", count="exact")\
            .eq("user_id", user_id)
        if record_type:
            query = query.eq("type", record_type)
        result = query.order("created_at", desc=True)\
            .range(start, end)\
            .execute()
        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return FinancialRecordListData(records=rows, pagination=paginate(page, limit, total))
