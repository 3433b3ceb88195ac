from supabase import Client
from rewards.core.ledger import InsufficientBalance, apply_wallet_change, get_wallet
from rewards.modules.tiers.schemas import (
    CurrentTierResponse, MembershipStatus, TierActivationResponse, TierChangeResponse, TierResponse
)
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


class TierService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_tiers(self, include_inactive: bool = False) -> List[TierResponse]:
        """List catalog tiers ordered by rank"""
        query = self.supabase.table("vip_levels").select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        result = query.order("rank").execute()
        return [TierResponse(**row) for row in (result.data or [])]

    def get_tier(self, code: str) -> Optional[TierResponse]:
        """Look up a tier by its stable code. Returns None when absent."""
        if not code:
            return None
        result = self.supabase.table("vip_levels")\
            .select("*")\
            .eq("code", code)\
            .limit(1)\
            .execute()
        if not result.data:
            return None
        return TierResponse(**result.data[0])

    def get_tier_for_user(self, user_id: str) -> TierResponse:
        """Resolve the user's current tier from users.vip_level"""
        user_result = self.supabase.table("users")\
            .select("id, vip_level")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        if not user_result.data:
            raise HTTPException(status_code=404, detail="User not found")
        code = user_result.data[0].get("vip_level")
        tier = self.get_tier(code)
        if tier is None:
            logger.error(f"User {user_id} has vip_level {code!r} with no catalog row")
            raise HTTPException(status_code=500, detail=f"Tier {code!r} is not in the tier catalog")
        return tier

    def get_daily_limit(self, user_id: str) -> int:
        return self.get_tier_for_user(user_id).daily_task_limit

    def change_tier(self, user_id: str, tier_code: str) -> TierChangeResponse:
        """
        Move a user to another tier. users.vip_level is written first; the
        profile copy follows. If the copy cannot be written the source is
        restored so the two never disagree.
        """
        tier = self.get_tier(tier_code)
        if tier is None or not tier.is_active:
            raise HTTPException(status_code=400, detail=f"Unknown or inactive tier: {tier_code}")

        user_result = self.supabase.table("users")\
            .select("id, vip_level")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        if not user_result.data:
            raise HTTPException(status_code=404, detail="User not found")
        previous = user_result.data[0].get("vip_level")

        now = datetime.now(timezone.utc).isoformat()
        self.supabase.table("users")\
            .update({"vip_level": tier.code, "updated_at": now})\
            .eq("id", user_id)\
            .execute()

        profile_update = {
            "membership_level": tier.code,
            "membership_type": tier.membership_type,
            "updated_at": now,
        }
        if tier.trial_days <= 0:
            profile_update["is_trial_active"] = False

        try:
            profile_result = self.supabase.table("user_profiles")\
                .update(profile_update)\
                .eq("user_id", user_id)\
                .execute()
            if not profile_result.data:
                raise RuntimeError("user profile missing")
        except Exception as e:
            logger.error(f"Profile sync failed for user {user_id}, restoring vip_level {previous!r}: {e}")
            self.supabase.table("users")\
                .update({"vip_level": previous})\
                .eq("id", user_id)\
                .execute()
            raise HTTPException(
                status_code=500,
                detail=f"Failed to update user profile tier; change reverted ({e})"
            )

        logger.info(f"User {user_id} tier changed {previous!r} -> {tier.code!r}")
        return TierChangeResponse(
            user_id=user_id,
            previous_tier_code=previous,
            tier_code=tier.code,
            membership_type=tier.membership_type,
        )

    def _require_purchasable(self, user_id: str, tier_code: str) -> tuple:
        tier = self.get_tier(tier_code)
        if tier is None or not tier.is_active:
            raise HTTPException(status_code=404, detail="Tier not found or inactive")
        current = self.get_tier_for_user(user_id)
        if tier.rank <= current.rank:
            raise HTTPException(status_code=400, detail=f"Already at {current.name}, which is at or above {tier.name}")
        return tier, current

    def activate_tier(self, user_id: str, tier_code: str) -> TierActivationResponse:
        """Buy a higher tier with the personal wallet. The charge is refunded if the tier change fails."""
        tier, current = self._require_purchasable(user_id, tier_code)

        try:
            balances = apply_wallet_change(
                self.supabase, user_id, "personal_wallet_balance", -float(tier.price),
                record_type="plan_activation", description=f"VIP plan {tier.name} activated",
                reference_id=tier.id, reference_type="vip_level",
            )
        except InsufficientBalance as e:
            raise HTTPException(status_code=400, detail=str(e))

        try:
            self.change_tier(user_id, tier.code)
        except Exception:
            logger.error(f"Activating {tier.code} for user {user_id} failed after charging {tier.price}; refunding")
            apply_wallet_change(
                self.supabase, user_id, "personal_wallet_balance", float(tier.price),
                record_type="refund", description=f"VIP plan {tier.name} activation failed",
                reference_id=tier.id, reference_type="vip_level",
            )
            raise

        return TierActivationResponse(
            user_id=user_id,
            previous_tier_code=current.code,
            tier_code=tier.code,
            price=float(tier.price),
            new_balance=balances["personal_wallet_balance"],
        )

    def upgrade_by_investment(self, user_id: str, tier_code: str) -> TierChangeResponse:
        """Move up to a tier whose price the user's total_invested already covers."""
        tier, _ = self._require_purchasable(user_id, tier_code)
        total_invested = float(get_wallet(self.supabase, user_id).get("total_invested") or 0)
        if total_invested < float(tier.price):
            raise HTTPException(
                status_code=400,
                detail=f"Insufficient investment. Required: {tier.price}, Current: {total_invested}"
            )
        return self.change_tier(user_id, tier.code)

    def upgrade_for_investment(
        self, user_id: str, total_invested: float, reference_id: Optional[str] = None
    ) -> Optional[TierChangeResponse]:
        """Automatic upgrade after a deposit: the highest active tier priced within total_invested."""
        current = self.get_tier_for_user(user_id)
        eligible = [t for t in self.list_tiers() if float(t.price) <= total_invested]
        if not eligible or eligible[-1].rank <= current.rank:
            return None
        target = eligible[-1]

        change = self.change_tier(user_id, target.code)
        self.supabase.table("financial_records").insert({
            "user_id": user_id,
            "type": "vip_upgrade",
            "amount": 0,
            "description": f"Automatic upgrade to {target.name} based on total investment",
            "reference_id": reference_id,
            "reference_type": "deposit",
        }).execute()
        return change

    def get_current(self, user_id: str) -> CurrentTierResponse:
        tier = self.get_tier_for_user(user_id)
        profile_result = self.supabase.table("user_profiles")\
            .select("membership_type, membership_level, is_trial_active, trial_end_date")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        membership = MembershipStatus(**profile_result.data[0]) if profile_result.data else MembershipStatus()
        wallet = get_wallet(self.supabase, user_id)
        return CurrentTierResponse(
            tier=tier,
            membership=membership,
            total_invested=float(wallet.get("total_invested") or 0),
            next_tiers=[t for t in self.list_tiers() if t.rank > tier.rank],
        )
