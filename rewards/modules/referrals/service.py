from supabase import Client
from rewards.config.settings import settings
from rewards.core.errors import is_unique_violation
from rewards.core.pagination import page_bounds, paginate
from rewards.modules.referrals.schemas import (
    EarningsData, EarningsSummary, MyReferralData, ReferralEarnings, ReferralLinkData,
    TeamData, TeamMember, TeamStats
)
from typing import Any, Dict, Iterable, List, Optional
from fastapi import HTTPException
from datetime import date
import logging

logger = logging.getLogger(__name__)

REFERRAL_LEVELS = ["A", "B", "C", "D"]
COMMISSION_STATUSES = ("pending", "paid")
MEMBER_USER_COLUMNS = "id, full_name, username, phone_number"
MEMBER_PROFILE_COLUMNS = "user_id, membership_type, membership_level, total_earnings, is_trial_active, trial_end_date"


def _trial_running(profile: Dict[str, Any], today: date) -> bool:
    end = profile.get("trial_end_date")
    if not profile.get("is_trial_active") or not end:
        return False
    return today <= date.fromisoformat(str(end)[:10])


def count_team(referrals: Iterable[Dict[str, Any]], profiles: Dict[str, Dict[str, Any]],
               today: Optional[date] = None) -> TeamStats:
    """Level counts plus VIP and running-trial counts over a parent's referral rows."""
    today = today or date.today()
    stats = TeamStats()
    for row in referrals:
        stats.total_team += 1
        field = f"level_{str(row.get('level', '')).lower()}"
        if hasattr(stats, field):
            setattr(stats, field, getattr(stats, field) + 1)
        profile = profiles.get(str(row.get("child_user_id")), {})
        if profile.get("membership_type") == "vip":
            stats.vip_count += 1
        if _trial_running(profile, today):
            stats.trial_count += 1
    return stats


class ReferralService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # Linking

    def find_referrer(self, referral_code: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("users")\
            .select("id, referral_code")\
            .eq("referral_code", referral_code)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def has_referrer(self, user_id: str) -> bool:
        result = self.supabase.table("referrals")\
            .select("id")\
            .eq("child_user_id", user_id)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def build_chain(self, child_user_id: str, parent_user_id: str) -> List[Dict[str, Any]]:
        """Referral rows for a new link: A for the referrer, then B/C/D up its own A chain."""
        rows: List[Dict[str, Any]] = []
        ancestor_id = parent_user_id
        for level in REFERRAL_LEVELS:
            if ancestor_id is None or ancestor_id == child_user_id:
                break
            rows.append({"parent_user_id": ancestor_id, "child_user_id": child_user_id, "level": level})
            up = self.supabase.table("referrals")\
                .select("parent_user_id")\
                .eq("child_user_id", ancestor_id)\
                .eq("level", "A")\
                .limit(1)\
                .execute()
            ancestor_id = up.data[0]["parent_user_id"] if up.data else None
        return rows

    def link(self, child_user_id: str, referral_code: str) -> ReferralLinkData:
        referrer = self.find_referrer(referral_code)
        if referrer is None:
            raise HTTPException(status_code=404, detail="Invalid referral code")
        if referrer["id"] == child_user_id:
            raise HTTPException(status_code=400, detail="Cannot refer yourself")
        if self.has_referrer(child_user_id):
            raise HTTPException(status_code=400, detail="User already has a referrer")

        rows = self.build_chain(child_user_id, referrer["id"])
        try:
            self.supabase.table("referrals").insert(rows).execute()
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=400, detail="User already has a referrer")
            raise
        logger.info(f"User {child_user_id} linked to referrer {referrer['id']} ({len(rows)} levels)")
        return ReferralLinkData(
            referrer_id=referrer["id"],
            referral_code=referral_code,
            levels_created=[row["level"] for row in rows],
        )

    # Team

    def _profiles_for(self, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not user_ids:
            return {}
        result = self.supabase.table("user_profiles")\
            .select(MEMBER_PROFILE_COLUMNS)\
            .in_("user_id", user_ids)\
            .execute()
        return {str(p["user_id"]): p for p in (result.data or [])}

    def _team_stats(self, user_id: str) -> TeamStats:
        result = self.supabase.table("referrals")\
            .select("level, child_user_id")\
            .eq("parent_user_id", user_id)\
            .execute()
        rows = result.data or []
        profiles = self._profiles_for([str(r["child_user_id"]) for r in rows])
        return count_team(rows, profiles)

    def get_team(self, user_id: str, level: Optional[str], page: int, limit: int) -> TeamData:
        if level is not None and level not in REFERRAL_LEVELS:
            raise HTTPException(status_code=400, detail=f"level must be one of {', '.join(REFERRAL_LEVELS)}")
        start, end = page_bounds(page, limit)
        query = self.supabase.table("referrals")\
            .select("id, level, created_at, child_user_id", count="exact")\
            .eq("parent_user_id", user_id)
        if level:
            query = query.eq("level", level)
        result = query.order("created_at", desc=True)\
            .range(start, end)\
            .execute()
        rows = result.data or []

        child_ids = [str(r["child_user_id"]) for r in rows]
        users: Dict[str, Dict[str, Any]] = {}
        if child_ids:
            users_result = self.supabase.table("users")\
                .select(MEMBER_USER_COLUMNS)\
                .in_("id", child_ids)\
                .execute()
            users = {str(u["id"]): u for u in (users_result.data or [])}
        profiles = self._profiles_for(child_ids)

        members = []
        for row in rows:
            child_id = str(row["child_user_id"])
            user = users.get(child_id)
            if user is None:
                continue
            profile = profiles.get(child_id, {})
            members.append(TeamMember(
                id=row["id"],
                level=row["level"],
                created_at=row.get("created_at"),
                user_id=child_id,
                full_name=user.get("full_name"),
                username=user.get("username"),
                phone_number=user.get("phone_number"),
                membership_type=profile.get("membership_type"),
                membership_level=profile.get("membership_level"),
                total_earnings=float(profile.get("total_earnings") or 0),
                is_trial_active=bool(profile.get("is_trial_active")),
                trial_end_date=profile.get("trial_end_date"),
            ))

        total = result.count if result.count is not None else len(rows)
        return TeamData(
            team_members=members,
            team_stats=self._team_stats(user_id),
            pagination=paginate(page, limit, total),
        )

    # Earnings

    def _commissions(self, user_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("referral_commissions")\
            .select("status, commission_type, commission_amount, level")\
            .eq("user_id", user_id)\
            .execute()
        return result.data or []

    def get_earnings(self, user_id: str, status: Optional[str], page: int, limit: int) -> EarningsData:
        if status is not None and status not in COMMISSION_STATUSES:
            raise HTTPException(status_code=400, detail=f"status must be one of {', '.join(COMMISSION_STATUSES)}")
        start, end = page_bounds(page, limit)
        query = self.supabase.table("referral_commissions")\
            .select("*", count="exact")\
            .eq("user_id", user_id)
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True)\
            .range(start, end)\
            .execute()
        commissions = result.data or []

        source_ids = sorted({str(c["source_user_id"]) for c in commissions if c.get("source_user_id")})
        sources: Dict[str, Dict[str, Any]] = {}
        if source_ids:
            users_result = self.supabase.table("users")\
                .select("id, full_name, username")\
                .in_("id", source_ids)\
                .execute()
            sources = {str(u["id"]): u for u in (users_result.data or [])}
        for commission in commissions:
            source = sources.get(str(commission.get("source_user_id")), {})
            commission["source_user_name"] = source.get("full_name")
            commission["source_username"] = source.get("username")

        summary = EarningsSummary()
        for row in self._commissions(user_id):
            amount = float(row.get("commission_amount") or 0)
            if row.get("status") == "paid":
                summary.total_paid += amount
            elif row.get("status") == "pending":
                summary.total_pending += amount
            if row.get("commission_type") == "video":
                summary.video_commissions += amount
            elif row.get("commission_type") == "deposit":
                summary.deposit_commissions += amount
            field = f"level_{str(row.get('level', '')).lower()}"
            if hasattr(summary, field):
                setattr(summary, field, getattr(summary, field) + 1)

        total = result.count if result.count is not None else len(commissions)
        return EarningsData(
            commissions=commissions,
            earnings_summary=summary,
            pagination=paginate(page, limit, total),
        )

    def get_my_referral(self, user_id: str) -> MyReferralData:
        result = self.supabase.table("users")\
            .select("referral_code")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        code = result.data[0].get("referral_code")

        earnings = ReferralEarnings()
        for row in self._commissions(user_id):
            amount = float(row.get("commission_amount") or 0)
            earnings.total_earnings += amount
            if row.get("status") == "paid":
                earnings.paid_earnings += amount
            elif row.get("status") == "pending":
                earnings.pending_earnings += amount

        return MyReferralData(
            referral_code=code,
            referral_link=f"{settings.frontend_url.rstrip('/')}/signup?ref={code}" if code else None,
            stats=self._team_stats(user_id),
            earnings=earnings,
        )
