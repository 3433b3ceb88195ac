import random
import time
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException
from supabase import Client

from rewards.config.settings import settings
from rewards.core.errors import (
    OnboardingConfigError,
    OnboardingError,
    classify_db_error,
)
from rewards.modules.onboarding.schemas import IdentityEvent, OnboardingResult
from rewards.modules.onboarding.usernames import (
    derive_base_username,
    fallback_username,
    generate_referral_code,
    pick_username,
    random_suffix_candidate,
    username_candidates,
)
from rewards.modules.referrals.service import ReferralService
from rewards.modules.tiers.schemas import TierResponse
from rewards.modules.tiers.service import TierService

logger = logging.getLogger(__name__)


class OnboardingService:
    """
    Turns an auth identity into a users row plus its user_profiles row.

    Both rows are written by this service or neither survives: a failed
    profile insert deletes the users row it follows. Unique collisions are
    retried with backoff; every other failure is raised classified.
    """

    def __init__(
        self,
        supabase: Client,
        tier_service: Optional[TierService] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.supabase = supabase
        self.tier_service = tier_service or TierService(supabase)
        self.referrals = ReferralService(supabase)
        self.sleep = sleep
        self.rng = rng or random.Random()

    def onboard(self, event: IdentityEvent) -> OnboardingResult:
        identity_id = event.identity_id

        existing = self._get_user_by_auth_id(identity_id)
        if existing:
            return self._ensure_profile(existing)

        tier = self._resolve_default_tier(identity_id)

        max_attempts = max(1, settings.onboarding_max_attempts)
        last_error: Optional[OnboardingError] = None
        for attempt in range(max_attempts):
            try:
                user_row = self._create_records(event, tier)
            except Exception as e:
                err = classify_db_error(e, identity_id)
                if not err.retryable:
                    self._log_fatal(err)
                    raise err from e

                # A concurrent onboarding of the same identity may have won
                existing = self._get_user_by_auth_id(identity_id)
                if existing:
                    logger.info(f"Identity {identity_id} onboarded concurrently; reusing existing record")
                    return self._ensure_profile(existing)

                last_error = err
                if attempt < max_attempts - 1:
                    delay = self._backoff_delay(attempt)
                    logger.warning(
                        f"Onboarding {identity_id} hit {err.category} error "
                        f"(attempt {attempt + 1}/{max_attempts}), retrying in {delay:.2f}s: {err.message}"
                    )
                    self.sleep(delay)
                continue

            self.link_referral(user_row["id"], event.metadata.get("referral_code"))
            logger.info(
                f"Onboarded identity {identity_id} as {user_row['username']} "
                f"(user {user_row['id']}, tier {tier.code}, attempts {attempt + 1})"
            )
            return OnboardingResult(
                user_id=user_row["id"],
                auth_user_id=identity_id,
                username=user_row["username"],
                referral_code=user_row["referral_code"],
                tier_code=tier.code,
                created=True,
                attempts=attempt + 1,
            )

        logger.error(f"Onboarding {identity_id} gave up after {max_attempts} attempts: {last_error.message}")
        raise type(last_error)(
            f"Onboarding failed after {max_attempts} attempts: {last_error.message}",
            identity_id=identity_id,
            code=last_error.code,
            details=last_error.details,
        )

    def create_missing_profile(self, user_row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert the profile for a users row that has none (reconciliation repair)."""
        tier = self._resolve_tier(user_row.get("vip_level"), user_row.get("auth_user_id"))
        try:
            result = self.supabase.table("user_profiles")\
                .insert(self._profile_row(user_row, tier))\
                .execute()
        except Exception as e:
            err = classify_db_error(e, user_row.get("auth_user_id"))
            self._log_fatal(err)
            raise err from e
        logger.info(f"Created missing profile for user {user_row['id']}")
        return result.data[0]

    # Internals

    def _resolve_default_tier(self, identity_id: str) -> TierResponse:
        return self._resolve_tier(settings.default_tier_code, identity_id)

    def _resolve_tier(self, code: Optional[str], identity_id: Optional[str]) -> TierResponse:
        try:
            tier = self.tier_service.get_tier(code)
        except Exception as e:
            err = classify_db_error(e, identity_id)
            self._log_fatal(err)
            raise err from e
        if tier is None or not tier.is_active:
            err = OnboardingConfigError(
                f"Tier {code!r} is not an active row in vip_levels; seed the catalog or fix DEFAULT_TIER_CODE",
                identity_id=identity_id,
            )
            self._log_fatal(err)
            raise err
        return tier

    def _get_user_by_auth_id(self, identity_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("users")\
                .select("*")\
                .eq("auth_user_id", identity_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            err = classify_db_error(e, identity_id)
            self._log_fatal(err)
            raise err from e
        return result.data[0] if result.data else None

    def _ensure_profile(self, user_row: Dict[str, Any]) -> OnboardingResult:
        try:
            result = self.supabase.table("user_profiles")\
                .select("id")\
                .eq("user_id", user_row["id"])\
                .limit(1)\
                .execute()
        except Exception as e:
            err = classify_db_error(e, str(user_row.get("auth_user_id")))
            self._log_fatal(err)
            raise err from e
        repaired = False
        if not result.data:
            logger.warning(f"User {user_row['id']} has no profile; repairing")
            self.create_missing_profile(user_row)
            repaired = True
        return OnboardingResult(
            user_id=user_row["id"],
            auth_user_id=str(user_row["auth_user_id"]),
            username=user_row["username"],
            referral_code=user_row["referral_code"],
            tier_code=user_row["vip_level"],
            created=False,
            repaired=repaired,
            attempts=0,
        )

    def _create_records(self, event: IdentityEvent, tier: TierResponse) -> Dict[str, Any]:
        username = self._choose_username(derive_base_username(event.email), event.identity_id)
        metadata = event.metadata or {}
        now = datetime.now(timezone.utc).isoformat()

        user_insert = {
            "auth_user_id": event.identity_id,
            "email": event.email,
            "full_name": metadata.get("full_name") or "User",
            "username": username,
            "phone_number": metadata.get("phone_number") or event.phone,
            "referral_code": generate_referral_code(self.rng),
            "vip_level": tier.code,
            "position_title": "Member",
            "user_status": "active",
            "is_active": True,
            "personal_wallet_balance": 0,
            "income_wallet_balance": 0,
            "total_earnings": 0,
            "total_invested": 0,
            "created_at": now,
            "updated_at": now,
        }
        user_result = self.supabase.table("users").insert(user_insert).execute()
        if not user_result.data:
            raise OnboardingError("Insert into users returned no row", identity_id=event.identity_id)
        user_row = user_result.data[0]

        try:
            self.supabase.table("user_profiles")\
                .insert(self._profile_row(user_row, tier))\
                .execute()
        except Exception:
            self._compensate(user_row["id"], event.identity_id)
            raise
        return user_row

    def _profile_row(self, user_row: Dict[str, Any], tier: TierResponse) -> Dict[str, Any]:
        today = date.today()
        return {
            "user_id": user_row["id"],
            "full_name": user_row.get("full_name"),
            "username": user_row.get("username"),
            "phone_number": user_row.get("phone_number"),
            "membership_level": tier.code,
            "membership_type": tier.membership_type,
            "is_trial_active": tier.trial_days > 0,
            "trial_start_date": today.isoformat(),
            "trial_end_date": (today + timedelta(days=tier.trial_days)).isoformat(),
            "total_earnings": 0,
            "videos_watched_today": 0,
            "last_video_reset_date": today.isoformat(),
        }

    def _compensate(self, user_id: str, identity_id: str) -> None:
        try:
            self.supabase.table("users").delete().eq("id", user_id).execute()
            logger.warning(f"Rolled back users row {user_id} for identity {identity_id} after profile insert failed")
        except Exception as e:
            # Left for reconciliation: it finds users rows without profiles
            logger.critical(
                f"Could not roll back users row {user_id} for identity {identity_id}: {e}"
            )

    def _choose_username(self, base: str, identity_id: str) -> str:
        candidates = username_candidates(base, settings.username_suffix_attempts)
        result = self.supabase.table("users")\
            .select("username")\
            .in_("username", candidates)\
            .execute()
        taken = {row["username"] for row in (result.data or [])}
        username = pick_username(candidates, taken)
        if username:
            return username

        for _ in range(settings.username_random_attempts):
            candidate = random_suffix_candidate(base, self.rng)
            check = self.supabase.table("users")\
                .select("id")\
                .eq("username", candidate)\
                .limit(1)\
                .execute()
            if not check.data:
                return candidate

        logger.info(f"Username space for {base!r} exhausted; using identity-derived fallback")
        return fallback_username(identity_id)

    def link_referral(self, child_user_id: str, referral_code: Optional[str]) -> bool:
        """
        Record the referral chain (A direct, then B/C/D upward). Never undoes
        onboarding; a failed link is picked up again by reconciliation from
        user_metadata.referral_code. Returns True when rows were written.
        """
        if not referral_code:
            return False
        try:
            self.referrals.link(child_user_id, referral_code)
        except HTTPException as e:
            logger.info(f"Referral code {referral_code!r} not linked for user {child_user_id}: {e.detail}")
            return False
        except Exception as e:
            logger.error(
                f"Failed to link referral code {referral_code!r} for user {child_user_id}; "
                f"left for reconciliation: {e}"
            )
            return False
        return True

    def _backoff_delay(self, attempt: int) -> float:
        delay = min(settings.onboarding_backoff_base * (2 ** attempt), settings.onboarding_backoff_max)
        return delay + self.rng.uniform(0, delay / 2)

    def _log_fatal(self, err: OnboardingError) -> None:
        if err.category == "unknown":
            logger.exception(f"Onboarding failed for identity {err.identity_id}: {err.message}")
        else:
            logger.error(
                f"Onboarding {err.category} error for identity {err.identity_id}: "
                f"{err.message} (code={err.code}, details={err.details})"
            )
