import logging
from typing import Any, Dict, Iterable, List, Optional

from supabase import Client

from rewards.config.settings import settings
from rewards.core.errors import classify_db_error
from rewards.modules.onboarding.schemas import IdentityEvent
from rewards.modules.onboarding.service import OnboardingService
from rewards.modules.reconciliation.schemas import (
    ReconciliationFailure,
    ReconciliationPlan,
    ReconciliationReport,
)

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, auth_user_id, username, referral_code, vip_level, full_name, phone_number"


def plan_reconciliation(
    identities: Iterable[Dict[str, Any]],
    users: Iterable[Dict[str, Any]],
    profiles: Iterable[Dict[str, Any]],
    referrals: Iterable[Dict[str, Any]] = (),
) -> ReconciliationPlan:
    """
    Pure: decide what is missing.
    identities: auth users ({"id", "email", "user_metadata", ...}); users: rows with
    id/auth_user_id/referral_code; profiles: rows with user_id; referrals: rows with
    child_user_id.

    A referral is missing when the identity signed up with a referral_code that
    belongs to another existing user and the user is nobody's child yet.
    """
    identities = list(identities)
    users = list(users)
    onboarded_identities = {str(u["auth_user_id"]) for u in users if u.get("auth_user_id")}
    profiled_users = {str(p["user_id"]) for p in profiles}

    missing_users = [i for i in identities if str(i["id"]) not in onboarded_identities]
    missing_profiles = [u for u in users if str(u["id"]) not in profiled_users]

    users_by_identity = {str(u["auth_user_id"]): u for u in users if u.get("auth_user_id")}
    owners = {u["referral_code"]: str(u["id"]) for u in users if u.get("referral_code")}
    linked_children = {str(r["child_user_id"]) for r in referrals}
    missing_referrals = []
    for identity in identities:
        code = (identity.get("user_metadata") or {}).get("referral_code")
        user = users_by_identity.get(str(identity["id"]))
        if not code or user is None:
            continue
        user_id = str(user["id"])
        owner = owners.get(code)
        if owner is None or owner == user_id or user_id in linked_children:
            continue
        missing_referrals.append({"user_id": user_id, "referral_code": code})

    return ReconciliationPlan(
        missing_users=sorted(missing_users, key=lambda i: str(i["id"])),
        missing_profiles=sorted(missing_profiles, key=lambda u: str(u["id"])),
        missing_referrals=sorted(missing_referrals, key=lambda r: r["user_id"]),
    )


class ReconciliationService:
    """Finds orphaned identities and half-created users and re-runs onboarding for them."""

    def __init__(self, supabase: Client, onboarding: Optional[OnboardingService] = None):
        self.supabase = supabase
        self.onboarding = onboarding or OnboardingService(supabase)

    def list_identities(self) -> List[Dict[str, Any]]:
        per_page = settings.reconcile_page_size
        identities: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = self.supabase.auth.admin.list_users(page=page, per_page=per_page) or []
            for user in batch:
                identities.append({
                    "id": str(user.id),
                    "email": getattr(user, "email", None),
                    "phone": getattr(user, "phone", None),
                    "user_metadata": getattr(user, "user_metadata", None) or {},
                })
            if len(batch) < per_page:
                break
            page += 1
        return identities

    def _fetch_all(self, table: str, columns: str) -> List[Dict[str, Any]]:
        page_size = settings.reconcile_page_size
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            result = self.supabase.table(table)\
                .select(columns)\
                .order("id")\
                .range(offset, offset + page_size - 1)\
                .execute()
            batch = result.data or []
            rows.extend(batch)
            if len(batch) < page_size:
                break
            offset += page_size
        return rows

    def build_plan(self) -> tuple:
        identities = self.list_identities()
        users = self._fetch_all("users", USER_COLUMNS)
        profiles = self._fetch_all("user_profiles", "id, user_id")
        referrals = self._fetch_all("referrals", "id, child_user_id")
        return identities, users, profiles, plan_reconciliation(identities, users, profiles, referrals)

    def run(self, dry_run: bool = False) -> ReconciliationReport:
        identities, users, profiles, plan = self.build_plan()
        report = ReconciliationReport(
            dry_run=dry_run,
            identities_scanned=len(identities),
            users_scanned=len(users),
            profiles_scanned=len(profiles),
            missing_users=len(plan.missing_users),
            missing_profiles=len(plan.missing_profiles),
            missing_referrals=len(plan.missing_referrals),
        )
        if plan.is_empty:
            logger.info(f"Reconciliation: {len(identities)} identities consistent, nothing to do")
            return report

        logger.warning(
            f"Reconciliation found {len(plan.missing_users)} orphaned identities, "
            f"{len(plan.missing_profiles)} users without profiles and "
            f"{len(plan.missing_referrals)} unlinked referrals (dry_run={dry_run})"
        )
        if dry_run:
            return report

        for identity in plan.missing_users:
            try:
                self.onboarding.onboard(IdentityEvent.from_auth_record(identity))
                report.onboarded += 1
            except Exception as e:
                err = classify_db_error(e, identity["id"])
                logger.error(f"Reconciliation could not onboard identity {identity['id']}: {err.message}")
                report.failures.append(ReconciliationFailure(
                    identity_id=identity["id"], category=err.category, message=err.message
                ))

        for user_row in plan.missing_profiles:
            try:
                self.onboarding.create_missing_profile(user_row)
                report.profiles_created += 1
            except Exception as e:
                err = classify_db_error(e, user_row.get("auth_user_id"))
                logger.error(f"Reconciliation could not create profile for user {user_row['id']}: {err.message}")
                report.failures.append(ReconciliationFailure(
                    identity_id=user_row.get("auth_user_id"), user_id=user_row["id"],
                    category=err.category, message=err.message
                ))

        for missing in plan.missing_referrals:
            try:
                self.onboarding.referrals.link(missing["user_id"], missing["referral_code"])
                report.referrals_linked += 1
            except Exception as e:
                err = classify_db_error(e)
                logger.error(
                    f"Reconciliation could not link referral code {missing['referral_code']!r} "
                    f"for user {missing['user_id']}: {err.message}"
                )
                report.failures.append(ReconciliationFailure(
                    user_id=missing["user_id"], category=err.category, message=err.message
                ))

        logger.info(
            f"Reconciliation done: {report.onboarded} onboarded, {report.profiles_created} profiles created, "
            f"{report.referrals_linked} referrals linked, {len(report.failures)} failures"
        )
        return report
