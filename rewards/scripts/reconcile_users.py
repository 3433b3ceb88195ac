"""
Reconcile Users Script
Finds auth identities without users/user_profiles rows and onboards them.
Safe to re-run: a consistent database produces no writes.

    python -m rewards.scripts.reconcile_users --dry-run
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from rewards.database.supabase_client import get_service_supabase
from rewards.modules.reconciliation.service import ReconciliationService
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Repair orphaned identities")
    parser.add_argument("--dry-run", action="store_true", help="report only, write nothing")
    args = parser.parse_args(argv)

    try:
        report = ReconciliationService(get_service_supabase()).run(dry_run=args.dry_run)
    except Exception as e:
        logger.error(f"Reconciliation failed: {e}")
        sys.exit(1)

    logger.info(
        f"Scanned {report.identities_scanned} identities, {report.users_scanned} users, "
        f"{report.profiles_scanned} profiles"
    )
    logger.info(f"Missing users: {report.missing_users}, missing profiles: {report.missing_profiles}, "
                f"unlinked referrals: {report.missing_referrals}")
    if not args.dry_run:
        logger.info(f"Onboarded: {report.onboarded}, profiles created: {report.profiles_created}, "
                    f"referrals linked: {report.referrals_linked}")
    for failure in report.failures:
        logger.error(
            f"Unrepaired identity={failure.identity_id} user={failure.user_id} "
            f"[{failure.category}] {failure.message}"
        )
    if report.failures:
        sys.exit(2)


if __name__ == "__main__":
    main()
