"""
Promote Admin Script
Sets app_metadata.role on an auth identity (requires the service role key).

    python -m rewards.scripts.promote_admin <auth_user_id> [--revoke]
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from rewards.config.settings import settings
from rewards.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def set_admin(supabase: Client, auth_user_id: str, is_admin: bool = True) -> bool:
    """Set or clear the admin role in app_metadata"""
    app_metadata = {"role": "admin"} if is_admin else {"role": None}
    response = supabase.auth.admin.update_user_by_id(auth_user_id, {"app_metadata": app_metadata})
    if not response or not response.user:
        logger.error(f"Identity {auth_user_id} not found")
        return False
    logger.info(f"Identity {auth_user_id} admin={is_admin}")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Grant or revoke admin role")
    parser.add_argument("auth_user_id")
    parser.add_argument("--revoke", action="store_true")
    args = parser.parse_args(argv)

    if not settings.supabase_service_role_key:
        logger.error("SUPABASE_SERVICE_ROLE_KEY is required to update app_metadata")
        sys.exit(1)
    try:
        ok = set_admin(get_service_supabase(), args.auth_user_id, not args.revoke)
    except Exception as e:
        logger.error(f"Failed to update admin role: {e}")
        sys.exit(1)
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
