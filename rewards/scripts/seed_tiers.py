"""
Seed Tier Catalog Script
This script upserts the vip_levels table from the tier config.
Can be run manually or as part of a deploy step.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from rewards.config.settings import settings
from rewards.config.tiers_config import TIER_CATALOG
from rewards.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_tiers(supabase: Client):
    """Insert or update each catalog tier by code"""
    logger.info("Seeding tiers...")

    created_count = 0
    updated_count = 0

    for tier in TIER_CATALOG:
        existing = supabase.table("vip_levels")\
            .select("id")\
            .eq("code", tier["code"])\
            .execute()

        fields = {k: v for k, v in tier.items() if k != "code"}
        if existing.data:
            supabase.table("vip_levels")\
                .update(fields)\
                .eq("code", tier["code"])\
                .execute()
            updated_count += 1
            logger.debug(f"Updated tier: {tier['code']}")
        else:
            supabase.table("vip_levels").insert(tier).execute()
            created_count += 1
            logger.debug(f"Created tier: {tier['code']}")

    logger.info(f"Tiers seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def check_default_tier(supabase: Client) -> bool:
    result = supabase.table("vip_levels")\
        .select("code, is_active")\
        .eq("code", settings.default_tier_code)\
        .execute()
    if not result.data or not result.data[0].get("is_active"):
        logger.error(f"Default tier {settings.default_tier_code!r} is missing or inactive after seeding")
        return False
    return True


def main():
    """Main function to seed the tier catalog"""
    try:
        supabase = get_service_supabase()
        count = seed_tiers(supabase)
        if not check_default_tier(supabase):
            sys.exit(1)
        logger.info(f"Seeding completed successfully! {count} tiers processed")
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
