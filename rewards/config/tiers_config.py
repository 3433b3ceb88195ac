"""
Tier (VIP level) catalog configuration.
This is the single definition of membership tiers. The seed script upserts it
into the vip_levels table keyed by `code`; every lookup at runtime goes through
that table by code, never by display name.
"""

# Daily limits and per-task rewards per paid level
VIP_LIMITS = {
    1: {"daily_task_limit": 5, "reward_per_task": 30, "price": 3000},
    2: {"daily_task_limit": 10, "reward_per_task": 50, "price": 8000},
    3: {"daily_task_limit": 16, "reward_per_task": 70, "price": 16000},
    4: {"daily_task_limit": 31, "reward_per_task": 80, "price": 35000},
    5: {"daily_task_limit": 50, "reward_per_task": 100, "price": 70000},
    6: {"daily_task_limit": 75, "reward_per_task": 115, "price": 120000},
    7: {"daily_task_limit": 100, "reward_per_task": 160, "price": 220000},
    8: {"daily_task_limit": 120, "reward_per_task": 220, "price": 350000},
    9: {"daily_task_limit": 150, "reward_per_task": 260, "price": 500000},
    10: {"daily_task_limit": 180, "reward_per_task": 440, "price": 1000000},
}

INTERN_TIER = {
    "code": "intern",
    "name": "Intern",
    "rank": 0,
    "price": 0,
    "daily_task_limit": 3,
    "reward_per_task": 10,
    "membership_type": "intern",
    "trial_days": 3,
    "is_active": True,
}


def get_tier_catalog():
    """
    Returns the list of tier rows to seed, lowest rank first.
    Format: [
        {"code": "intern", "name": "Intern", "rank": 0, "daily_task_limit": 3, ...},
        {"code": "vip1", "name": "VIP1", "rank": 1, ...},
        ...
    ]
    """
    tiers = [dict(INTERN_TIER)]
    for level, limits in sorted(VIP_LIMITS.items()):
        tiers.append({
            "code": f"vip{level}",
            "name": f"VIP{level}",
            "rank": level,
            "price": limits["price"],
            "daily_task_limit": limits["daily_task_limit"],
            "reward_per_task": limits["reward_per_task"],
            "membership_type": "vip",
            "trial_days": 0,
            "is_active": True,
        })
    return tiers


TIER_CATALOG = get_tier_catalog()
