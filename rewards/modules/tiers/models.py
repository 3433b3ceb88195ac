# Supabase tables: vip_levels
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

vip_levels:
- id: uuid (primary key)
- code: text (unique, not null) - stable lookup key: intern, vip1 ... vip10
- name: text (not null) - display only, never used for lookups
- rank: integer (not null)
- price: numeric(12,2) (default: 0)
- daily_task_limit: integer (not null)
- reward_per_task: numeric(10,2) (not null)
- membership_type: text (not null) - values: intern, vip
- trial_days: integer (default: 0)
- is_active: boolean (default: true)
- created_at: timestamp (default: now())

users.vip_level holds a vip_levels.code and is the only source of a user's
current tier. user_profiles.membership_level / membership_type are copies
written by the same operation that writes users.vip_level (onboarding and
TierService.change_tier).
"""
