# Supabase tables: users, user_profiles, referrals, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

users:
- id: uuid (primary key)
- auth_user_id: uuid (unique, not null, references auth.users.id)
- email: text (nullable)
- full_name: text (not null)
- username: text (unique, not null)
- phone_number: text (nullable)
- referral_code: text (unique, not null)
- vip_level: text (not null, references vip_levels.code) - single source of current tier
- position_title: text (default: 'Member') - 'admin' marks legacy admins
- user_status: text (default: 'active')
- is_active: boolean (default: true)
- personal_wallet_balance, income_wallet_balance, total_earnings, total_invested: numeric(12,2) (default: 0)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

user_profiles:
- id: uuid (primary key)
- user_id: uuid (unique, not null, references users.id on delete cascade)
- full_name, username, phone_number: text - copies taken at onboarding
- membership_level: text - copy of users.vip_level
- membership_type: text - copy of vip_levels.membership_type
- is_trial_active: boolean
- trial_start_date, trial_end_date: date
- total_earnings: numeric(12,2) (default: 0)
- videos_watched_today: integer (default: 0)
- last_video_reset_date: date
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

referrals:
- id: uuid (primary key)
- parent_user_id: uuid (not null, references users.id)
- child_user_id: uuid (not null, references users.id)
- level: text (not null) - values: A (direct), B, C, D
- created_at: timestamp (default: now())
- unique constraint on (parent_user_id, child_user_id)

No trigger on auth.users creates these rows; OnboardingService does.
"""
