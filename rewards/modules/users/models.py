# Supabase tables: users, user_profiles, financial_records
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
users holds identity-linked account data and the wallet columns
(personal_wallet_balance, income_wallet_balance, total_earnings,
total_invested). Wallet columns are only written through core/ledger.py.

user_profiles.full_name and user_profiles.phone_number are copies of the
users columns; a profile update writes both rows.

profile_avatar: text (nullable) on users.
"""
