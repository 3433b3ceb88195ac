# Supabase tables: deposits, payment_methods
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure: see modules/admin/models.py for the full
deposits and payment_methods columns.

A user only ever inserts a deposits row with status 'pending'. Money moves
when an admin approves it (AdminService.approve_deposit), which credits
personal_wallet_balance and total_invested and may raise the user's tier.
"""
