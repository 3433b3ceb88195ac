# Supabase tables: withdrawals
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure: see modules/admin/models.py for the
withdrawals columns.

Requests are paid from income_wallet_balance. Submitting only checks that the
balance covers this request plus the user's other pending requests; the
debit happens on admin approval (AdminService.approve_withdrawal).
"""
