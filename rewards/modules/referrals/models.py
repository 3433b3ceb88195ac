# Supabase tables: referrals, referral_commissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

referrals:
- id: uuid (primary key)
- parent_user_id: uuid (foreign key to users.id, not null)
- child_user_id: uuid (foreign key to users.id, not null)
- level: text (not null) - A (direct), B, C, D (further up the chain)
- created_at: timestamp (default: now())
- unique (parent_user_id, child_user_id)

A user has at most one level A row as child; its B/C/D rows are copied from
the referrer's own chain when the link is made.

referral_commissions:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id) - who earns
- source_user_id: uuid (foreign key to users.id) - whose activity paid it
- level: text - A, B, C, D
- commission_type: text - video, deposit
- commission_amount: numeric(12,2)
- status: text - pending, paid
- created_at: timestamp (default: now())
"""
