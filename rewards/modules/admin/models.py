# Supabase tables: deposits, withdrawals, financial_records, payment_methods
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

deposits:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- payment_method_id: uuid (foreign key to payment_methods.id)
- amount: numeric(12,2) (not null)
- till_id, payment_proof, sender_account_number: text (nullable)
- status: text (default: 'pending') - values: pending, approved, rejected
- admin_notes: text (nullable)
- approved_by: uuid (nullable) - auth user id of the reviewing admin
- approved_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

withdrawals:
- same review columns as deposits
- account_number, account_name: text (not null)

financial_records:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- type: text (not null) - deposit, withdrawal, task_reward, plan_activation, refund, vip_upgrade
- amount: numeric(12,2) (not null)
- description: text
- reference_id: uuid
- reference_type: text
- balance_before, balance_after: numeric(12,2)
- created_at: timestamp (default: now())

payment_methods:
- id: uuid (primary key)
- name: text (not null)
- account_number: text (not null)
- is_active: boolean (default: true)
"""
