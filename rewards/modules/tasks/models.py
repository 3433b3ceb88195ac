# Supabase tables: tasks, task_completions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

tasks:
- id: uuid (primary key)
- title: text (not null)
- description: text (nullable)
- video_url: text (nullable)
- duration_seconds: integer (default: 30)
- is_active: boolean (default: true)
- created_at: timestamp (default: now())

task_completions:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, not null)
- task_id: uuid (foreign key to tasks.id, not null)
- completion_date: date (not null, default: current_date)
- reward_earned: numeric(10,2) (not null)
- status: text (default: 'completed')
- created_at: timestamp (default: now())
- unique constraint on (user_id, task_id, completion_date)
"""
