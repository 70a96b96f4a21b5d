# Supabase tables: tasks, client_tasks
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

tasks:
- id: uuid (primary key)
- coach_id: uuid (foreign key to users.id, not null, on delete cascade)
- title: varchar(500) (not null)
- description: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

client_tasks:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null, on delete cascade)
- task_id: uuid (foreign key to tasks.id, not null, on delete cascade)
- status: varchar (not null, 'pending' or 'completed', default 'pending')
- completed_at: timestamp (nullable, set while status is 'completed')
- created_at: timestamp (default: now())
- unique constraint on (client_id, task_id)
"""
