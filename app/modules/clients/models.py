# Supabase table: clients
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

clients:
- id: uuid (primary key)
- coach_id: uuid (foreign key to users.id, not null, on delete cascade)
- user_id: uuid (foreign key to users.id, not null, on delete cascade) - the client's profile
- name: varchar(255) (not null)
- created_at: timestamp (default: now())
- unique constraint on (coach_id, user_id)

Deleting a clients row cascades to client_tasks and messages.
"""
