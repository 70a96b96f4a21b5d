# Supabase table: messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

messages:
- id: uuid (primary key)
- client_id: uuid (foreign key to clients.id, not null, on delete cascade)
- sender_type: varchar (not null, 'coach' or 'client')
- content: text (not null, 1-10000 characters)
- is_read: boolean (default: false)
- read_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- index on (client_id, created_at)

The table is part of the supabase_realtime publication so INSERTs reach the
messages-{client_id} channels.
"""
