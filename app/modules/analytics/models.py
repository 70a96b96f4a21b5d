# Supabase table: analytics_events
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

analytics_events:
- id: uuid (primary key)
- event_type: varchar(50) (not null, default 'page_view')
- page_path: text (not null)
- session_id: varchar(255) (not null) - per browser tab
- session_started_at: timestamp (nullable)
- user_id: uuid (foreign key to users.id, nullable, on delete set null)
- user_role: varchar(10) ('coach', 'client' or 'anonymous')
- referrer: text (nullable)
- user_agent: text (nullable)
- page_load_time: integer (nullable, milliseconds)
- time_on_page: integer (nullable, milliseconds)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

No IP addresses are stored.
"""
