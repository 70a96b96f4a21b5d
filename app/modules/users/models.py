# Supabase table: users (platform profiles)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, default gen_random_uuid())
- auth_user_id: uuid (nullable, references auth.users.id on delete cascade)
- email: varchar(255) (unique, nullable)
- client_identifier: varchar(50) (unique, nullable) - e.g. coach7a2x_client001
- has_auth_access: boolean (default true) - false for identifier-only clients
- role: varchar(50) (not null, check role in ('coach', 'client'))
- name: varchar(255) (not null)
- created_at: timestamp (default: now())
- check: exactly one of email / client_identifier is set

Identifier-only clients have no auth.users row and cannot log in; their
coach manages them entirely.
"""
