# Supabase Auth
# This module uses Supabase's built-in authentication system (auth.users).
# Every auth user that belongs to the platform has a row in the public
# `users` table (see app/modules/users/models.py) linked by auth_user_id.

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.admin.create_user() / delete_user() - Service-role account management

CSRF tokens and auth rate-limit counters are held in process memory
(app/core/csrf.py, app/core/rate_limiter.py) and are never persisted.
"""
