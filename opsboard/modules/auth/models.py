# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User login and session management
# - JWT token generation and validation
# - Password hashing and security

"""
Supabase Auth provides:
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.get_session() - Restore an existing session
- auth.on_auth_state_change() - Follow sign-in/sign-out events
- auth.sign_out() - Logout users

The auth user id is the primary key of the public.users row that carries
the user's role_id (see opsboard/modules/users/models.py).
"""
