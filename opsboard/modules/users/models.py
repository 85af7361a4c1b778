# Supabase tables: users, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in opsboard/modules/roles/repository.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- full_name: text (nullable)
- role_id: uuid (nullable, references roles.id on delete set null)
- created_at: timestamp (default: now())

Note: Authentication data (password, tokens) is stored in auth.users table
managed by Supabase Auth. A null role_id means the user is unassigned and
holds no permissions.
"""
