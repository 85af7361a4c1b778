# Supabase tables: permissions, roles, role_permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in repository.py

"""
Expected Supabase table structure:

permissions:
- id: uuid (primary key)
- name: text (not null, unique) - e.g., "orders:view", "inventory:edit"
- resource: text (not null) - e.g., "orders", "inventory", "payables"
- action: text (not null) - e.g., "view", "create", "edit", "delete"
- description: text (nullable)
- unique constraint on (resource, action)

roles:
- id: uuid (primary key)
- name: text (not null, unique) - e.g., "CEO", "Admin", "Accountant"
- description: text (nullable)
- is_privileged: boolean (not null, default false) - set at creation/seed time;
  privileged roles hold every permission and their grants are never read
- created_by: uuid (nullable, references users.id)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

role_permissions:
- role_id: uuid (foreign key to roles.id on delete cascade, not null)
- permission_id: uuid (foreign key to permissions.id on delete cascade, not null)
- created_at: timestamp (default: now())
- unique constraint on (role_id, permission_id)

Realtime publication (supabase_realtime) must include users, roles and
role_permissions so the API can invalidate its permission cache.
"""
