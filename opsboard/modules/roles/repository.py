"""Supabase access for users, roles, permissions and role_permissions.

Lookups return ``None`` when a row does not exist. Any failure talking to
Supabase is raised as ``StoreUnavailableError`` so callers can fail closed.
"""

import logging
from typing import Any, Dict, List, Optional, Set

import httpx
from postgrest import APIError
from supabase import AsyncClient

from opsboard.core.errors import DuplicateGrantError, StoreUnavailableError
from opsboard.modules.roles.schemas import PermissionResponse, RoleResponse
from opsboard.modules.users.schemas import UserResponse, UserWithRoleResponse

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
PERMISSION_COLUMNS = "id, name, description, resource, action"


async def _execute(query, what: str) -> List[Dict[str, Any]]:
    try:
        result = await query.execute()
    except (APIError, httpx.HTTPError) as e:
        raise StoreUnavailableError(f"Failed to {what}: {e}") from e
    return (result.data if result is not None else None) or []


class RbacRepository:
    def __init__(self, supabase: AsyncClient):
        self.supabase = supabase

    # Lookups used by the resolver

    async def get_user_by_id(self, user_id: str) -> Optional[UserResponse]:
        rows = await _execute(
            self.supabase.table("users")
                .select("id, email, full_name, role_id")
                .eq("id", user_id)
                .limit(1),
            "fetch user",
        )
        return UserResponse(**rows[0]) if rows else None

    async def get_role_by_id(self, role_id: str) -> Optional[RoleResponse]:
        rows = await _execute(
            self.supabase.table("roles")
                .select("*")
                .eq("id", role_id)
                .limit(1),
            "fetch role",
        )
        return RoleResponse(**rows[0]) if rows else None

    async def get_permission_by_id(self, permission_id: str) -> Optional[PermissionResponse]:
        rows = await _execute(
            self.supabase.table("permissions")
                .select(PERMISSION_COLUMNS)
                .eq("id", permission_id)
                .limit(1),
            "fetch permission",
        )
        return PermissionResponse(**rows[0]) if rows else None

    async def list_permissions(self) -> List[PermissionResponse]:
        """Full permission catalog"""
        rows = await _execute(
            self.supabase.table("permissions")
                .select(PERMISSION_COLUMNS)
                .order("resource")
                .order("action"),
            "list permissions",
        )
        return [PermissionResponse(**row) for row in rows]

    async def list_grants_for_role(self, role_id: str) -> Set[str]:
        rows = await _execute(
            self.supabase.table("role_permissions")
                .select("permission_id")
                .eq("role_id", role_id),
            "list role grants",
        )
        return {row["permission_id"] for row in rows}

    async def list_permissions_for_role(self, role_id: str) -> List[PermissionResponse]:
        """Grants for a role joined to their permission rows"""
        rows = await _execute(
            self.supabase.table("role_permissions")
                .select(f"permission_id, permissions({PERMISSION_COLUMNS})")
                .eq("role_id", role_id),
            "list role permissions",
        )
        return [PermissionResponse(**row["permissions"]) for row in rows if row.get("permissions")]

    # Grant writes

    async def grant_exists(self, role_id: str, permission_id: str) -> bool:
        rows = await _execute(
            self.supabase.table("role_permissions")
                .select("permission_id")
                .eq("role_id", role_id)
                .eq("permission_id", permission_id)
                .limit(1),
            "check role grant",
        )
        return bool(rows)

    async def insert_grant(self, role_id: str, permission_id: str) -> None:
        try:
            await self.supabase.table("role_permissions").insert({
                "role_id": role_id,
                "permission_id": permission_id
            }).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateGrantError(role_id, permission_id) from e
            raise StoreUnavailableError(f"Failed to insert role grant: {e}") from e
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"Failed to insert role grant: {e}") from e

    async def delete_grant(self, role_id: str, permission_id: str) -> None:
        await _execute(
            self.supabase.table("role_permissions")
                .delete()
                .eq("role_id", role_id)
                .eq("permission_id", permission_id),
            "delete role grant",
        )

    # Role administration

    async def list_roles(self) -> List[RoleResponse]:
        rows = await _execute(self.supabase.table("roles").select("*").order("name"), "list roles")
        return [RoleResponse(**row) for row in rows]

    async def create_role(
        self,
        name: str,
        description: Optional[str],
        is_privileged: bool = False,
        created_by: Optional[str] = None
    ) -> RoleResponse:
        rows = await _execute(
            self.supabase.table("roles").insert({
                "name": name,
                "description": description,
                "is_privileged": is_privileged,
                "created_by": created_by
            }),
            "create role",
        )
        if not rows:
            raise StoreUnavailableError("Failed to create role: empty response")
        return RoleResponse(**rows[0])

    async def update_role(self, role_id: str, update_data: Dict[str, Any]) -> Optional[RoleResponse]:
        rows = await _execute(
            self.supabase.table("roles")
                .update(update_data)
                .eq("id", role_id),
            "update role",
        )
        return RoleResponse(**rows[0]) if rows else None

    async def delete_role(self, role_id: str) -> bool:
        rows = await _execute(
            self.supabase.table("roles")
                .delete()
                .eq("id", role_id),
            "delete role",
        )
        return len(rows) > 0

    # Team roster

    async def list_users(self) -> List[UserWithRoleResponse]:
        rows = await _execute(
            self.supabase.table("users")
                .select("id, email, full_name, role_id, roles(name, description)")
                .order("email"),
            "list users",
        )
        users = []
        for row in rows:
            row = dict(row)
            row["role"] = row.pop("roles", None)
            users.append(UserWithRoleResponse(**row))
        return users

    async def set_user_role(self, user_id: str, role_id: str) -> Optional[UserResponse]:
        rows = await _execute(
            self.supabase.table("users")
                .update({"role_id": role_id})
                .eq("id", user_id),
            "update user role",
        )
        return UserResponse(**rows[0]) if rows else None
