"""
Toggling a single grant row on a non-protected role.

Every attempted write invalidates the role, including one that failed after
the store may already have applied it.
"""

import logging
from typing import Optional, Protocol

from opsboard.core.errors import DuplicateGrantError, ProtectedRoleError, RoleNotFoundError
from opsboard.core.resolver import PermissionResolver
from opsboard.modules.roles.schemas import GrantState, RoleResponse

logger = logging.getLogger(__name__)


class GrantStore(Protocol):
    async def get_role_by_id(self, role_id: str) -> Optional[RoleResponse]: ...
    async def grant_exists(self, role_id: str, permission_id: str) -> bool: ...
    async def insert_grant(self, role_id: str, permission_id: str) -> None: ...
    async def delete_grant(self, role_id: str, permission_id: str) -> None: ...


class GrantToggler:
    """Flips a single role_permissions row and invalidates everyone resolved through the role"""

    def __init__(self, store: GrantStore, resolver: PermissionResolver):
        self.store = store
        self.resolver = resolver

    async def toggle_grant(self, role_id: str, permission_id: str) -> GrantState:
        # Read the role from the store, not the cache; a stale copy must not unlock a protected role
        role = await self.store.get_role_by_id(role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        if self.resolver.is_protected(role):
            logger.warning(f"Rejected grant change on protected role {role.name} ({role_id})")
            raise ProtectedRoleError(role.name)

        if await self.store.grant_exists(role_id, permission_id):
            try:
                await self.store.delete_grant(role_id, permission_id)
            finally:
                affected = self.resolver.invalidate_role(role_id)
            state = GrantState.REVOKED
        else:
            try:
                await self.store.insert_grant(role_id, permission_id)
            except DuplicateGrantError as e:
                # Lost a race with another toggle; the row exists, which is what we wanted
                logger.warning(f"{e}; reporting as granted")
            finally:
                affected = self.resolver.invalidate_role(role_id)
            state = GrantState.GRANTED

        logger.info(
            f"Permission {permission_id} {state.value} for role {role.name}; "
            f"invalidated {len(affected)} cached user(s)"
        )
        return state
