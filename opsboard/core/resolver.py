"""
Permission resolution: user -> role -> effective (resource, action) set.

Resolution fails closed. A missing user or role, or any failure talking to
Supabase, yields an empty permission set and a non-privileged result.
Only an empty user id is raised to the caller.
"""

import logging
from typing import FrozenSet, Iterable, Optional, Protocol, List, Set

from opsboard.config import settings
from opsboard.core.cache import PermissionCache, Resolution
from opsboard.core.errors import InvalidIdentityError, StoreUnavailableError
from opsboard.modules.roles.schemas import PermissionKey, PermissionResponse, RoleResponse
from opsboard.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)


class RbacStore(Protocol):
    async def get_user_by_id(self, user_id: str) -> Optional[UserResponse]: ...
    async def get_role_by_id(self, role_id: str) -> Optional[RoleResponse]: ...
    async def list_permissions(self) -> List[PermissionResponse]: ...
    async def list_permissions_for_role(self, role_id: str) -> List[PermissionResponse]: ...


def _require_id(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidIdentityError(f"{label} is required")
    return value


class PermissionResolver:
    def __init__(
        self,
        store: RbacStore,
        cache: Optional[PermissionCache] = None,
        protected_role_names: Optional[Iterable[str]] = None
    ):
        self.store = store
        self.cache = cache if cache is not None else PermissionCache()
        if protected_role_names is None:
            protected_role_names = settings.get_protected_role_names()
        self.protected_role_names = frozenset(protected_role_names)

    def role_is_privileged(self, role: RoleResponse) -> bool:
        """Privilege comes from the role's flag; a protected name without the flag is not trusted"""
        if role.is_privileged:
            return True
        if role.name in self.protected_role_names:
            logger.warning(
                f"Role {role.name} ({role.id}) has a protected name but is not flagged privileged; "
                f"treating it as unprivileged"
            )
        return False

    def is_protected(self, role: RoleResponse) -> bool:
        """True if the role's grants must not be edited"""
        return role.is_privileged or role.name in self.protected_role_names

    async def resolve(self, user_id: str) -> Resolution:
        _require_id(user_id, "user_id")
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached
        version = self.cache.version
        try:
            resolution = await self._resolve_uncached(user_id)
        except StoreUnavailableError as e:
            # Not cached so the next check retries
            logger.error(f"Error resolving permissions for user {user_id}: {e}")
            return Resolution(user_id=user_id, reason="Unable to load permissions")
        # An invalidation during the awaits above means the result may predate the change
        self.cache.put(resolution, version)
        return resolution

    async def resolve_permissions(self, user_id: str) -> FrozenSet[PermissionKey]:
        return (await self.resolve(user_id)).permissions

    async def is_privileged(self, user_id: str) -> bool:
        return (await self.resolve(user_id)).is_privileged

    async def resolve_role(self, role_id: str) -> Optional[RoleResponse]:
        """Role by id, or None if it does not exist or cannot be read"""
        _require_id(role_id, "role_id")
        try:
            return await self._lookup_role(role_id)
        except StoreUnavailableError as e:
            logger.error(f"Error fetching role {role_id}: {e}")
            return None

    def invalidate(self, user_id: Optional[str] = None) -> None:
        """Drop one user's cached resolution, or everything when no id is given"""
        if user_id:
            self.cache.drop_user(user_id)
            logger.debug(f"Invalidated permission cache for user {user_id}")
        else:
            self.cache.clear()
            logger.debug("Flushed permission cache")

    def invalidate_role(self, role_id: str) -> Set[str]:
        """Drop a role and every user resolved through it. Returns the affected user ids."""
        affected = self.cache.drop_role(role_id)
        logger.debug(f"Invalidated role {role_id} and {len(affected)} cached user(s)")
        return affected

    async def _lookup_role(self, role_id: str) -> Optional[RoleResponse]:
        role = self.cache.get_role(role_id)
        if role is not None:
            return role
        version = self.cache.version
        role = await self.store.get_role_by_id(role_id)
        if role is not None:
            self.cache.put_role(role, version)
        return role

    async def _resolve_uncached(self, user_id: str) -> Resolution:
        user = await self.store.get_user_by_id(user_id)
        if user is None:
            return Resolution(user_id=user_id, reason="User profile not found")

        # Unassigned users are valid but hold nothing
        if not user.role_id:
            return Resolution(user_id=user_id, user=user)

        role = await self._lookup_role(user.role_id)
        if role is None:
            return Resolution(user_id=user_id, user=user, reason="Assigned role not found")

        if self.role_is_privileged(role):
            catalog = await self.store.list_permissions()
            return Resolution(
                user_id=user_id,
                user=user,
                role=role,
                permissions=frozenset(p.key for p in catalog),
                is_privileged=True,
            )

        granted = await self.store.list_permissions_for_role(role.id)
        return Resolution(
            user_id=user_id,
            user=user,
            role=role,
            permissions=frozenset(p.key for p in granted),
        )
