"""
Per-process cache of resolved permissions and roles.

Entries never expire on their own; they are dropped by explicit invalidation
(user role change, grant change on the user's role, or a full flush).
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Set

from opsboard.modules.roles.schemas import PermissionKey, RoleResponse
from opsboard.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one user. ``reason`` is set when access was denied."""
    user_id: str
    user: Optional[UserResponse] = None
    role: Optional[RoleResponse] = None
    permissions: FrozenSet[PermissionKey] = frozenset()
    is_privileged: bool = False
    reason: Optional[str] = None

    @property
    def denied(self) -> bool:
        return self.reason is not None


@dataclass
class PermissionCache:
    resolutions: Dict[str, Resolution] = field(default_factory=dict)
    roles: Dict[str, RoleResponse] = field(default_factory=dict)
    # role_id -> user ids whose cached resolution was computed from that role
    role_members: Dict[str, Set[str]] = field(default_factory=dict)
    # Bumped by every invalidation; a result read under an older version is not stored
    version: int = 0

    def get(self, user_id: str) -> Optional[Resolution]:
        return self.resolutions.get(user_id)

    def put(self, resolution: Resolution, version: Optional[int] = None) -> bool:
        """Store a resolution unless an invalidation happened since ``version`` was read"""
        if version is not None and version != self.version:
            logger.debug(f"Discarding stale resolution for user {resolution.user_id}")
            return False
        self._forget_user(resolution.user_id)
        self.resolutions[resolution.user_id] = resolution
        if resolution.role is not None:
            self.role_members.setdefault(resolution.role.id, set()).add(resolution.user_id)
        return True

    def get_role(self, role_id: str) -> Optional[RoleResponse]:
        return self.roles.get(role_id)

    def put_role(self, role: RoleResponse, version: Optional[int] = None) -> bool:
        if version is not None and version != self.version:
            return False
        self.roles[role.id] = role
        return True

    def drop_user(self, user_id: str) -> None:
        self.version += 1
        self._forget_user(user_id)

    def drop_role(self, role_id: str) -> Set[str]:
        """Drop a role and every user resolved through it; returns the affected user ids"""
        self.version += 1
        self.roles.pop(role_id, None)
        affected = self.role_members.pop(role_id, set())
        for user_id in affected:
            self.resolutions.pop(user_id, None)
        return affected

    def clear(self) -> None:
        self.version += 1
        self.resolutions.clear()
        self.roles.clear()
        self.role_members.clear()

    def _forget_user(self, user_id: str) -> None:
        previous = self.resolutions.pop(user_id, None)
        if previous is not None and previous.role is not None:
            members = self.role_members.get(previous.role.id)
            if members is not None:
                members.discard(user_id)
                if not members:
                    del self.role_members[previous.role.id]

    def __len__(self) -> int:
        return len(self.resolutions)
