from typing import Dict, List, Optional, Set, Tuple

import pytest

from opsboard.config.permissions_config import PERMISSION_MATRIX
from opsboard.core.cache import PermissionCache
from opsboard.core.errors import DuplicateGrantError, StoreUnavailableError
from opsboard.core.resolver import PermissionResolver
from opsboard.modules.roles.schemas import PermissionResponse, RoleDescriptor, RoleResponse
from opsboard.modules.users.schemas import UserResponse, UserWithRoleResponse


def permission_id(name: str) -> str:
    return "perm-" + name.replace(":", "-")


class FakeRbacStore:
    """In-memory stand-in for RbacRepository that records every call"""

    def __init__(self):
        self.users: Dict[str, UserResponse] = {}
        self.roles: Dict[str, RoleResponse] = {}
        self.permissions: Dict[str, PermissionResponse] = {}
        self.grants: Set[Tuple[str, str]] = set()
        self.calls: List[str] = []
        self.failing: Set[str] = set()
        # Simulates another writer inserting the same grant first
        self.race_on_insert = False

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise StoreUnavailableError(f"{name} failed")

    # Fixture helpers

    def add_role(self, role_id: str, name: str, is_privileged: bool = False, grants=()):
        self.roles[role_id] = RoleResponse(id=role_id, name=name, description=f"{name} role", is_privileged=is_privileged)
        for grant in grants:
            self.grants.add((role_id, permission_id(grant)))

    def add_user(self, user_id: str, role_id: Optional[str]):
        self.users[user_id] = UserResponse(id=user_id, email=f"{user_id}@example.com", full_name=user_id.upper(), role_id=role_id)

    # Resolver lookups

    async def get_user_by_id(self, user_id):
        self._call("get_user_by_id")
        return self.users.get(user_id)

    async def get_role_by_id(self, role_id):
        self._call("get_role_by_id")
        return self.roles.get(role_id)

    async def get_permission_by_id(self, perm_id):
        self._call("get_permission_by_id")
        return self.permissions.get(perm_id)

    async def list_permissions(self):
        self._call("list_permissions")
        return list(self.permissions.values())

    async def list_grants_for_role(self, role_id):
        self._call("list_grants_for_role")
        return {p for r, p in self.grants if r == role_id}

    async def list_permissions_for_role(self, role_id):
        self._call("list_permissions_for_role")
        return [self.permissions[p] for r, p in sorted(self.grants) if r == role_id and p in self.permissions]

    # Grant writes

    async def grant_exists(self, role_id, perm_id):
        self._call("grant_exists")
        return (role_id, perm_id) in self.grants

    async def insert_grant(self, role_id, perm_id):
        self._call("insert_grant")
        if (role_id, perm_id) in self.grants or self.race_on_insert:
            self.grants.add((role_id, perm_id))
            raise DuplicateGrantError(role_id, perm_id)
        self.grants.add((role_id, perm_id))

    async def delete_grant(self, role_id, perm_id):
        self._call("delete_grant")
        self.grants.discard((role_id, perm_id))

    # Administration

    async def list_roles(self):
        self._call("list_roles")
        return sorted(self.roles.values(), key=lambda r: r.name)

    async def create_role(self, name, description, is_privileged=False, created_by=None):
        self._call("create_role")
        role = RoleResponse(
            id=f"role-{name.lower().replace(' ', '-')}",
            name=name,
            description=description,
            is_privileged=is_privileged,
            created_by=created_by
        )
        self.roles[role.id] = role
        return role

    async def update_role(self, role_id, update_data):
        self._call("update_role")
        if role_id not in self.roles:
            return None
        role = self.roles[role_id].model_copy(update=update_data)
        self.roles[role_id] = role
        return role

    async def delete_role(self, role_id):
        self._call("delete_role")
        if self.roles.pop(role_id, None) is None:
            return False
        self.grants = {(r, p) for r, p in self.grants if r != role_id}
        for user_id, user in list(self.users.items()):
            if user.role_id == role_id:
                self.users[user_id] = user.model_copy(update={"role_id": None})
        return True

    async def list_users(self):
        self._call("list_users")
        users = []
        for user in sorted(self.users.values(), key=lambda u: u.email):
            role = self.roles.get(user.role_id) if user.role_id else None
            users.append(UserWithRoleResponse(
                **user.model_dump(),
                role=RoleDescriptor(name=role.name, description=role.description) if role else None
            ))
        return users

    async def set_user_role(self, user_id, role_id):
        self._call("set_user_role")
        if user_id not in self.users:
            return None
        self.users[user_id] = self.users[user_id].model_copy(update={"role_id": role_id})
        return self.users[user_id]


@pytest.fixture
def store() -> FakeRbacStore:
    store = FakeRbacStore()
    for perm in PERMISSION_MATRIX["permissions"]:
        store.permissions[permission_id(perm["name"])] = PermissionResponse(id=permission_id(perm["name"]), **perm)

    store.add_role("role-ceo", "CEO", is_privileged=True)
    store.add_role("role-admin", "Admin", is_privileged=True)
    store.add_role("role-accountant", "Accountant", grants=["payables:view", "payables:create"])
    store.add_role("role-ops", "Ops Assistant", grants=["orders:view", "inventory:view", "inventory:edit", "team:view"])

    store.add_user("u-ceo", "role-ceo")
    store.add_user("u-admin", "role-admin")
    store.add_user("u1", "role-accountant")
    store.add_user("u2", "role-accountant")
    store.add_user("u-ops", "role-ops")
    store.add_user("u-unassigned", None)
    store.add_user("u-orphan", "role-missing")
    return store


@pytest.fixture
def resolver(store) -> PermissionResolver:
    return PermissionResolver(store, PermissionCache(), {"CEO", "Admin"})
