from opsboard.core.errors import ProtectedRoleError, RoleNotFoundError, StoreUnavailableError
from opsboard.core.grants import GrantToggler
from opsboard.core.resolver import PermissionResolver
from opsboard.modules.roles.repository import RbacRepository
from opsboard.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, RoleWithPermissionsResponse,
    ResourcePermissions, GrantToggleResponse
)
from typing import Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, repository: RbacRepository, resolver: PermissionResolver):
        self.repository = repository
        self.resolver = resolver

    async def list_roles(self) -> List[RoleResponse]:
        """List all roles ordered by name"""
        try:
            return await self.repository.list_roles()
        except StoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))

    async def list_permissions_by_resource(self) -> List[ResourcePermissions]:
        """Permission catalog grouped by resource"""
        try:
            permissions = await self.repository.list_permissions()
        except StoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))
        grouped: Dict[str, list] = {}
        for permission in permissions:
            grouped.setdefault(permission.resource, []).append(permission)
        return [ResourcePermissions(resource=r, permissions=p) for r, p in grouped.items()]

    async def get_role_with_permissions(self, role_id: str) -> RoleWithPermissionsResponse:
        """Get role with its effective permissions; privileged roles report the whole catalog"""
        try:
            role = await self.repository.get_role_by_id(role_id)
            if role is None:
                raise HTTPException(status_code=404, detail="Role not found")
            if self.resolver.role_is_privileged(role):
                permissions = await self.repository.list_permissions()
            else:
                permissions = await self.repository.list_permissions_for_role(role_id)
        except StoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))

        return RoleWithPermissionsResponse(
            **role.model_dump(),
            permissions=permissions,
            editable=not self.resolver.is_protected(role)
        )

    async def create_role(self, role_data: RoleCreate, created_by: Optional[str] = None) -> RoleResponse:
        """Create a new role; privilege is fixed here from the protected name set"""
        try:
            return await self.repository.create_role(
                name=role_data.name,
                description=role_data.description,
                is_privileged=role_data.name in self.resolver.protected_role_names,
                created_by=created_by
            )
        except StoreUnavailableError as e:
            raise HTTPException(status_code=500, detail=f"Failed to create role: {e}")

    async def update_role(self, role_id: str, role_data: RoleUpdate) -> RoleResponse:
        """Update role name/description. Protected roles keep their name."""
        try:
            role = await self.repository.get_role_by_id(role_id)
            if role is None:
                raise HTTPException(status_code=404, detail="Role not found")

            update_data = {}
            if role_data.name and role_data.name != role.name:
                if self.resolver.is_protected(role):
                    raise HTTPException(status_code=403, detail=f"{role.name} cannot be renamed")
                if role_data.name in self.resolver.protected_role_names:
                    raise HTTPException(status_code=400, detail=f"{role_data.name} is a reserved role name")
                update_data["name"] = role_data.name
            if role_data.description is not None:
                update_data["description"] = role_data.description
            if not update_data:
                return role

            updated = await self.repository.update_role(role_id, update_data)
        except StoreUnavailableError as e:
            raise HTTPException(status_code=500, detail=f"Failed to update role: {e}")

        if updated is None:
            raise HTTPException(status_code=404, detail="Role not found")
        self.resolver.invalidate_role(role_id)
        return updated

    async def delete_role(self, role_id: str) -> bool:
        """Delete role; users holding it become unassigned"""
        try:
            role = await self.repository.get_role_by_id(role_id)
            if role is None:
                raise HTTPException(status_code=404, detail="Role not found")
            if self.resolver.is_protected(role):
                raise HTTPException(status_code=403, detail=f"{role.name} cannot be deleted")
            deleted = await self.repository.delete_role(role_id)
        except StoreUnavailableError as e:
            raise HTTPException(status_code=500, detail=f"Failed to delete role: {e}")

        self.resolver.invalidate_role(role_id)
        return deleted

    async def toggle_permission(self, toggler: GrantToggler, role_id: str, permission_id: str) -> GrantToggleResponse:
        """Grant the permission if the role lacks it, revoke it otherwise"""
        try:
            if await self.repository.get_permission_by_id(permission_id) is None:
                raise HTTPException(status_code=404, detail="Permission not found")
            state = await toggler.toggle_grant(role_id, permission_id)
        except RoleNotFoundError:
            raise HTTPException(status_code=404, detail="Role not found")
        except ProtectedRoleError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except StoreUnavailableError as e:
            raise HTTPException(status_code=500, detail=f"Failed to update permissions: {e}")

        return GrantToggleResponse(role_id=role_id, permission_id=permission_id, state=state)
