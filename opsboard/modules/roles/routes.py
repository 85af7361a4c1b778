from fastapi import APIRouter, Depends
from opsboard.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, RoleWithPermissionsResponse,
    ResourcePermissions, GrantToggleResponse
)
from opsboard.modules.roles.repository import RbacRepository
from opsboard.modules.roles.service import RoleService
from opsboard.core.dependencies import (
    get_grant_toggler,
    get_rbac_repository,
    get_resolver,
    require_privileged,
)
from opsboard.core.grants import GrantToggler
from opsboard.core.resolver import PermissionResolver
from opsboard.core.session import SessionAuthorization
from typing import List

router = APIRouter(prefix="/roles", tags=["roles"])


def get_role_service(
    repository: RbacRepository = Depends(get_rbac_repository),
    resolver: PermissionResolver = Depends(get_resolver)
) -> RoleService:
    return RoleService(repository, resolver)


# Permission catalog
@router.get("/permissions", response_model=List[ResourcePermissions])
async def list_permissions(
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service)
):
    """Permission catalog grouped by resource"""
    return await service.list_permissions_by_resource()


# Role endpoints
@router.get("", response_model=List[RoleResponse])
async def list_roles(
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service)
):
    """List all roles"""
    return await service.list_roles()


@router.post("", response_model=RoleResponse, status_code=201)
async def create_role(
    role_data: RoleCreate,
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service)
):
    """Create a new role"""
    return await service.create_role(role_data, created_by=session.user_id)


@router.get("/{role_id}/permissions", response_model=RoleWithPermissionsResponse)
async def get_role_permissions(
    role_id: str,
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service)
):
    """Get role with its effective permissions"""
    return await service.get_role_with_permissions(role_id)


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_data: RoleUpdate,
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service)
):
    """Update role"""
    return await service.update_role(role_id, role_data)


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    role_id: str,
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service)
):
    """Delete role (not allowed for protected roles)"""
    await service.delete_role(role_id)
    return None


# Role-Permission association
@router.post("/{role_id}/permissions/{permission_id}/toggle", response_model=GrantToggleResponse)
async def toggle_role_permission(
    role_id: str,
    permission_id: str,
    session: SessionAuthorization = Depends(require_privileged),
    service: RoleService = Depends(get_role_service),
    toggler: GrantToggler = Depends(get_grant_toggler)
):
    """Grant or revoke a single permission for a role"""
    return await service.toggle_permission(toggler, role_id, permission_id)
