from fastapi import APIRouter, Depends
from opsboard.modules.roles.repository import RbacRepository
from opsboard.modules.users.schemas import UserResponse, UserWithRoleResponse, UserRoleUpdate
from opsboard.modules.users.service import UserService
from opsboard.core.dependencies import get_rbac_repository, get_resolver, require_permission, require_privileged
from opsboard.core.resolver import PermissionResolver
from opsboard.core.session import SessionAuthorization
from typing import List

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    repository: RbacRepository = Depends(get_rbac_repository),
    resolver: PermissionResolver = Depends(get_resolver)
) -> UserService:
    return UserService(repository, resolver)


@router.get("", response_model=List[UserWithRoleResponse])
async def list_users(
    session: SessionAuthorization = Depends(require_permission("team", "view")),
    service: UserService = Depends(get_user_service)
):
    """Team roster"""
    return await service.list_users()


@router.put("/{user_id}/role", response_model=UserResponse)
async def assign_user_role(
    user_id: str,
    body: UserRoleUpdate,
    session: SessionAuthorization = Depends(require_privileged),
    service: UserService = Depends(get_user_service)
):
    """Reassign a team member's role"""
    return await service.assign_role(user_id, body.role_id)
