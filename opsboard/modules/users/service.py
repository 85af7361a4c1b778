from opsboard.core.errors import StoreUnavailableError
from opsboard.core.resolver import PermissionResolver
from opsboard.modules.roles.repository import RbacRepository
from opsboard.modules.users.schemas import UserResponse, UserWithRoleResponse
from typing import List
from fastapi import HTTPException


class UserService:
    def __init__(self, repository: RbacRepository, resolver: PermissionResolver):
        self.repository = repository
        self.resolver = resolver

    async def list_users(self) -> List[UserWithRoleResponse]:
        """Team roster with each member's role"""
        try:
            return await self.repository.list_users()
        except StoreUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))

    async def assign_role(self, user_id: str, role_id: str) -> UserResponse:
        """Reassign a user's role and drop their cached permissions"""
        try:
            role = await self.repository.get_role_by_id(role_id)
            if role is None:
                raise HTTPException(status_code=404, detail="Role not found")
            user = await self.repository.set_user_role(user_id, role_id)
        except StoreUnavailableError as e:
            raise HTTPException(status_code=500, detail=f"Failed to update user role: {e}")

        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        self.resolver.invalidate(user_id)
        return user
