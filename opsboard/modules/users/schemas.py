from pydantic import BaseModel
from typing import Optional
from opsboard.modules.roles.schemas import RoleDescriptor


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role_id: Optional[str] = None  # None while unassigned

    class Config:
        from_attributes = True


class UserWithRoleResponse(UserResponse):
    role: Optional[RoleDescriptor] = None


class UserRoleUpdate(BaseModel):
    role_id: str
