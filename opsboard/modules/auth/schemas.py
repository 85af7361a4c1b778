from pydantic import BaseModel, EmailStr
from typing import Optional, List
from opsboard.modules.roles.schemas import RoleDescriptor


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class AuthorizationResponse(BaseModel):
    state: str
    user_id: Optional[str] = None
    role: Optional[RoleDescriptor] = None
    is_privileged: bool = False
    permissions: List[str]
    reason: Optional[str] = None


class MenuItemResponse(BaseModel):
    href: str
    label: str
