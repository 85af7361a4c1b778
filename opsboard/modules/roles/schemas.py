from enum import Enum
from pydantic import BaseModel
from typing import NamedTuple, Optional, List
from datetime import datetime


class PermissionKey(NamedTuple):
    """The checkable unit: a resource/action pair such as ("orders", "view")"""
    resource: str
    action: str

    def __str__(self) -> str:
        return f"{self.resource}:{self.action}"


class PermissionResponse(BaseModel):
    id: str
    name: str
    resource: str
    action: str
    description: Optional[str] = None

    @property
    def key(self) -> PermissionKey:
        return PermissionKey(self.resource, self.action)

    class Config:
        from_attributes = True


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class RoleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_privileged: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoleDescriptor(BaseModel):
    """Display-only view of a role"""
    name: str
    description: Optional[str] = None


class RoleWithPermissionsResponse(RoleResponse):
    permissions: List[PermissionResponse]
    # Privileged roles report the full catalog and cannot be edited
    editable: bool = True


class ResourcePermissions(BaseModel):
    resource: str
    permissions: List[PermissionResponse]


class GrantState(str, Enum):
    GRANTED = "granted"
    REVOKED = "revoked"


class GrantToggleResponse(BaseModel):
    role_id: str
    permission_id: str
    state: GrantState
