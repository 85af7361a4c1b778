"""
Exceptions raised by the access-control core.
The HTTP layer translates these into HTTPException; nothing here depends on FastAPI.
"""


class RbacError(Exception):
    """Base class for access-control errors"""


class StoreUnavailableError(RbacError):
    """A call to the persistence layer failed (network, auth, malformed response)"""


class InvariantViolation(RbacError):
    """Stored data contradicts an access-control invariant"""


class DuplicateGrantError(InvariantViolation):
    """Insert of a role_permissions row that already exists"""

    def __init__(self, role_id: str, permission_id: str):
        self.role_id = role_id
        self.permission_id = permission_id
        super().__init__(f"Permission {permission_id} already granted to role {role_id}")


class ProtectedRoleError(RbacError):
    """Attempt to modify a privileged role"""

    def __init__(self, role_name: str):
        self.role_name = role_name
        super().__init__(f"{role_name} has all permissions by default and cannot be modified")


class RoleNotFoundError(RbacError):
    def __init__(self, role_id: str):
        self.role_id = role_id
        super().__init__(f"Role {role_id} not found")


class InvalidIdentityError(RbacError, ValueError):
    """Programmer error: empty or missing user id"""
