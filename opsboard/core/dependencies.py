"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from opsboard.database.supabase_client import get_supabase
from opsboard.core.grants import GrantToggler
from opsboard.core.resolver import PermissionResolver
from opsboard.core.session import AuthState, SessionAuthorization
from opsboard.modules.auth.service import AuthService
from opsboard.modules.roles.repository import RbacRepository
from supabase import AsyncClient
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_resolver(request: Request) -> PermissionResolver:
    """Process-wide resolver created at startup; its cache is shared by all requests."""
    return request.app.state.resolver


def get_rbac_repository(supabase: AsyncClient = Depends(get_supabase)) -> RbacRepository:
    return RbacRepository(supabase)


def get_grant_toggler(
    repository: RbacRepository = Depends(get_rbac_repository),
    resolver: PermissionResolver = Depends(get_resolver)
) -> GrantToggler:
    return GrantToggler(repository, resolver)


def get_auth_service(supabase: AsyncClient = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    return await auth_service.get_current_user(token)


async def get_authorization(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    resolver: PermissionResolver = Depends(get_resolver)
) -> SessionAuthorization:
    """Request-scoped authorization session for the caller, resolved once per request."""
    session = getattr(request.state, "authorization", None)
    if session is None:
        session = SessionAuthorization(resolver)
        await session.sign_in(user_data["id"])
        request.state.authorization = session
    return session


def _deny(session: SessionAuthorization, detail: str):
    if session.state == AuthState.DENIED:
        detail = f"{detail} ({session.reason})"
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def require_permission(resource: str, action: str):
    """Factory function to create permission check dependency"""
    async def check_permission(
        session: SessionAuthorization = Depends(get_authorization)
    ) -> SessionAuthorization:
        if not session.has_permission(resource, action):
            _deny(session, f"Insufficient permissions. Required: {resource}:{action}")
        return session
    return check_permission


async def require_privileged(
    session: SessionAuthorization = Depends(get_authorization)
) -> SessionAuthorization:
    """Role administration is reserved for privileged roles"""
    if not session.is_privileged:
        _deny(session, "Only CEO or Admin can manage roles")
    return session
