from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from opsboard.modules.auth.schemas import (
    LoginRequest, TokenResponse, AuthorizationResponse, MenuItemResponse
)
from opsboard.modules.auth.service import AuthService
from opsboard.core.dependencies import get_auth_service, get_authorization
from opsboard.core.navigation import visible_menu_items
from opsboard.core.session import SessionAuthorization
from typing import List

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return await service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    await service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=AuthorizationResponse)
async def get_current_user(
    session: SessionAuthorization = Depends(get_authorization)
):
    """Current user's role, permissions and privileged flag (for frontend UI)."""
    return session.snapshot()


@router.get("/navigation", response_model=List[MenuItemResponse])
async def get_navigation(
    session: SessionAuthorization = Depends(get_authorization)
):
    """Dashboard sections the current user may open"""
    return [MenuItemResponse(href=item.href, label=item.label) for item in visible_menu_items(session)]
