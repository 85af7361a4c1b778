"""
Session authorization: holds the current identity's resolved role and
permissions and answers permission checks synchronously.

States: UNAUTHENTICATED -> RESOLVING -> AUTHORIZED | DENIED.
All I/O happens while RESOLVING; ``has_permission`` never awaits.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, FrozenSet, Optional

from opsboard.core.cache import Resolution
from opsboard.core.errors import InvalidIdentityError
from opsboard.core.resolver import PermissionResolver
from opsboard.modules.roles.schemas import PermissionKey, RoleDescriptor, RoleResponse
from opsboard.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    RESOLVING = "resolving"
    AUTHORIZED = "authorized"
    DENIED = "denied"


class SessionAuthorization:
    def __init__(self, resolver: PermissionResolver):
        self.resolver = resolver
        self.state = AuthState.UNAUTHENTICATED
        self.user_id: Optional[str] = None
        self.user: Optional[UserResponse] = None
        self.role: Optional[RoleResponse] = None
        self.permissions: FrozenSet[PermissionKey] = frozenset()
        self.reason: Optional[str] = None
        self._privileged = False
        # Bumped on every identity change; a resolution finishing under an older token is discarded
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None

    @property
    def is_privileged(self) -> bool:
        return self.state == AuthState.AUTHORIZED and self._privileged

    @property
    def is_loading(self) -> bool:
        return self.state == AuthState.RESOLVING

    @property
    def role_descriptor(self) -> Optional[RoleDescriptor]:
        if self.role is None:
            return None
        return RoleDescriptor(name=self.role.name, description=self.role.description)

    def has_permission(self, resource: str, action: str) -> bool:
        if self.state != AuthState.AUTHORIZED:
            return False
        if self._privileged:
            return True
        return PermissionKey(resource, action) in self.permissions

    async def sign_in(self, user_id: str) -> AuthState:
        if not user_id:
            raise InvalidIdentityError("user_id is required")
        return await self.identity_changed(user_id)

    async def identity_changed(self, user_id: Optional[str]) -> AuthState:
        """Follow the externally established identity; ``None`` means signed out"""
        if not user_id:
            self.sign_out()
            return self.state
        if user_id == self.user_id and self._inflight is not None and not self._inflight.done():
            return await asyncio.shield(self._inflight)
        return await self._start(user_id)

    async def refresh(self) -> AuthState:
        """Permissions may have changed: drop the cached entry and resolve again"""
        if self.user_id is None:
            return self.state
        self.resolver.invalidate(self.user_id)
        return await self._start(self.user_id)

    def sign_out(self, reason: Optional[str] = None) -> None:
        if self.user_id is not None:
            self.resolver.invalidate(self.user_id)
        self._generation += 1
        self._inflight = None
        self._reset(AuthState.UNAUTHENTICATED)
        self.user_id = None
        self.reason = reason

    def snapshot(self) -> dict:
        descriptor = self.role_descriptor
        return {
            "state": self.state.value,
            "user_id": self.user_id,
            "role": descriptor.model_dump() if descriptor else None,
            "is_privileged": self.is_privileged,
            "permissions": sorted(str(p) for p in self.permissions),
            "reason": self.reason,
        }

    async def _start(self, user_id: str) -> AuthState:
        self._generation += 1
        token = self._generation
        self.user_id = user_id
        self._reset(AuthState.RESOLVING)
        task = asyncio.ensure_future(self._resolve(user_id, token))
        self._inflight = task
        return await asyncio.shield(task)

    async def _resolve(self, user_id: str, token: int) -> AuthState:
        try:
            resolution = await self.resolver.resolve(user_id)
        except Exception as e:
            logger.exception(f"Unexpected error resolving user {user_id}: {e}")
            resolution = Resolution(user_id=user_id, reason="Authorization failed")
        if token != self._generation:
            logger.debug(f"Discarding superseded resolution for user {user_id}")
            return self.state
        self._apply(resolution)
        return self.state

    def _apply(self, resolution: Resolution) -> None:
        if resolution.denied:
            logger.info(f"Access denied for user {resolution.user_id}: {resolution.reason}")
            self._reset(AuthState.DENIED)
            self.user = resolution.user
            self.reason = resolution.reason
            return
        self.state = AuthState.AUTHORIZED
        self.user = resolution.user
        self.role = resolution.role
        self.permissions = resolution.permissions
        self._privileged = resolution.is_privileged
        self.reason = None

    def _reset(self, state: AuthState) -> None:
        self.state = state
        self.user = None
        self.role = None
        self.permissions = frozenset()
        self._privileged = False
        self.reason = None


class SupabaseSessionBinding:
    """
    Drives a SessionAuthorization from Supabase Auth sign-in, sign-out and session restore.

    For a process that holds one signed-in identity, such as an operator console or a
    worker acting as a service user. The HTTP API does not use it: requests carry a
    bearer token and get a request-scoped session from ``get_authorization``.
    """

    def __init__(self, auth: Any, session: SessionAuthorization):
        # auth: supabase AsyncClient.auth
        self.auth = auth
        self.session = session
        self._subscription = None
        self._pending: Optional[asyncio.Task] = None

    async def login(self, email: str, password: str) -> AuthState:
        try:
            response = await self.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            logger.warning(f"Login failed for {email}: {e}")
            self.session.sign_out(reason=str(e) or "Login failed")
            return self.session.state
        if not response.user:
            self.session.sign_out(reason="Invalid credentials")
            return self.session.state
        return await self.session.sign_in(response.user.id)

    async def logout(self) -> AuthState:
        try:
            await self.auth.sign_out()
        finally:
            self.session.sign_out()
        return self.session.state

    async def restore(self) -> AuthState:
        """Pick up an existing Supabase session, if any"""
        current = await self.auth.get_session()
        user_id = current.user.id if current and current.user else None
        return await self.session.identity_changed(user_id)

    def bind(self) -> None:
        self._subscription = self.auth.on_auth_state_change(self._on_auth_state_change)

    def unbind(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_auth_state_change(self, event: Any, auth_session: Any) -> None:
        user_id = auth_session.user.id if auth_session and auth_session.user else None
        logger.debug(f"Auth state change {event}; identity present: {user_id is not None}")
        self._pending = asyncio.ensure_future(self.session.identity_changed(user_id))

    @property
    def pending(self) -> Optional[asyncio.Task]:
        return self._pending


