"""Tests for the session authorization state machine and its Supabase Auth binding."""

import asyncio
from types import SimpleNamespace

import pytest

from opsboard.core.errors import InvalidIdentityError
from opsboard.core.session import AuthState, SessionAuthorization, SupabaseSessionBinding
from opsboard.modules.roles.schemas import PermissionKey


@pytest.fixture
def session(resolver):
    return SessionAuthorization(resolver)


class TestStates:
    def test_starts_unauthenticated_and_denies_everything(self, session):
        assert session.state == AuthState.UNAUTHENTICATED
        assert session.has_permission("orders", "view") is False
        assert session.is_privileged is False
        assert session.role_descriptor is None

    async def test_authorized_member(self, session):
        assert await session.sign_in("u1") == AuthState.AUTHORIZED
        assert session.has_permission("payables", "view") is True
        assert session.has_permission("payables", "edit") is False
        assert session.role_descriptor.name == "Accountant"
        assert session.reason is None

    async def test_privileged_member_passes_every_check(self, session):
        await session.sign_in("u-ceo")
        assert session.is_privileged is True
        assert session.has_permission("anything", "at-all") is True

    async def test_missing_role_is_denied(self, session):
        assert await session.sign_in("u-orphan") == AuthState.DENIED
        assert session.reason == "Assigned role not found"
        assert session.has_permission("orders", "view") is False
        assert session.is_privileged is False

    async def test_unknown_user_is_denied(self, session):
        assert await session.sign_in("nobody") == AuthState.DENIED
        assert session.reason == "User profile not found"

    async def test_role_lookup_failure_is_denied(self, session, store):
        store.failing.add("get_role_by_id")
        assert await session.sign_in("u-admin") == AuthState.DENIED
        assert session.has_permission("orders", "view") is False

    async def test_unexpected_error_is_denied(self, session, store):
        async def broken(user_id):
            raise RuntimeError("boom")
        store.get_user_by_id = broken
        assert await session.sign_in("u1") == AuthState.DENIED
        assert session.reason == "Authorization failed"

    async def test_unassigned_user_is_authorized_with_nothing(self, session):
        assert await session.sign_in("u-unassigned") == AuthState.AUTHORIZED
        assert session.permissions == frozenset()
        assert session.has_permission("tasks", "view") is False

    async def test_sign_in_requires_an_id(self, session):
        with pytest.raises(InvalidIdentityError):
            await session.sign_in("")

    async def test_sign_out(self, session, resolver):
        await session.sign_in("u1")
        session.sign_out()
        assert session.state == AuthState.UNAUTHENTICATED
        assert session.user_id is None
        assert session.has_permission("payables", "view") is False
        assert resolver.cache.get("u1") is None

    async def test_identity_cleared(self, session):
        await session.sign_in("u-ceo")
        assert await session.identity_changed(None) == AuthState.UNAUTHENTICATED
        assert session.is_privileged is False

    async def test_is_loading_while_resolving(self, session, store):
        gate = asyncio.Event()
        original = store.get_user_by_id

        async def slow(user_id):
            await gate.wait()
            return await original(user_id)
        store.get_user_by_id = slow

        pending = asyncio.ensure_future(session.sign_in("u1"))
        await asyncio.sleep(0)
        assert session.is_loading is True
        assert session.has_permission("payables", "view") is False
        gate.set()
        await pending
        assert session.is_loading is False

    async def test_snapshot(self, session):
        await session.sign_in("u1")
        snapshot = session.snapshot()
        assert snapshot["state"] == "authorized"
        assert snapshot["role"] == {"name": "Accountant", "description": "Accountant role"}
        assert snapshot["permissions"] == ["payables:create", "payables:view"]


class TestConcurrency:
    async def test_concurrent_resolves_share_one_flight(self, session, store):
        results = await asyncio.gather(session.sign_in("u1"), session.sign_in("u1"))
        assert results == [AuthState.AUTHORIZED, AuthState.AUTHORIZED]
        assert store.calls.count("get_user_by_id") == 1

    async def test_superseded_resolution_is_discarded(self, session, store):
        gate = asyncio.Event()
        original = store.get_user_by_id

        async def slow_for_u1(user_id):
            if user_id == "u1":
                await gate.wait()
            return await original(user_id)
        store.get_user_by_id = slow_for_u1

        first = asyncio.ensure_future(session.sign_in("u1"))
        await asyncio.sleep(0)
        await session.sign_in("u-ceo")
        gate.set()
        await first

        assert session.user_id == "u-ceo"
        assert session.is_privileged is True
        assert session.role_descriptor.name == "CEO"

    async def test_sign_out_discards_inflight_resolution(self, session, store):
        gate = asyncio.Event()
        original = store.get_user_by_id

        async def slow(user_id):
            await gate.wait()
            return await original(user_id)
        store.get_user_by_id = slow

        pending = asyncio.ensure_future(session.sign_in("u-admin"))
        await asyncio.sleep(0)
        session.sign_out()
        gate.set()
        await pending
        assert session.state == AuthState.UNAUTHENTICATED
        assert session.has_permission("orders", "view") is False


class TestRefresh:
    async def test_refresh_picks_up_role_reassignment(self, session, store):
        await session.sign_in("u1")
        store.users["u1"] = store.users["u1"].model_copy(update={"role_id": "role-ops"})
        assert session.has_permission("inventory", "edit") is False
        await session.refresh()
        assert session.has_permission("inventory", "edit") is True
        assert session.has_permission("payables", "view") is False

    async def test_refresh_without_identity_is_a_noop(self, session, store):
        assert await session.refresh() == AuthState.UNAUTHENTICATED
        assert store.calls == []

    async def test_permission_check_uses_cached_set(self, session, store):
        await session.sign_in("u1")
        calls = len(store.calls)
        for _ in range(5):
            session.has_permission("payables", "view")
        assert len(store.calls) == calls
        assert PermissionKey("payables", "view") in session.permissions


class FakeAuth:
    def __init__(self, user_id=None, fail=False):
        self.user_id = user_id
        self.fail = fail
        self.listener = None
        self.signed_out = False

    async def sign_in_with_password(self, credentials):
        if self.fail:
            raise RuntimeError("Invalid login credentials")
        return SimpleNamespace(user=SimpleNamespace(id=self.user_id))

    async def sign_out(self):
        self.signed_out = True

    async def get_session(self):
        if self.user_id is None:
            return None
        return SimpleNamespace(user=SimpleNamespace(id=self.user_id))

    def on_auth_state_change(self, callback):
        self.listener = callback
        return SimpleNamespace(unsubscribe=lambda: setattr(self, "listener", None))


class TestSupabaseBinding:
    async def test_login_resolves_identity(self, session):
        binding = SupabaseSessionBinding(FakeAuth("u1"), session)
        assert await binding.login("u1@example.com", "secret") == AuthState.AUTHORIZED
        assert session.has_permission("payables", "create") is True

    async def test_failed_login_stays_unauthenticated(self, session):
        binding = SupabaseSessionBinding(FakeAuth(fail=True), session)
        assert await binding.login("u1@example.com", "wrong") == AuthState.UNAUTHENTICATED
        assert session.reason == "Invalid login credentials"

    async def test_logout(self, session):
        auth = FakeAuth("u1")
        binding = SupabaseSessionBinding(auth, session)
        await binding.login("u1@example.com", "secret")
        assert await binding.logout() == AuthState.UNAUTHENTICATED
        assert auth.signed_out is True

    async def test_restore_existing_session(self, session):
        binding = SupabaseSessionBinding(FakeAuth("u-admin"), session)
        assert await binding.restore() == AuthState.AUTHORIZED
        assert session.is_privileged is True

    async def test_restore_without_session(self, session):
        binding = SupabaseSessionBinding(FakeAuth(None), session)
        assert await binding.restore() == AuthState.UNAUTHENTICATED

    async def test_auth_state_changes_drive_the_session(self, session):
        auth = FakeAuth()
        binding = SupabaseSessionBinding(auth, session)
        binding.bind()

        auth.listener("SIGNED_IN", SimpleNamespace(user=SimpleNamespace(id="u-ops")))
        await binding.pending
        assert session.has_permission("orders", "view") is True

        auth.listener("SIGNED_OUT", None)
        await binding.pending
        assert session.state == AuthState.UNAUTHENTICATED

        binding.unbind()
        assert auth.listener is None
