"""
Targeted cache invalidation from Supabase Realtime change events.

The feed is only a trigger: rows in the payload are used for their ids,
never as data. Deletes on role_permissions need ``replica identity full``
for the old row to carry role_id; without it the whole cache is flushed.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from opsboard.core.resolver import PermissionResolver
from opsboard.core.session import SessionAuthorization

logger = logging.getLogger(__name__)

WATCHED_TABLES = ("users", "roles", "role_permissions")


def _row_value(data: Dict[str, Any], column: str) -> Optional[str]:
    for key in ("record", "old_record"):
        row = data.get(key) or {}
        if row.get(column):
            return row[column]
    return None


class RealtimeInvalidator:
    def __init__(
        self,
        resolver: PermissionResolver,
        session: Optional[SessionAuthorization] = None,
        channel_name: str = "rbac-changes"
    ):
        self.resolver = resolver
        self.session = session
        self.channel_name = channel_name
        self._channel = None
        self._refresh_task: Optional[asyncio.Task] = None

    async def start(self, supabase) -> None:
        channel = supabase.channel(self.channel_name)
        for table in WATCHED_TABLES:
            channel.on_postgres_changes("*", schema="public", table=table, callback=self._on_change)
        await channel.subscribe()
        self._channel = channel
        logger.info(f"Listening for changes on {', '.join(WATCHED_TABLES)}")

    async def stop(self, supabase) -> None:
        if self._channel is not None:
            await supabase.remove_channel(self._channel)
            self._channel = None

    def handle_change(self, payload: Dict[str, Any]) -> Optional[Set[str]]:
        """Invalidate what the change touches. Returns affected user ids, or None after a full flush."""
        data = payload.get("data", payload)
        table = data.get("table")

        if table == "users":
            user_id = _row_value(data, "id")
            if user_id is None:
                self.resolver.invalidate()
                return None
            self.resolver.invalidate(user_id)
            return {user_id}

        if table in ("roles", "role_permissions"):
            role_id = _row_value(data, "id" if table == "roles" else "role_id")
            if role_id is None:
                self.resolver.invalidate()
                return None
            affected = self.resolver.invalidate_role(role_id)
            session = self.session
            # A session still resolving may be reading the role that just changed
            if session is not None and session.user_id is not None and (
                session.is_loading or (session.role is not None and session.role.id == role_id)
            ):
                affected.add(session.user_id)
            return affected

        logger.debug(f"Ignoring change on unwatched table {table}")
        return set()

    def _on_change(self, payload: Dict[str, Any]) -> None:
        affected = self.handle_change(payload)
        session = self.session
        if session is None or session.user_id is None:
            return
        if affected is None or session.user_id in affected:
            self._refresh_task = asyncio.ensure_future(session.refresh())

    @property
    def refresh_task(self) -> Optional[asyncio.Task]:
        return self._refresh_task
