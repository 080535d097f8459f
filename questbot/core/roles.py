"""
Boss fighter role synchronizer.

The role lives per guild (a Discord constraint) but whether a user still
deserves it is global: any active, unexpired boss in any guild that the user
has damaged. That predicate is always computed from the store, never cached.
"""

from __future__ import annotations
import logging
from typing import Protocol

from .db import Database
from .encounters import active_participation_count, guilds_with_recent_bosses
from .hooks import best_effort
from .utility import now_ts

log = logging.getLogger(__name__)


class RoleGateway(Protocol):
    """Platform capability for the per-guild fighter marker."""

    async def add_role(self, guild_id: str, user_id: str) -> None: ...

    async def remove_role(self, guild_id: str, user_id: str) -> None: ...

    async def has_role(self, guild_id: str, user_id: str) -> bool: ...

    async def role_holders(self, guild_id: str) -> list[str]: ...


class NullRoleGateway:
    """Used when no fighter role is configured."""

    async def add_role(self, guild_id: str, user_id: str) -> None:
        return None

    async def remove_role(self, guild_id: str, user_id: str) -> None:
        return None

    async def has_role(self, guild_id: str, user_id: str) -> bool:
        return False

    async def role_holders(self, guild_id: str) -> list[str]:
        return []


class RoleSynchronizer:
    def __init__(self, db: Database, gateway: RoleGateway, lookback_seconds: int = 86400):
        self.db = db
        self.gateway = gateway
        self.lookback_seconds = lookback_seconds

    async def assign(self, user_id: str, guild_id: str):
        has = await best_effort("boss_role lookup", self.gateway.has_role, str(guild_id), str(user_id), default=None)
        if has is None or has:
            return
        await best_effort("boss_role add", self.gateway.add_role, str(guild_id), str(user_id))
        log.info("boss_role: added fighter role to user %s in guild %s", user_id, guild_id)

    async def deserves_role(self, user_id: str, now: int | None = None) -> bool:
        now = now_ts() if now is None else now
        return await active_participation_count(self.db, user_id, now) > 0

    async def release(self, user_id: str, guild_id: str, now: int | None = None) -> bool:
        """Remove the role in ``guild_id`` unless the user is still fighting somewhere.
        Returns True when the role was removed."""
        now = now_ts() if now is None else now
        active = await active_participation_count(self.db, user_id, now)
        if active > 0:
            log.info("boss_role: kept fighter role for user %s in guild %s (%s active fights)", user_id, guild_id, active)
            return False
        has = await best_effort("boss_role lookup", self.gateway.has_role, str(guild_id), str(user_id), default=False)
        if not has:
            return False
        ok = await best_effort("boss_role remove", self._remove, str(guild_id), str(user_id), default=False)
        if ok:
            log.info("boss_role: removed fighter role from user %s in guild %s (no active fights)", user_id, guild_id)
        return bool(ok)

    async def _remove(self, guild_id: str, user_id: str) -> bool:
        await self.gateway.remove_role(guild_id, user_id)
        return True

    async def release_many(self, user_ids, guild_id: str, now: int | None = None) -> int:
        removed = 0
        for uid in user_ids:
            if await self.release(uid, guild_id, now):
                removed += 1
        return removed

    async def sweep_orphans(self, now: int | None = None) -> int:
        """Re-check every role holder in guilds that recently hosted a boss."""
        now = now_ts() if now is None else now
        guild_ids = await guilds_with_recent_bosses(self.db, now - self.lookback_seconds)
        total = 0
        for gid in guild_ids:
            holders = await best_effort("boss_role holders", self.gateway.role_holders, gid, default=[])
            for uid in holders or []:
                if await self.deserves_role(uid, now):
                    continue
                ok = await best_effort("boss_role remove", self._remove, gid, str(uid), default=False)
                if ok:
                    total += 1
        if total:
            log.info("boss_role: cleaned up %s orphaned fighter roles", total)
        return total
