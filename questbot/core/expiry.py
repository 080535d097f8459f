"""
Boss expiry. Used lazily (status/attack/spawn notice an overdue boss) and by
the scheduler sweep. Expiring an already-ended boss is a no-op.
"""

from __future__ import annotations
import logging

from .db import Database
from .encounters import (
    Boss,
    delete_participants,
    get_participants,
    list_overdue_bosses,
    mark_expired,
    purge_orphaned_participants,
)
from .roles import RoleSynchronizer

log = logging.getLogger(__name__)


class BossExpirer:
    def __init__(self, db: Database, roles: RoleSynchronizer):
        self.db = db
        self.roles = roles

    async def expire(self, boss: Boss, now: int, sweep_roles: bool = True) -> bool:
        """Mark ``boss`` inactive, wipe its participants and release their roles.
        Returns False if someone else already ended it."""
        async with self.db.transaction():
            if not await mark_expired(self.db, boss.id, now):
                return False
            participants = await get_participants(self.db, boss.id)
            await delete_participants(self.db, boss.id)

        log.info(
            "boss_expire: boss %s (%s) in guild %s vanished with %s participants",
            boss.id, boss.name, boss.guild_id, len(participants),
        )
        await self.roles.release_many([p.user_id for p in participants], boss.guild_id, now)
        if sweep_roles:
            await self.roles.sweep_orphans(now)
        return True

    async def cleanup_expired(self, now: int) -> int:
        """Expire every overdue boss, then drop orphaned participant rows."""
        expired = 0
        for boss in await list_overdue_bosses(self.db, now):
            if await self.expire(boss, now, sweep_roles=False):
                expired += 1
        purged = await purge_orphaned_participants(self.db)
        if purged:
            log.info("boss_expire: integrity check removed %s orphaned participation records", purged)
        if expired:
            await self.roles.sweep_orphans(now)
            log.info("boss_expire: cleaned up %s expired bosses", expired)
        return expired
