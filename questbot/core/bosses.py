"""
BossService: the one object the cogs talk to.

Wires the tier selector, spawn governor, combat resolver, reward distributor,
role synchronizer and expirer around a shared Database.
"""

from __future__ import annotations
import functools
import logging
import random
from dataclasses import dataclass, field

import aiosqlite

from .config import BossSettings
from .db import Database
from .encounters import (
    Boss,
    get_active_boss,
    get_participants,
    list_active_bosses,
    purge_orphaned_participants,
)
from .errors import StorageError
from .expiry import BossExpirer
from .hooks import BossHooks
from .items import ItemCatalog
from .combat import AttackResult, CombatResolver
from .rewards import RewardDistributor
from .roles import NullRoleGateway, RoleGateway, RoleSynchronizer
from .scheduler import BossScheduler
from .spawn import SpawnGovernor
from .utility import now_ts

log = logging.getLogger(__name__)

TOP_DAMAGERS = 5


@dataclass(slots=True)
class Damager:
    user_id: str
    damage: int
    share: float


@dataclass(slots=True)
class BossSnapshot:
    boss: Boss
    seconds_left: int
    hp_percent: int
    participant_count: int
    top_damagers: list[Damager] = field(default_factory=list)


def storage_guard(fn):
    """Re-raise raw aiosqlite failures as StorageError, logging the operation."""

    @functools.wraps(fn)
    async def wrapper(self, *args, **kwargs):
        try:
            return await fn(self, *args, **kwargs)
        except aiosqlite.Error as e:
            log.exception("Boss storage failure in %s args=%r", fn.__name__, args)
            raise StorageError() from e

    return wrapper


class BossService:
    def __init__(
        self,
        db: Database,
        settings: BossSettings,
        catalog: ItemCatalog | None = None,
        hooks: BossHooks | None = None,
        gateway: RoleGateway | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.settings = settings
        self.catalog = catalog or ItemCatalog()
        self.hooks = hooks or BossHooks()
        rng = rng or random.Random()

        self.roles = RoleSynchronizer(db, gateway or NullRoleGateway(), settings.orphan_lookback_seconds)
        self.expirer = BossExpirer(db, self.roles)
        self.rewards = RewardDistributor(db, settings, self.catalog, self.hooks, rng, roles=self.roles)
        self.governor = SpawnGovernor(db, settings, self.hooks, self.expirer, rng)
        self.combat = CombatResolver(
            db, settings, self.catalog, self.roles, self.expirer, self.rewards, self.hooks, rng
        )
        self.scheduler = BossScheduler(db, settings, self.governor, self.expirer, self.rewards, self.roles, rng)

    @storage_guard
    async def status(self, guild_id: str, now: int | None = None) -> BossSnapshot | None:
        now = now_ts() if now is None else now
        boss = await get_active_boss(self.db, str(guild_id))
        if not boss:
            return None
        if boss.is_expired(now):
            await self.expirer.expire(boss, now)
            return None

        participants = await get_participants(self.db, boss.id)
        total = sum(p.damage for p in participants)
        top = [
            Damager(p.user_id, p.damage, (p.damage / total) if total else 0.0)
            for p in participants[:TOP_DAMAGERS]
        ]
        return BossSnapshot(
            boss=boss,
            seconds_left=boss.seconds_left(now),
            hp_percent=boss.hp_percent,
            participant_count=len(participants),
            top_damagers=top,
        )

    @storage_guard
    async def attack(self, user_id: str, guild_id: str, now: int | None = None) -> AttackResult:
        return await self.combat.attack(user_id, guild_id, now)

    @storage_guard
    async def spawn(self, requester_id: str, target_guild_id: str | None = None, now: int | None = None) -> Boss:
        return await self.governor.spawn(str(requester_id), target_guild_id, now)

    @storage_guard
    async def cleanup_expired_bosses(self, now: int | None = None) -> int:
        return await self.expirer.cleanup_expired(now_ts() if now is None else now)

    @storage_guard
    async def cleanup_roles(self, now: int | None = None) -> tuple[int, int]:
        """Manual admin cleanup. Returns (orphaned participant rows purged, roles removed)."""
        now = now_ts() if now is None else now
        purged = await purge_orphaned_participants(self.db)
        removed = await self.roles.sweep_orphans(now)
        log.info("boss_cleanup: purged %s participant rows, removed %s roles", purged, removed)
        return purged, removed

    @storage_guard
    async def active_bosses(self, now: int | None = None) -> list[Boss]:
        return await list_active_bosses(self.db, now_ts() if now is None else now)

    @storage_guard
    async def tick(self, now: int | None = None):
        return await self.scheduler.tick(now)
