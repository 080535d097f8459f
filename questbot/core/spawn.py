"""
Spawn Governor: every path that creates a boss (staff command, scheduler)
goes through SpawnGovernor.spawn.
"""

from __future__ import annotations
import logging
import random

from .config import BossSettings
from .db import Database
from .eligibility import is_guild_eligible
from .encounters import (
    Boss,
    GuildRecord,
    count_active_bosses,
    get_active_boss,
    get_guild,
    get_player,
    insert_boss,
    set_last_boss_at,
)
from .errors import (
    BossAlreadyActive,
    CapacityExceeded,
    ForbiddenGuild,
    NoCoordinates,
    NotEligible,
    OnCooldown,
    Unauthorized,
)
from .expiry import BossExpirer
from .hooks import BossHooks, best_effort
from .tiers import boss_hp, boss_name_for_biome, pick_tier
from .utility import now_ts

log = logging.getLogger(__name__)


class SpawnGovernor:
    def __init__(
        self,
        db: Database,
        settings: BossSettings,
        hooks: BossHooks,
        expirer: BossExpirer,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.settings = settings
        self.hooks = hooks
        self.expirer = expirer
        self.rng = rng or random.Random()

    async def _resolve_target(self, requester_id: str | None, target_guild_id: str | None) -> GuildRecord:
        if target_guild_id is None and requester_id is not None:
            player = await get_player(self.db, requester_id)
            target_guild_id = player.location_guild_id if player else None
        if target_guild_id is None:
            raise NoCoordinates("No target server given and you are not at a server.")
        guild = await get_guild(self.db, target_guild_id)
        if not guild or not guild.has_coordinates:
            raise NoCoordinates(f"Server {target_guild_id} not found, archived, or has no coordinates yet.")
        return guild

    async def _check_capacity(self, now: int):
        active = await count_active_bosses(self.db, now)
        if active >= self.settings.global_cap:
            raise CapacityExceeded(
                f"Global boss limit reached! There are already {active} active bosses worldwide."
            )

    async def check(self, guild: GuildRecord, now: int):
        """Raise the first failing placement precondition for ``guild``."""
        s = self.settings
        if s.home_guild_id and guild.guild_id == s.home_guild_id:
            raise ForbiddenGuild()
        await self._check_capacity(now)
        if not is_guild_eligible(guild.guild_id, s):
            raise NotEligible()
        if guild.last_boss_at and now - int(guild.last_boss_at) < s.cooldown_seconds:
            raise OnCooldown()
        current = await get_active_boss(self.db, guild.guild_id)
        if current:
            if not current.is_expired(now):
                raise BossAlreadyActive()
            await self.expirer.expire(current, now)

    async def spawn(
        self,
        requester_id: str | None,
        target_guild_id: str | None = None,
        now: int | None = None,
        system: bool = False,
    ) -> Boss:
        now = now_ts() if now is None else now
        if not system:
            if requester_id is None or not await best_effort(
                "is_staff", self.hooks.is_staff, str(requester_id), default=False
            ):
                raise Unauthorized()

        guild = await self._resolve_target(requester_id, target_guild_id)
        await self.check(guild, now)

        s = self.settings
        tier = pick_tier(s.tier_weights, s.max_tier, self.rng)
        name = boss_name_for_biome(guild.biome, s.names, self.rng)
        hp = boss_hp(tier, s.base_hp, s.tier_growth)

        async with self.db.transaction():
            # Re-checked under the write lock.
            await self._check_capacity(now)
            fresh = await get_guild(self.db, guild.guild_id)
            if fresh and fresh.last_boss_at and now - int(fresh.last_boss_at) < s.cooldown_seconds:
                raise OnCooldown()
            if await get_active_boss(self.db, guild.guild_id):
                raise BossAlreadyActive()
            boss = await insert_boss(self.db, guild.guild_id, name, tier, hp, now, now + s.ttl_seconds)
            await set_last_boss_at(self.db, guild.guild_id, now)

        log.info(
            "boss_spawn: %s spawned tier %s %s (%s HP) in %s (%s)",
            "scheduler" if system else requester_id, tier, name, hp, guild.name or "?", guild.guild_id,
        )
        await best_effort("boss_spawned notification", self.hooks.boss_spawned, boss, requester_id)
        return boss
