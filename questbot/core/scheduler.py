"""
Spawner Scheduler. ``tick`` is driven by the BossSchedulerCog task loop.

``next_spawn_at`` and the last orphan sweep live in system_settings so a
restart neither spawns immediately nor forgets a pending cycle.
"""

from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field

from .config import BossSettings
from .db import Database
from .encounters import list_spawn_candidates
from .errors import CapacityExceeded, ValidationError
from .expiry import BossExpirer
from .rewards import RewardDistributor
from .roles import RoleSynchronizer
from .spawn import SpawnGovernor
from .utility import now_ts

log = logging.getLogger(__name__)

NEXT_SPAWN_KEY = "boss_next_spawn_at"
LAST_SWEEP_KEY = "boss_last_orphan_sweep"
LAST_DEFEAT_KEY = "last_boss_defeat"


@dataclass(slots=True)
class CycleReport:
    ran: bool = False
    spawned: list[int] = field(default_factory=list)
    skipped: int = 0
    reason: str = ""


class BossScheduler:
    def __init__(
        self,
        db: Database,
        settings: BossSettings,
        governor: SpawnGovernor,
        expirer: BossExpirer,
        rewards: RewardDistributor,
        roles: RoleSynchronizer,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.settings = settings
        self.governor = governor
        self.expirer = expirer
        self.rewards = rewards
        self.roles = roles
        self.rng = rng or random.Random()

    def next_interval(self) -> int:
        s = self.settings
        return int(self.rng.uniform(s.spawn_interval_min, s.spawn_interval_max))

    async def _int_setting(self, key: str) -> int | None:
        raw = await self.db.get_setting(key)
        if raw is None:
            return None
        try:
            return int(float(raw))
        except ValueError:
            log.warning("Ignoring malformed %s=%r in system_settings", key, raw)
            return None

    async def ensure_next_spawn(self, now: int | None = None) -> int:
        """Return the persisted next spawn time, initialising it if missing."""
        now = now_ts() if now is None else now
        when = await self._int_setting(NEXT_SPAWN_KEY)
        if when is None:
            when = now + self.next_interval()
            await self.db.set_setting(NEXT_SPAWN_KEY, when, now)
            log.info("boss_scheduler: first spawn cycle scheduled in %ss", when - now)
        return when

    async def defeat_cooldown_left(self, now: int) -> int:
        last = await self._int_setting(LAST_DEFEAT_KEY)
        if last is None:
            return 0
        return max(0, self.settings.defeat_cooldown_seconds - (now - last))

    async def run_cycle(self, now: int | None = None) -> CycleReport:
        now = now_ts() if now is None else now
        report = CycleReport()

        wait = await self.defeat_cooldown_left(now)
        if wait > 0:
            report.reason = f"defeat cooldown ({wait}s left)"
            log.info("boss_scheduler: skipping cycle, %s", report.reason)
            return report

        report.ran = True
        candidates = await list_spawn_candidates(self.db, self.settings.home_guild_id)
        self.rng.shuffle(candidates)
        for guild in candidates:
            if len(report.spawned) >= self.settings.max_spawns_per_cycle:
                break
            if self.rng.random() >= self.settings.spawn_chance:
                report.skipped += 1
                continue
            try:
                boss = await self.governor.spawn(None, guild.guild_id, now, system=True)
            except CapacityExceeded as e:
                report.reason = e.message
                log.info("boss_scheduler: %s", e.message)
                break
            except ValidationError as e:
                report.skipped += 1
                log.debug("boss_scheduler: skipped %s: %s", guild.guild_id, e.message)
                continue
            report.spawned.append(boss.id)

        log.info(
            "boss_scheduler: cycle spawned %s boss(es) over %s candidates",
            len(report.spawned), len(candidates),
        )
        return report

    async def tick(self, now: int | None = None) -> CycleReport | None:
        """One scheduler step. Returns the cycle report if a cycle was due."""
        now = now_ts() if now is None else now

        await self.rewards.resume_pending(now)
        await self.expirer.cleanup_expired(now)

        report = None
        if now >= await self.ensure_next_spawn(now):
            report = await self.run_cycle(now)
            when = now + self.next_interval()
            await self.db.set_setting(NEXT_SPAWN_KEY, when, now)
            log.info("boss_scheduler: next spawn cycle in %ss", when - now)

        last_sweep = await self._int_setting(LAST_SWEEP_KEY) or 0
        if now - last_sweep >= self.settings.orphan_sweep_seconds:
            await self.roles.sweep_orphans(now)
            await self.db.set_setting(LAST_SWEEP_KEY, now, now)

        return report
