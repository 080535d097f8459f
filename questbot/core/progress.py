"""
Database-backed BossHooks: battle analytics, challenge progress, participation
gems, boss-kill achievements and the premium/staff oracles.
"""

from __future__ import annotations
import logging
import math

from .config import BossSettings
from .db import Database
from .encounters import Boss
from .hooks import BossHooks

log = logging.getLogger(__name__)

GEMS_MIN = 5
GEMS_MAX = 15
# Dealing this share of max hp earns the full gem award.
FULL_CONTRIBUTION_SHARE = 0.1

BOSS_KILL_ACHIEVEMENTS = {
    1: "boss_slayer_1",
    10: "boss_slayer_10",
    50: "boss_slayer_50",
    100: "boss_slayer_100",
}


def participation_gems(damage: int, boss_max_hp: int) -> int:
    if boss_max_hp <= 0 or damage <= 0:
        return 0
    contribution = min(1.0, damage / (boss_max_hp * FULL_CONTRIBUTION_SHARE))
    return math.floor(GEMS_MIN + contribution * (GEMS_MAX - GEMS_MIN))


class ProgressHooks(BossHooks):
    def __init__(self, db: Database, settings: BossSettings):
        self.db = db
        self.settings = settings

    async def is_staff(self, user_id: str) -> bool:
        return str(user_id) in self.settings.staff_user_ids

    async def is_premium(self, user_id: str) -> bool:
        row = await self.db.fetchone("SELECT 1 FROM premium_users WHERE user_id=?", (str(user_id),))
        return row is not None

    async def record_attack(self, user_id: str, boss: Boss, damage: int, weapon_id: str | None, ts: int):
        await self.db.execute(
            "INSERT INTO battle_analytics(user_id, boss_id, damage, weapon, ts) VALUES(?,?,?,?,?)",
            (str(user_id), boss.id, int(damage), weapon_id or "none", ts),
        )

    async def challenge_progress(self, user_id: str, kind: str, amount: int):
        await self.db.execute(
            """
            INSERT INTO player_challenges(user_id, kind, progress) VALUES(?,?,?)
            ON CONFLICT(user_id, kind) DO UPDATE SET progress = progress + excluded.progress
            """,
            (str(user_id), kind, int(amount)),
        )

    async def award_participation_gems(self, user_id: str, damage: int, boss_max_hp: int, ts: int) -> int:
        gems = participation_gems(damage, boss_max_hp)
        if gems <= 0:
            return 0
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO players(user_id, gems) VALUES(?,?)
                ON CONFLICT(user_id) DO UPDATE SET gems = gems + excluded.gems
                """,
                (str(user_id), gems),
            )
            await self.db.execute(
                "INSERT INTO gem_ledger(user_id, amount, kind, reason, ts) VALUES(?,?,?,?,?)",
                (str(user_id), gems, "earn", "boss_participation", ts),
            )
        return gems

    async def check_achievements(self, user_id: str, ts: int) -> list[str]:
        """Unlock boss-kill milestones. Returns the ones newly unlocked."""
        row = await self.db.fetchone("SELECT boss_kills FROM players WHERE user_id=?", (str(user_id),))
        kills = int(row["boss_kills"]) if row else 0
        unlocked = []
        for threshold, name in BOSS_KILL_ACHIEVEMENTS.items():
            if kills < threshold:
                continue
            changed = await self.db.execute(
                "INSERT OR IGNORE INTO player_achievements(user_id, achievement, unlocked_ts) VALUES(?,?,?)",
                (str(user_id), name, ts),
            )
            if changed == 1:
                unlocked.append(name)
                log.info("achievement: user %s unlocked %s", user_id, name)
        return unlocked
