"""
Reward Distributor: pays every participant of a defeated boss exactly once.

The payout runs in one transaction. ``boss_rewards`` is the ledger: a
participant is credited only if their row was newly inserted, so a retry
after a crash (see ``resume_pending``) never double-pays.
"""

from __future__ import annotations
import json
import logging
import random
from dataclasses import dataclass, field

from .config import BossSettings
from .db import Database
from .encounters import delete_participants, get_boss, get_participants, list_unpaid_defeats, mark_rewarded
from .hooks import BossHooks, best_effort
from .items import ItemCatalog
from .players import add_inventory_item, credit_boss_kill
from .roles import RoleSynchronizer
from .utility import now_ts

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ParticipantReward:
    user_id: str
    damage: int
    currency: int
    items: list[str] = field(default_factory=list)


class RewardDistributor:
    def __init__(
        self,
        db: Database,
        settings: BossSettings,
        catalog: ItemCatalog,
        hooks: BossHooks,
        rng: random.Random | None = None,
        roles: RoleSynchronizer | None = None,
    ):
        self.db = db
        self.settings = settings
        self.catalog = catalog
        self.hooks = hooks
        self.rng = rng or random.Random()
        self.roles = roles

    def roll_loot(self, tier: int, premium: bool) -> list[str]:
        s = self.settings
        rolls = self.rng.randint(s.loot_rolls_min, s.loot_rolls_max)
        loot = []
        for _ in range(rolls):
            item_id = self.catalog.pick_loot(tier, premium, self.rng)
            if item_id:
                loot.append(item_id)
        return loot

    async def distribute(self, boss_id: int, now: int | None = None) -> list[ParticipantReward]:
        now = now_ts() if now is None else now
        boss = await get_boss(self.db, boss_id)
        if not boss or boss.defeated_at is None or boss.rewarded_at is not None:
            return []

        participants = await get_participants(self.db, boss.id)
        currency = self.settings.reward_per_tier * boss.tier

        planned: list[ParticipantReward] = []
        for p in participants:
            premium = await best_effort("premium lookup", self.hooks.is_premium, p.user_id, default=False)
            planned.append(ParticipantReward(p.user_id, p.damage, currency, self.roll_loot(boss.tier, bool(premium))))

        paid: list[ParticipantReward] = []
        async with self.db.transaction():
            for reward in planned:
                inserted = await self.db.execute(
                    "INSERT OR IGNORE INTO boss_rewards(boss_id, user_id, currency, items, ts) VALUES(?,?,?,?,?)",
                    (boss.id, reward.user_id, reward.currency, json.dumps(reward.items), now),
                )
                if inserted != 1:
                    continue
                for item_id in reward.items:
                    await add_inventory_item(self.db, reward.user_id, item_id, 1)
                await credit_boss_kill(self.db, reward.user_id, reward.currency)
                paid.append(reward)
            await delete_participants(self.db, boss.id)
            if not await mark_rewarded(self.db, boss.id, now):
                # Another task finished this payout first; the ledger kept us from paying twice.
                return []

        for reward in paid:
            log.info(
                "boss_reward: user %s got %s coins and %s items for boss %s",
                reward.user_id, reward.currency, len(reward.items), boss.id,
            )
            await best_effort("achievement check", self.hooks.check_achievements, reward.user_id, now)
        log.info("boss_reward: paid %s of %s participants for boss %s (%s)", len(paid), len(planned), boss.id, boss.name)
        return paid

    async def resume_pending(self, now: int | None = None) -> int:
        """Finish payouts for defeated bosses that were never marked rewarded."""
        now = now_ts() if now is None else now
        resumed = 0
        for boss in await list_unpaid_defeats(self.db):
            log.info("boss_reward: resuming unpaid defeat of boss %s", boss.id)
            participants = await get_participants(self.db, boss.id)
            await self.distribute(boss.id, now)
            if self.roles:
                await self.roles.release_many([p.user_id for p in participants], boss.guild_id, now)
            await best_effort("boss_defeated notification", self.hooks.boss_defeated, boss, participants)
            resumed += 1
        return resumed
