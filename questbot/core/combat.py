"""
Combat Resolver: one player attack against the active boss of a guild.

All store writes for an attack (stamina, hp, counterattack, participation,
defeat) commit together; role changes, analytics and rewards run afterwards.
"""

from __future__ import annotations
import logging
import math
import random
from dataclasses import dataclass, field

from .config import BossSettings
from .db import Database
from .encounters import (
    Boss,
    add_participant_damage,
    apply_boss_damage,
    get_active_boss,
    get_boss,
    get_participants,
    get_player,
    mark_defeated,
)
from .errors import Downed, Exhausted, Expired, NoBoss, NotPresent
from .expiry import BossExpirer
from .hooks import BossHooks, best_effort
from .items import ItemCatalog, equipped_weapon
from .players import apply_health_damage, regen_stamina, spend_stamina
from .rewards import ParticipantReward, RewardDistributor
from .roles import RoleSynchronizer
from .utility import now_ts

log = logging.getLogger(__name__)

BASE_DAMAGE_MIN = 50
BASE_DAMAGE_MAX = 199


@dataclass(slots=True)
class AttackResult:
    boss: Boss
    damage_dealt: int
    hp_remaining: int
    counter_damage: int | None
    health_remaining: int
    defeated: bool
    rewards: list[ParticipantReward] = field(default_factory=list)


class CombatResolver:
    def __init__(
        self,
        db: Database,
        settings: BossSettings,
        catalog: ItemCatalog,
        roles: RoleSynchronizer,
        expirer: BossExpirer,
        rewards: RewardDistributor,
        hooks: BossHooks,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.settings = settings
        self.catalog = catalog
        self.roles = roles
        self.expirer = expirer
        self.rewards = rewards
        self.hooks = hooks
        self.rng = rng or random.Random()

    def roll_damage(self, rarity: str | None, attack_bonus: float) -> int:
        base = self.rng.randint(BASE_DAMAGE_MIN, BASE_DAMAGE_MAX)
        return math.floor(base * self.catalog.rarity_multiplier(rarity) * attack_bonus)

    async def attack(self, user_id: str, guild_id: str, now: int | None = None) -> AttackResult:
        now = now_ts() if now is None else now
        user_id, guild_id = str(user_id), str(guild_id)
        s = self.settings

        await regen_stamina(self.db, user_id, s.stamina_regen_per_minute, s.stamina_cap, now)

        boss = await get_active_boss(self.db, guild_id)
        if not boss:
            raise NoBoss()
        player = await get_player(self.db, user_id)
        if not player or not player.is_present_at(guild_id, now):
            raise NotPresent()
        if boss.is_expired(now):
            await self.expirer.expire(boss, now)
            raise Expired()
        if player.health <= 0:
            raise Downed()
        if player.stamina < s.attack_cost:
            raise Exhausted()

        weapon = await equipped_weapon(self.db, self.catalog, user_id)
        damage = self.roll_damage(
            weapon.rarity if weapon else "common",
            weapon.attack_bonus if weapon else 1.0,
        )

        counter: int | None = None
        health = player.health
        defeated = False
        try:
            async with self.db.transaction():
                if not await spend_stamina(self.db, user_id, s.attack_cost, now):
                    raise Exhausted()
                hp = await apply_boss_damage(self.db, boss.id, damage, now)
                if hp is None:
                    raise NoBoss()
                if hp > 0:
                    counter = self.rng.randint(s.counter_min, s.counter_max)
                    health = await apply_health_damage(self.db, user_id, counter)
                await add_participant_damage(self.db, boss.id, user_id, damage)
                if hp == 0:
                    defeated = await mark_defeated(self.db, boss.id, now)
                    if defeated:
                        await self.db.set_setting("last_boss_defeat", now, now)
        except NoBoss:
            current = await get_boss(self.db, boss.id)
            if current and current.defeated_at is None and (current.expired_at is not None or current.is_expired(now)):
                await self.expirer.expire(current, now)
                raise Expired() from None
            raise

        boss.hp = hp
        log.info(
            "boss_attack: user %s hit boss %s (%s) for %s, hp now %s/%s",
            user_id, boss.id, boss.name, damage, hp, boss.max_hp,
        )

        if damage > 0:
            await self.roles.assign(user_id, guild_id)
        await best_effort(
            "battle analytics", self.hooks.record_attack, user_id, boss, damage, weapon.id if weapon else None, now
        )
        await best_effort("challenge progress", self.hooks.challenge_progress, user_id, "boss_damage", damage)
        await best_effort("challenge progress", self.hooks.challenge_progress, user_id, "boss_fight", 1)
        await best_effort("participation gems", self.hooks.award_participation_gems, user_id, damage, boss.max_hp, now)

        rewards: list[ParticipantReward] = []
        if defeated:
            boss.active = False
            boss.defeated_at = now
            rewards = await self._finish_defeat(boss, now)

        return AttackResult(
            boss=boss,
            damage_dealt=damage,
            hp_remaining=hp,
            counter_damage=counter,
            health_remaining=health,
            defeated=defeated,
            rewards=rewards,
        )

    async def _finish_defeat(self, boss: Boss, now: int) -> list[ParticipantReward]:
        log.info("boss_defeat: boss %s (%s) defeated in guild %s", boss.id, boss.name, boss.guild_id)
        participants = await get_participants(self.db, boss.id)
        rewards = await self.rewards.distribute(boss.id, now)
        await self.roles.release_many([p.user_id for p in participants], boss.guild_id, now)
        await self.roles.sweep_orphans(now)
        await best_effort("boss_defeated notification", self.hooks.boss_defeated, boss, participants)
        return rewards
