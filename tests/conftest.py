from __future__ import annotations

import random
from collections import deque
from pathlib import Path

import pytest

from questbot.core.bosses import BossService
from questbot.core.combat import BASE_DAMAGE_MAX, BASE_DAMAGE_MIN
from questbot.core.config import BossSettings
from questbot.core.db import Database
from questbot.core.hooks import BossHooks
from questbot.core.items import Item, ItemCatalog

NOW = 1_700_000_000

# Trailing 8 hex digits: 0x00000000 % 3 == 0 and 0x00000003 % 3 == 0
GUILD_A = "100000000000000000"
GUILD_B = "100000000000000003"
HOME_GUILD = "999999999999999999"


class ScriptedRandom(random.Random):
    """Random whose randint(a, b) answers from a per-range script first, then falls back to the real thing."""

    def __init__(self, seed: int = 7):
        super().__init__(seed)
        self.script: dict[tuple[int, int], deque[int]] = {}

    def push(self, a: int, b: int, *values: int):
        self.script.setdefault((a, b), deque()).extend(values)

    def randint(self, a: int, b: int) -> int:
        queued = self.script.get((a, b))
        if queued:
            return queued.popleft()
        return super().randint(a, b)


class FakeRoleGateway:
    def __init__(self):
        self.roles: dict[str, set[str]] = {}
        self.fail_add = False
        self.calls: list[tuple[str, str, str]] = []

    def holders(self, guild_id: str) -> set[str]:
        return self.roles.setdefault(str(guild_id), set())

    async def add_role(self, guild_id: str, user_id: str) -> None:
        self.calls.append(("add", guild_id, user_id))
        if self.fail_add:
            raise RuntimeError("discord is down")
        self.holders(guild_id).add(user_id)

    async def remove_role(self, guild_id: str, user_id: str) -> None:
        self.calls.append(("remove", guild_id, user_id))
        self.holders(guild_id).discard(user_id)

    async def has_role(self, guild_id: str, user_id: str) -> bool:
        return user_id in self.holders(guild_id)

    async def role_holders(self, guild_id: str) -> list[str]:
        return sorted(self.holders(guild_id))


class RecordingHooks(BossHooks):
    def __init__(self, staff=("staff",), premium=()):
        self.staff = set(staff)
        self.premium = set(premium)
        self.events: list[tuple] = []
        self.fail = False

    async def is_staff(self, user_id: str) -> bool:
        return user_id in self.staff

    async def is_premium(self, user_id: str) -> bool:
        return user_id in self.premium

    async def record_attack(self, user_id, boss, damage, weapon_id, ts):
        if self.fail:
            raise RuntimeError("analytics offline")
        self.events.append(("attack", user_id, boss.id, damage, weapon_id))

    async def challenge_progress(self, user_id, kind, amount):
        self.events.append(("challenge", user_id, kind, amount))

    async def award_participation_gems(self, user_id, damage, boss_max_hp, ts):
        if self.fail:
            raise RuntimeError("gem service offline")
        self.events.append(("gems", user_id, damage))
        return 5

    async def check_achievements(self, user_id, ts):
        self.events.append(("achievements", user_id))

    async def boss_spawned(self, boss, requester_id):
        self.events.append(("spawned", boss.id, requester_id))

    async def boss_defeated(self, boss, participants):
        self.events.append(("defeated", boss.id, [p.user_id for p in participants]))

    def of(self, kind: str) -> list[tuple]:
        return [e for e in self.events if e[0] == kind]


def make_settings(**overrides) -> BossSettings:
    values = dict(
        tier_weights={3: 1},
        eligibility_mode="all_except_home",
        home_guild_id=HOME_GUILD,
        cooldown_seconds=0,
        loot_rolls_min=1,
        loot_rolls_max=1,
        spawn_interval_min=600,
        spawn_interval_max=600,
    )
    values.update(overrides)
    return BossSettings(**values)


def make_catalog() -> ItemCatalog:
    return ItemCatalog(
        items={
            "ore": Item("ore", "Iron Ore"),
            "blade": Item("blade", "Steel Blade", rarity="rare", attack_bonus=1.5, equip_slot="weapon"),
        },
        rarity_multipliers={"common": 1.0, "rare": 2.0},
        loot_rarity_weights={"1": {"common": 1}},
    )


class World:
    """A BossService over a fresh SQLite file plus its fakes."""

    def __init__(self, db_path: Path, **overrides):
        self.db = Database(str(db_path))
        self.settings = make_settings(**overrides)
        self.gateway = FakeRoleGateway()
        self.hooks = RecordingHooks()
        self.rng = ScriptedRandom()
        self.service = BossService(
            self.db, self.settings, make_catalog(), self.hooks, self.gateway, self.rng
        )

    async def __aenter__(self) -> "World":
        await self.db.connect()
        await self.db.migrate()
        return self

    async def __aexit__(self, *exc):
        await self.db.close()

    async def add_guild(self, guild_id: str, name: str = "Guild", biome: str | None = "forest", lat=1.0, lon=2.0):
        await self.db.execute(
            "INSERT INTO servers(guild_id, name, lat, lon, biome) VALUES(?,?,?,?,?)",
            (guild_id, name, lat, lon, biome),
        )

    async def add_player(self, user_id: str, guild_id: str | None, health: int = 100, stamina: int = 100, **extra):
        await self.db.execute(
            """
            INSERT INTO players(user_id, health, stamina, stamina_updated_at, location_guild_id, travel_arrival_at)
            VALUES(?,?,?,?,?,?)
            """,
            (user_id, health, stamina, extra.get("stamina_updated_at", NOW), guild_id, extra.get("travel_arrival_at")),
        )

    async def spawn(self, guild_id: str, now: int = NOW):
        return await self.service.spawn("staff", guild_id, now)

    def push_damage(self, *values: int):
        self.rng.push(BASE_DAMAGE_MIN, BASE_DAMAGE_MAX, *values)

    async def attack(self, user_id: str, guild_id: str, damage: int, counter: int | None = 10, now: int = NOW):
        self.push_damage(damage)
        if counter is not None:
            self.rng.push(self.settings.counter_min, self.settings.counter_max, counter)
        return await self.service.attack(user_id, guild_id, now)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "questbot.sqlite3"
