from __future__ import annotations
import os
import yaml
from dataclasses import dataclass, field
from typing import Any

from .errors import ConfigError

ELIGIBILITY_MODES = ("hash", "all_except_home")

DEFAULT_TIER_WEIGHTS = {1: 40, 2: 25, 3: 20, 4: 10, 5: 5}

DEFAULT_BOSS_NAMES = {
    "volcanic": ["Inferno Drake", "Magma Colossus", "Pyroclast Titan", "Ember Lord", "Volcanic Warden"],
    "ice": ["Frost Giant", "Glacial Behemoth", "Blizzard King", "Ice Wraith", "Arctic Sovereign"],
    "forest": ["Ancient Treant", "Forest Guardian", "Thorn Monarch", "Verdant Colossus", "Woodland Protector"],
    "desert": ["Sand Worm", "Dune Stalker", "Desert Pharaoh", "Mirage Demon", "Sandstone Golem"],
    "swamp": ["Bog Monster", "Marsh Tyrant", "Pestilent Drake", "Swamp Leviathan", "Mire Lord"],
    "mountain": ["Stone Giant", "Peak Guardian", "Crag Demon", "Mountain King", "Boulder Behemoth"],
    "water": ["Kraken Spawn", "Tidal Behemoth", "Deep Sea Terror", "Ocean Lord", "Abyssal Guardian"],
    "_default": ["Ancient Sentinel", "Ruin Wraith", "Forgotten Titan", "Temple Guardian", "Lost Colossus"],
}


class Config(dict):
    @staticmethod
    def load(path: str) -> "Config":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return Config(data)

    def get(self, *keys, default=None):
        cur: Any = self
        for k in keys:
            if isinstance(cur, dict) and k in cur:
                cur = cur[k]
            else:
                return default
        return cur


def _int_range(lo, hi, floor: int = 0) -> tuple[int, int]:
    lo, hi = int(lo), int(hi)
    if lo > hi:
        lo, hi = hi, lo
    lo = max(floor, lo)
    return lo, max(lo, hi)


def _id_set(raw) -> frozenset[str]:
    if not raw:
        return frozenset()
    if isinstance(raw, (str, int)):
        raw = str(raw).split(",")
    return frozenset(str(x).strip() for x in raw if str(x).strip())


@dataclass(slots=True)
class BossSettings:
    base_hp: int = 2000
    tier_growth: float = 0.2
    max_tier: int = 5
    tier_weights: dict[int, int] = field(default_factory=lambda: dict(DEFAULT_TIER_WEIGHTS))
    ttl_seconds: int = 3600
    cooldown_seconds: int = 3600
    global_cap: int = 10
    counter_min: int = 5
    counter_max: int = 30
    attack_cost: int = 5
    reward_per_tier: int = 50
    loot_rolls_min: int = 3
    loot_rolls_max: int = 5
    names: dict[str, list[str]] = field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_BOSS_NAMES.items()})
    home_guild_id: str | None = None
    eligibility_mode: str = "hash"
    eligibility_divisor: int = 3
    eligibility_digits: int = 8
    spawn_chance: float = 1.0
    max_spawns_per_cycle: int = 1
    spawn_interval_min: int = 3600
    spawn_interval_max: int = 7200
    defeat_cooldown_seconds: int = 300
    orphan_sweep_seconds: int = 600
    orphan_lookback_seconds: int = 86400
    tick_seconds: int = 60
    fighter_role_id: int = 0
    notification_channel_id: int = 0
    staff_user_ids: frozenset[str] = frozenset()
    staff_role_ids: frozenset[str] = frozenset()
    stamina_regen_per_minute: int = 1
    stamina_cap: int = 100

    @classmethod
    def from_config(cls, cfg: Config) -> "BossSettings":
        """Build settings from the ``boss:`` section of config.yml."""

        def b(*keys, default=None):
            return cfg.get("boss", *keys, default=default)

        raw_weights = b("tier_weights")
        tier_weights = (
            {int(t): int(w) for t, w in raw_weights.items()}
            if isinstance(raw_weights, dict)
            else dict(DEFAULT_TIER_WEIGHTS)
        )

        names = b("names")
        if isinstance(names, dict) and names:
            names = {str(k).lower(): [str(n) for n in (v or [])] for k, v in names.items()}
        else:
            names = {k: list(v) for k, v in DEFAULT_BOSS_NAMES.items()}

        counter_min, counter_max = _int_range(
            b("counter_damage", "min", default=5), b("counter_damage", "max", default=30)
        )
        rolls_min, rolls_max = _int_range(b("loot_rolls", "min", default=3), b("loot_rolls", "max", default=5))
        interval_min, interval_max = _int_range(
            b("spawn_interval", "min", default=3600), b("spawn_interval", "max", default=7200), floor=1
        )

        home = b("home_guild_id", default=None) or os.getenv("SPAWN_GUILD_ID")

        settings = cls(
            base_hp=int(b("base_hp", default=2000)),
            tier_growth=float(b("tier_growth", default=0.2)),
            max_tier=int(b("max_tier", default=5)),
            tier_weights=tier_weights,
            ttl_seconds=int(b("ttl_seconds", default=3600)),
            cooldown_seconds=max(0, int(b("cooldown_seconds", default=3600))),
            global_cap=int(b("global_cap", default=10)),
            counter_min=counter_min,
            counter_max=counter_max,
            attack_cost=max(0, int(b("attack_cost", default=5))),
            reward_per_tier=int(b("reward_per_tier", default=50)),
            loot_rolls_min=rolls_min,
            loot_rolls_max=rolls_max,
            names=names,
            home_guild_id=str(home) if home else None,
            eligibility_mode=str(b("eligibility", "mode", default="hash")),
            eligibility_divisor=int(b("eligibility", "divisor", default=3)),
            eligibility_digits=int(b("eligibility", "digits", default=8)),
            spawn_chance=float(b("spawn_chance", default=1.0)),
            max_spawns_per_cycle=int(b("max_spawns_per_cycle", default=1)),
            spawn_interval_min=interval_min,
            spawn_interval_max=interval_max,
            defeat_cooldown_seconds=max(0, int(b("defeat_cooldown_seconds", default=300))),
            orphan_sweep_seconds=max(1, int(b("orphan_sweep_seconds", default=600))),
            orphan_lookback_seconds=max(0, int(b("orphan_lookback_seconds", default=86400))),
            tick_seconds=max(1, int(b("tick_seconds", default=60))),
            fighter_role_id=int(b("fighter_role_id", default=0) or 0),
            notification_channel_id=int(b("notification_channel_id", default=0) or 0),
            staff_user_ids=_id_set(b("staff_user_ids")),
            staff_role_ids=_id_set(b("staff_role_ids")),
            stamina_regen_per_minute=max(0, int(cfg.get("stamina", "regen_per_minute", default=1))),
            stamina_cap=max(1, int(cfg.get("stamina", "cap", default=100))),
        )
        settings.validate()
        return settings

    def validate(self):
        if self.eligibility_mode not in ELIGIBILITY_MODES:
            raise ConfigError(
                f"boss.eligibility.mode must be one of {', '.join(ELIGIBILITY_MODES)} (got {self.eligibility_mode!r})"
            )
        if self.eligibility_divisor < 1:
            raise ConfigError("boss.eligibility.divisor must be >= 1")
        if self.eligibility_digits < 1:
            raise ConfigError("boss.eligibility.digits must be >= 1")
        if self.max_tier < 1:
            raise ConfigError("boss.max_tier must be >= 1")
        if self.base_hp < 1:
            raise ConfigError("boss.base_hp must be >= 1")
        if self.global_cap < 0:
            raise ConfigError("boss.global_cap must be >= 0")
        if not 0.0 <= self.spawn_chance <= 1.0:
            raise ConfigError("boss.spawn_chance must be between 0 and 1")
