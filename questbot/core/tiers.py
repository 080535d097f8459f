"""
Boss tier selection, hp scaling and naming.
"""

from __future__ import annotations
import math
import random
from typing import Mapping

from .config import DEFAULT_TIER_WEIGHTS

FALLBACK_NAMES = ["Ancient Beast"]

TIER_NAMES = {1: "Novice", 2: "Veteran", 3: "Elite", 4: "Legendary", 5: "Mythic"}


def _weighted_pool(weights: Mapping[int, int] | None, max_tier: int) -> list[int]:
    pool: list[int] = []
    for tier in range(1, max_tier + 1):
        chance = int((weights or {}).get(tier, 0) or 0)
        pool.extend([tier] * max(0, chance))
    return pool


def pick_tier(weights: Mapping[int, int] | None, max_tier: int, rng: random.Random | None = None) -> int:
    """Pick a tier in [1, max_tier] from a {tier: weight} table.

    Weights are expanded into a pool and sampled uniformly. An empty table (or
    one with no usable weight in range) uses DEFAULT_TIER_WEIGHTS.
    """
    rng = rng or random
    max_tier = max(1, int(max_tier))
    pool = _weighted_pool(weights, max_tier)
    if not pool:
        pool = _weighted_pool(DEFAULT_TIER_WEIGHTS, max_tier)
    if not pool:
        return 1
    return rng.choice(pool)


def boss_hp(tier: int, base_hp: int, growth: float) -> int:
    return math.floor(base_hp * (1 + (tier - 1) * growth))


def boss_name_for_biome(biome: str | None, names: Mapping[str, list[str]], rng: random.Random | None = None) -> str:
    rng = rng or random
    key = biome.lower() if biome else None
    pool = (key and names.get(key)) or names.get("_default") or FALLBACK_NAMES
    return rng.choice(pool)


def tier_label(tier: int) -> str:
    return TIER_NAMES.get(int(tier), f"Tier {tier}")
