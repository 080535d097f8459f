"""
Item catalog (from config.yml) and loot rolling.
"""

from __future__ import annotations
import random
from dataclasses import dataclass, field
from typing import Mapping

from .config import Config
from .db import Database


@dataclass(slots=True, frozen=True)
class Item:
    id: str
    name: str
    rarity: str = "common"
    attack_bonus: float = 1.0
    tradable: bool = True
    consumable: bool = False
    equip_slot: str | None = None
    premium_needed: bool = False

    @classmethod
    def from_dict(cls, d: Mapping) -> "Item":
        return cls(
            id=str(d["id"]),
            name=str(d.get("name") or d["id"]),
            rarity=str(d.get("rarity") or "common"),
            attack_bonus=float(d.get("attack_bonus", d.get("attackBonus", 1.0)) or 1.0),
            tradable=d.get("tradable", True) is not False,
            consumable=bool(d.get("consumable", False)),
            equip_slot=d.get("equip_slot", d.get("equipSlot")),
            premium_needed=bool(d.get("premium_needed", d.get("premiumNeeded", False))),
        )


@dataclass(slots=True)
class ItemCatalog:
    items: dict[str, Item] = field(default_factory=dict)
    rarity_multipliers: dict[str, float] = field(default_factory=dict)
    loot_rarity_weights: dict[str, dict[str, int]] = field(default_factory=dict)
    loot_table: list[str] = field(default_factory=list)
    trade_blacklist: frozenset[str] = frozenset()

    @classmethod
    def from_config(cls, cfg: Config) -> "ItemCatalog":
        items = {}
        for raw in cfg.get("items", default=[]) or []:
            it = Item.from_dict(raw)
            items[it.id] = it
        weights = {
            str(tier): {str(r): int(w) for r, w in (table or {}).items()}
            for tier, table in (cfg.get("loot_rarity_weights", default={}) or {}).items()
        }
        loot_table = []
        for entry in cfg.get("loot_table", default=[]) or []:
            loot_table.append(str(entry["id"]) if isinstance(entry, dict) else str(entry))
        return cls(
            items=items,
            rarity_multipliers={str(k): float(v) for k, v in (cfg.get("rarity_multipliers", default={}) or {}).items()},
            loot_rarity_weights=weights,
            loot_table=loot_table,
            trade_blacklist=frozenset(str(x) for x in (cfg.get("trade_blacklist", default=[]) or [])),
        )

    def get(self, item_id: str | None) -> Item | None:
        if not item_id:
            return None
        return self.items.get(str(item_id))

    def rarity_multiplier(self, rarity: str | None) -> float:
        return float(self.rarity_multipliers.get(rarity or "common", 1.0))

    def is_tradable(self, item: Item) -> bool:
        return item.tradable and item.id not in self.trade_blacklist

    def weights_for_tier(self, tier: int) -> dict[str, int]:
        return self.loot_rarity_weights.get(str(tier)) or self.loot_rarity_weights.get("1") or {}

    def pick_rarity(self, tier: int, rng: random.Random | None = None) -> str:
        rng = rng or random
        weights = {r: w for r, w in self.weights_for_tier(tier).items() if w > 0}
        if not weights:
            return "common"
        return rng.choices(list(weights), weights=list(weights.values()), k=1)[0]

    def loot_candidates(self, rarity: str, premium: bool) -> list[Item]:
        return [
            it for it in self.items.values()
            if it.rarity == rarity
            and self.is_tradable(it)
            and not it.consumable
            and it.equip_slot != "vehicle"
            and (premium or not it.premium_needed)
        ]

    def pick_loot(self, tier: int, premium: bool, rng: random.Random | None = None) -> str | None:
        """One loot roll. Falls back to the flat loot table; None if that is empty too."""
        rng = rng or random
        pool = self.loot_candidates(self.pick_rarity(tier, rng), premium)
        if pool:
            return rng.choice(pool).id
        if self.loot_table:
            return rng.choice(self.loot_table)
        return None


async def equipped_weapon(db: Database, catalog: ItemCatalog, user_id: str) -> Item | None:
    row = await db.fetchone(
        "SELECT item_id FROM equipment WHERE user_id=? AND slot='weapon'",
        (str(user_id),),
    )
    return catalog.get(row["item_id"]) if row else None
