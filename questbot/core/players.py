from __future__ import annotations

from .db import Database
from .encounters import get_player


async def regen_stamina(db: Database, user_id: str, per_minute: int, cap: int, now: int) -> int | None:
    """Top up stamina for whole minutes elapsed since the last update.
    Returns the new stamina, or None for an unknown player."""
    player = await get_player(db, user_id)
    if not player:
        return None
    minutes = (now - player.stamina_updated_at) // 60
    if minutes <= 0 or per_minute <= 0:
        return player.stamina
    if player.stamina >= cap:
        # Nothing to add; keep the clock moving so a later spend doesn't regen retroactively.
        await db.execute("UPDATE players SET stamina_updated_at=? WHERE user_id=?", (now, str(user_id)))
        return player.stamina
    new_stamina = min(cap, player.stamina + minutes * per_minute)
    await db.execute(
        "UPDATE players SET stamina=?, stamina_updated_at=? WHERE user_id=?",
        (new_stamina, now, str(user_id)),
    )
    return new_stamina


async def spend_stamina(db: Database, user_id: str, cost: int, now: int) -> bool:
    """Deduct ``cost`` stamina if the player is standing and can afford it."""
    changes = await db.execute(
        """
        UPDATE players SET stamina = stamina - ?, stamina_updated_at = ?
        WHERE user_id=? AND stamina >= ? AND health > 0
        """,
        (int(cost), now, str(user_id), int(cost)),
    )
    return changes == 1


async def apply_health_damage(db: Database, user_id: str, amount: int) -> int:
    row = await db.execute_returning(
        "UPDATE players SET health = MAX(health - ?, 0) WHERE user_id=? RETURNING health",
        (int(amount), str(user_id)),
    )
    return int(row["health"]) if row else 0


async def add_inventory_item(db: Database, user_id: str, item_id: str, qty: int = 1):
    await db.execute(
        """
        INSERT INTO inventory(user_id, item_id, qty) VALUES(?,?,?)
        ON CONFLICT(user_id, item_id) DO UPDATE SET qty = qty + excluded.qty
        """,
        (str(user_id), item_id, int(qty)),
    )


async def credit_boss_kill(db: Database, user_id: str, currency: int):
    await db.execute(
        """
        INSERT INTO players(user_id, currency, boss_kills) VALUES(?,?,1)
        ON CONFLICT(user_id) DO UPDATE SET
          currency = currency + excluded.currency,
          boss_kills = boss_kills + 1
        """,
        (str(user_id), int(currency)),
    )
