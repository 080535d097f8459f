"""
Encounter store: Boss / Participant records plus the guild and player rows the
boss engine reads.

Every function is a single statement (or a fixed read) against the shared
Database; callers that need several of them to be atomic wrap them in
``db.transaction()``.
"""

from __future__ import annotations
from dataclasses import dataclass

from .db import Database


@dataclass(slots=True)
class Boss:
    id: int
    guild_id: str
    name: str
    tier: int
    hp: int
    max_hp: int
    started_at: int
    expires_at: int
    active: bool
    defeated_at: int | None = None
    expired_at: int | None = None
    rewarded_at: int | None = None

    @classmethod
    def from_row(cls, row) -> "Boss":
        return cls(
            id=int(row["id"]),
            guild_id=str(row["guild_id"]),
            name=str(row["name"]),
            tier=int(row["tier"] or 1),
            hp=int(row["hp"]),
            max_hp=int(row["max_hp"]),
            started_at=int(row["started_at"]),
            expires_at=int(row["expires_at"]),
            active=bool(row["active"]),
            defeated_at=row["defeated_at"],
            expired_at=row["expired_at"],
            rewarded_at=row["rewarded_at"],
        )

    def is_expired(self, now: int) -> bool:
        return self.expires_at <= now

    def seconds_left(self, now: int) -> int:
        return max(0, self.expires_at - now)

    @property
    def hp_percent(self) -> int:
        if self.max_hp <= 0:
            return 0
        return round(self.hp / self.max_hp * 100)


@dataclass(slots=True)
class Participant:
    boss_id: int
    user_id: str
    damage: int


@dataclass(slots=True)
class GuildRecord:
    guild_id: str
    name: str
    lat: float | None
    lon: float | None
    biome: str | None
    archived: bool
    last_boss_at: int | None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None


@dataclass(slots=True)
class PlayerRecord:
    user_id: str
    health: int
    stamina: int
    stamina_updated_at: int
    location_guild_id: str | None
    travel_arrival_at: int | None
    currency: int
    gems: int
    boss_kills: int

    def is_present_at(self, guild_id: str, now: int) -> bool:
        if self.location_guild_id != str(guild_id):
            return False
        return not (self.travel_arrival_at and now < self.travel_arrival_at)


BOSS_COLUMNS = "id, guild_id, name, tier, hp, max_hp, started_at, expires_at, active, defeated_at, expired_at, rewarded_at"


# ---------------------------------------------------------
# Bosses
# ---------------------------------------------------------
async def get_boss(db: Database, boss_id: int) -> Boss | None:
    row = await db.fetchone(f"SELECT {BOSS_COLUMNS} FROM bosses WHERE id=?", (boss_id,))
    return Boss.from_row(row) if row else None


async def get_active_boss(db: Database, guild_id: str) -> Boss | None:
    row = await db.fetchone(
        f"SELECT {BOSS_COLUMNS} FROM bosses WHERE guild_id=? AND active=1 ORDER BY id DESC LIMIT 1",
        (str(guild_id),),
    )
    return Boss.from_row(row) if row else None


async def count_active_bosses(db: Database, now: int) -> int:
    row = await db.fetchone("SELECT COUNT(*) AS n FROM bosses WHERE active=1 AND expires_at > ?", (now,))
    return int(row["n"]) if row else 0


async def list_active_bosses(db: Database, now: int) -> list[Boss]:
    rows = await db.fetchall(
        f"SELECT {BOSS_COLUMNS} FROM bosses WHERE active=1 AND expires_at > ? ORDER BY expires_at",
        (now,),
    )
    return [Boss.from_row(r) for r in rows]


async def list_overdue_bosses(db: Database, now: int) -> list[Boss]:
    rows = await db.fetchall(
        f"SELECT {BOSS_COLUMNS} FROM bosses WHERE active=1 AND expires_at <= ?",
        (now,),
    )
    return [Boss.from_row(r) for r in rows]


async def list_unpaid_defeats(db: Database) -> list[Boss]:
    rows = await db.fetchall(
        f"SELECT {BOSS_COLUMNS} FROM bosses WHERE defeated_at IS NOT NULL AND rewarded_at IS NULL"
    )
    return [Boss.from_row(r) for r in rows]


async def insert_boss(db: Database, guild_id: str, name: str, tier: int, hp: int, started_at: int, expires_at: int) -> Boss:
    row = await db.execute_returning(
        f"""
        INSERT INTO bosses(guild_id, name, tier, hp, max_hp, started_at, expires_at, active)
        VALUES(?,?,?,?,?,?,?,1)
        RETURNING {BOSS_COLUMNS}
        """,
        (str(guild_id), name, int(tier), int(hp), int(hp), int(started_at), int(expires_at)),
    )
    return Boss.from_row(row)


async def apply_boss_damage(db: Database, boss_id: int, damage: int, now: int) -> int | None:
    """Atomic ``hp := max(0, hp - damage)``. Returns the new hp, or None when
    the boss is no longer active/unexpired."""
    row = await db.execute_returning(
        """
        UPDATE bosses SET hp = MAX(hp - ?, 0)
        WHERE id=? AND active=1 AND expires_at > ?
        RETURNING hp
        """,
        (int(damage), boss_id, now),
    )
    return int(row["hp"]) if row else None


async def mark_defeated(db: Database, boss_id: int, now: int) -> bool:
    changes = await db.execute(
        "UPDATE bosses SET active=0, defeated_at=? WHERE id=? AND active=1 AND hp=0",
        (now, boss_id),
    )
    return changes == 1


async def mark_expired(db: Database, boss_id: int, now: int) -> bool:
    changes = await db.execute(
        "UPDATE bosses SET active=0, expired_at=? WHERE id=? AND active=1 AND defeated_at IS NULL",
        (now, boss_id),
    )
    return changes == 1


async def mark_rewarded(db: Database, boss_id: int, now: int) -> bool:
    changes = await db.execute(
        "UPDATE bosses SET rewarded_at=? WHERE id=? AND defeated_at IS NOT NULL AND rewarded_at IS NULL",
        (now, boss_id),
    )
    return changes == 1


async def guilds_with_recent_bosses(db: Database, since: int) -> list[str]:
    rows = await db.fetchall(
        "SELECT DISTINCT guild_id FROM bosses WHERE started_at > ? OR active=1",
        (since,),
    )
    return [str(r["guild_id"]) for r in rows]


# ---------------------------------------------------------
# Participants
# ---------------------------------------------------------
async def get_participants(db: Database, boss_id: int) -> list[Participant]:
    rows = await db.fetchall(
        "SELECT boss_id, user_id, damage FROM boss_participants WHERE boss_id=? ORDER BY damage DESC",
        (boss_id,),
    )
    return [Participant(int(r["boss_id"]), str(r["user_id"]), int(r["damage"])) for r in rows]


async def add_participant_damage(db: Database, boss_id: int, user_id: str, damage: int):
    if damage <= 0:
        return
    await db.execute(
        """
        INSERT INTO boss_participants(boss_id, user_id, damage) VALUES(?,?,?)
        ON CONFLICT(boss_id, user_id) DO UPDATE SET damage = damage + excluded.damage
        """,
        (boss_id, str(user_id), int(damage)),
    )


async def delete_participants(db: Database, boss_id: int) -> int:
    return await db.execute("DELETE FROM boss_participants WHERE boss_id=?", (boss_id,))


async def active_participation_count(db: Database, user_id: str, now: int) -> int:
    """Number of active, unexpired bosses (any guild) the user has damaged."""
    row = await db.fetchone(
        """
        SELECT COUNT(*) AS n
        FROM boss_participants bp
        JOIN bosses b ON bp.boss_id = b.id
        WHERE bp.user_id=? AND b.active=1 AND b.expires_at > ?
        """,
        (str(user_id), now),
    )
    return int(row["n"]) if row else 0


async def purge_orphaned_participants(db: Database) -> int:
    """Drop participant rows whose boss is gone, or ended without a pending payout."""
    return await db.execute(
        """
        DELETE FROM boss_participants
        WHERE boss_id IN (
          SELECT bp.boss_id FROM boss_participants bp
          LEFT JOIN bosses b ON bp.boss_id = b.id
          WHERE b.id IS NULL
             OR (b.active = 0 AND (b.defeated_at IS NULL OR b.rewarded_at IS NOT NULL))
        )
        """
    )


# ---------------------------------------------------------
# Guilds / players
# ---------------------------------------------------------
def _guild_from_row(row) -> GuildRecord:
    return GuildRecord(
        guild_id=str(row["guild_id"]),
        name=str(row["name"] or ""),
        lat=row["lat"],
        lon=row["lon"],
        biome=row["biome"],
        archived=bool(row["archived"]),
        last_boss_at=row["last_boss_at"],
    )


async def get_guild(db: Database, guild_id: str) -> GuildRecord | None:
    row = await db.fetchone(
        "SELECT guild_id, name, lat, lon, biome, archived, last_boss_at FROM servers WHERE guild_id=? AND archived=0",
        (str(guild_id),),
    )
    return _guild_from_row(row) if row else None


async def list_spawn_candidates(db: Database, home_guild_id: str | None) -> list[GuildRecord]:
    rows = await db.fetchall(
        """
        SELECT guild_id, name, lat, lon, biome, archived, last_boss_at
        FROM servers
        WHERE archived=0 AND lat IS NOT NULL AND lon IS NOT NULL AND guild_id != ?
        """,
        (home_guild_id or "",),
    )
    return [_guild_from_row(r) for r in rows]


async def set_last_boss_at(db: Database, guild_id: str, ts: int):
    await db.execute("UPDATE servers SET last_boss_at=? WHERE guild_id=?", (ts, str(guild_id)))


async def get_player(db: Database, user_id: str) -> PlayerRecord | None:
    row = await db.fetchone(
        """
        SELECT user_id, health, stamina, stamina_updated_at, location_guild_id,
               travel_arrival_at, currency, gems, boss_kills
        FROM players WHERE user_id=?
        """,
        (str(user_id),),
    )
    if not row:
        return None
    return PlayerRecord(
        user_id=str(row["user_id"]),
        health=int(row["health"]),
        stamina=int(row["stamina"]),
        stamina_updated_at=int(row["stamina_updated_at"] or 0),
        location_guild_id=str(row["location_guild_id"]) if row["location_guild_id"] is not None else None,
        travel_arrival_at=row["travel_arrival_at"],
        currency=int(row["currency"]),
        gems=int(row["gems"]),
        boss_kills=int(row["boss_kills"]),
    )
