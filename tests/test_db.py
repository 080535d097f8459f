from __future__ import annotations

import asyncio
import sqlite3

import pytest

from conftest import GUILD_A, NOW, World
from questbot.core.db import Database
from questbot.core.encounters import apply_boss_damage, get_boss, mark_expired
from questbot.core.errors import StorageError


def test_migrate_is_repeatable(db_path) -> None:
    async def scenario():
        db = Database(str(db_path))
        await db.connect()
        await db.migrate()
        await db.migrate()
        rows = await db.fetchall("SELECT name FROM sqlite_master WHERE type='table'")
        names = {r["name"] for r in rows}
        assert {"bosses", "boss_participants", "boss_rewards", "servers", "players", "system_settings"} <= names
        await db.close()

    asyncio.run(scenario())


def test_transaction_rolls_back_on_error(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            with pytest.raises(RuntimeError):
                async with w.db.transaction():
                    await w.db.set_setting("k", "v", NOW)
                    raise RuntimeError("boom")
            assert await w.db.get_setting("k") is None

            async with w.db.transaction():
                async with w.db.transaction():
                    await w.db.set_setting("k", "nested", NOW)
            assert await w.db.get_setting("k") == "nested"

    asyncio.run(scenario())


def test_one_active_boss_per_guild_is_enforced(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            await w.add_guild(GUILD_A)
            await w.spawn(GUILD_A)
            with pytest.raises(sqlite3.IntegrityError):
                await w.db.execute(
                    "INSERT INTO bosses(guild_id, name, hp, max_hp, started_at, expires_at) VALUES(?,?,?,?,?,?)",
                    (GUILD_A, "Dup", 10, 10, NOW, NOW + 10),
                )

    asyncio.run(scenario())


def test_hp_floors_at_zero_and_stops_when_inactive(db_path) -> None:
    async def scenario():
        async with World(db_path, ttl_seconds=60) as w:
            await w.add_guild(GUILD_A)
            boss = await w.spawn(GUILD_A)
            assert await apply_boss_damage(w.db, boss.id, 10_000, NOW) == 0
            assert (await get_boss(w.db, boss.id)).hp == 0
            # Past expiry the decrement matches nothing
            await w.db.execute("UPDATE bosses SET hp=5 WHERE id=?", (boss.id,))
            assert await apply_boss_damage(w.db, boss.id, 1, NOW + 60) is None

            assert await mark_expired(w.db, boss.id, NOW + 60)
            assert not await mark_expired(w.db, boss.id, NOW + 61)

    asyncio.run(scenario())


def test_facade_wraps_storage_failures(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            await w.db.execute("DROP TABLE bosses")
            with pytest.raises(StorageError):
                await w.service.status(GUILD_A, NOW)

    asyncio.run(scenario())


def test_status_snapshot(db_path) -> None:
    async def scenario():
        async with World(db_path, ttl_seconds=600) as w:
            await w.add_guild(GUILD_A)
            for uid in ("u1", "u2"):
                await w.add_player(uid, GUILD_A)
            assert await w.service.status(GUILD_A, NOW) is None

            await w.spawn(GUILD_A)
            await w.attack("u1", GUILD_A, 300)
            await w.attack("u2", GUILD_A, 100)

            snap = await w.service.status(GUILD_A, NOW + 100)
            assert snap.seconds_left == 500
            assert snap.participant_count == 2
            assert snap.hp_percent == round(2400 / 2800 * 100)
            assert [(d.user_id, d.share) for d in snap.top_damagers] == [("u1", 0.75), ("u2", 0.25)]

            # Overdue boss is expired on read
            assert await w.service.status(GUILD_A, NOW + 600) is None
            assert await w.service.active_bosses(NOW + 600) == []

    asyncio.run(scenario())
