from __future__ import annotations

import asyncio

import pytest

from conftest import NOW, make_settings
from questbot.core.db import Database
from questbot.core.encounters import Boss
from questbot.core.progress import ProgressHooks, participation_gems


@pytest.mark.parametrize(
    "damage,max_hp,expected",
    [
        (0, 2000, 0),
        (20, 2000, 6),    # 10% of the full-contribution share
        (100, 2000, 10),  # half
        (200, 2000, 15),  # full
        (5000, 2000, 15),
    ],
)
def test_participation_gems(damage: int, max_hp: int, expected: int) -> None:
    assert participation_gems(damage, max_hp) == expected


def test_progress_hooks_write_through(db_path) -> None:
    async def scenario():
        db = Database(str(db_path))
        await db.connect()
        await db.migrate()
        hooks = ProgressHooks(db, make_settings(staff_user_ids=frozenset({"admin"})))
        boss = Boss(7, "g", "Frost Giant", 1, 2000, 2000, NOW, NOW + 60, True)

        assert await hooks.is_staff("admin")
        assert not await hooks.is_staff("pleb")
        await db.execute("INSERT INTO premium_users(user_id) VALUES('vip')")
        assert await hooks.is_premium("vip")
        assert not await hooks.is_premium("pleb")

        await hooks.record_attack("u1", boss, 120, None, NOW)
        row = await db.fetchone("SELECT boss_id, damage, weapon FROM battle_analytics WHERE user_id='u1'")
        assert (row["boss_id"], row["damage"], row["weapon"]) == (7, 120, "none")

        await hooks.challenge_progress("u1", "boss_damage", 120)
        await hooks.challenge_progress("u1", "boss_damage", 30)
        row = await db.fetchone("SELECT progress FROM player_challenges WHERE user_id='u1' AND kind='boss_damage'")
        assert row["progress"] == 150

        assert await hooks.award_participation_gems("u1", 200, 2000, NOW) == 15
        row = await db.fetchone("SELECT gems FROM players WHERE user_id='u1'")
        assert row["gems"] == 15
        ledger = await db.fetchall("SELECT amount, reason FROM gem_ledger WHERE user_id='u1'")
        assert [(r["amount"], r["reason"]) for r in ledger] == [(15, "boss_participation")]

        await db.execute("UPDATE players SET boss_kills=10 WHERE user_id='u1'")
        assert await hooks.check_achievements("u1", NOW) == ["boss_slayer_1", "boss_slayer_10"]
        assert await hooks.check_achievements("u1", NOW + 1) == []

        await db.close()

    asyncio.run(scenario())
