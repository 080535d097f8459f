from __future__ import annotations

import asyncio

from conftest import GUILD_A, GUILD_B, HOME_GUILD, NOW, World
from questbot.core.encounters import add_participant_damage, count_active_bosses, get_boss, mark_defeated
from questbot.core.scheduler import LAST_SWEEP_KEY, NEXT_SPAWN_KEY


def test_first_tick_only_schedules(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            await w.add_guild(GUILD_A)
            report = await w.service.tick(NOW)
            assert report is None
            assert await w.db.get_setting(NEXT_SPAWN_KEY) == str(NOW + 600)
            assert await count_active_bosses(w.db, NOW) == 0

    asyncio.run(scenario())


def test_due_cycle_spawns_and_reschedules(db_path) -> None:
    async def scenario():
        async with World(db_path, max_spawns_per_cycle=1) as w:
            await w.add_guild(GUILD_A)
            await w.add_guild(GUILD_B)
            await w.add_guild(HOME_GUILD)
            await w.db.set_setting(NEXT_SPAWN_KEY, NOW - 5, NOW)

            report = await w.service.tick(NOW)
            assert report.ran
            assert len(report.spawned) == 1
            assert await count_active_bosses(w.db, NOW) == 1
            assert await w.db.get_setting(NEXT_SPAWN_KEY) == str(NOW + 600)

            # Not due again until the new time
            assert await w.service.tick(NOW + 599) is None
            report = await w.service.tick(NOW + 600)
            assert len(report.spawned) == 1
            assert await count_active_bosses(w.db, NOW + 600) == 2

    asyncio.run(scenario())


def test_next_spawn_survives_restart(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            await w.service.tick(NOW)
        async with World(db_path, spawn_interval_min=10, spawn_interval_max=10) as restarted:
            assert await restarted.service.scheduler.ensure_next_spawn(NOW + 1) == NOW + 600
            assert await restarted.service.tick(NOW + 300) is None

    asyncio.run(scenario())


def test_cycle_waits_out_defeat_cooldown(db_path) -> None:
    async def scenario():
        async with World(db_path, defeat_cooldown_seconds=300) as w:
            await w.add_guild(GUILD_A)
            await w.db.set_setting("last_boss_defeat", NOW - 100, NOW)
            report = await w.service.scheduler.run_cycle(NOW)
            assert not report.ran
            assert "cooldown" in report.reason

            report = await w.service.scheduler.run_cycle(NOW + 200)
            assert report.ran
            assert len(report.spawned) == 1

    asyncio.run(scenario())


def test_cycle_stops_at_capacity(db_path) -> None:
    async def scenario():
        async with World(db_path, global_cap=1, max_spawns_per_cycle=5) as w:
            await w.add_guild(GUILD_A)
            await w.add_guild(GUILD_B)
            report = await w.service.scheduler.run_cycle(NOW)
            assert len(report.spawned) == 1
            assert "limit" in report.reason

    asyncio.run(scenario())


def test_zero_spawn_chance_skips_everyone(db_path) -> None:
    async def scenario():
        async with World(db_path, spawn_chance=0.0) as w:
            await w.add_guild(GUILD_A)
            report = await w.service.scheduler.run_cycle(NOW)
            assert report.spawned == []
            assert report.skipped == 1

    asyncio.run(scenario())


def test_tick_expires_overdue_and_resumes_payouts(db_path) -> None:
    async def scenario():
        async with World(db_path, ttl_seconds=60) as w:
            await w.add_guild(GUILD_A)
            await w.add_guild(GUILD_B)
            overdue = await w.spawn(GUILD_A)
            unpaid = await w.spawn(GUILD_B)
            await w.db.execute("UPDATE bosses SET hp=0 WHERE id=?", (unpaid.id,))
            await add_participant_damage(w.db, unpaid.id, "u1", 50)
            await mark_defeated(w.db, unpaid.id, NOW + 10)

            await w.service.tick(NOW + 60)
            assert (await get_boss(w.db, overdue.id)).expired_at == NOW + 60
            assert (await get_boss(w.db, unpaid.id)).rewarded_at == NOW + 60
            assert await w.db.get_setting(LAST_SWEEP_KEY) == str(NOW + 60)

            # Double expiry is a no-op
            assert await w.service.cleanup_expired_bosses(NOW + 120) == 0
            assert (await get_boss(w.db, overdue.id)).expired_at == NOW + 60

    asyncio.run(scenario())
