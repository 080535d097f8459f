from __future__ import annotations

import asyncio

from conftest import GUILD_A, GUILD_B, NOW, World


def test_fighter_keeps_role_until_every_fight_ends(db_path) -> None:
    async def scenario():
        async with World(db_path, ttl_seconds=600) as w:
            await w.add_guild(GUILD_A)
            await w.add_guild(GUILD_B)
            await w.add_player("u1", GUILD_A)
            await w.add_player("helper", GUILD_B)
            await w.spawn(GUILD_A)
            boss_b = await w.spawn(GUILD_B, now=NOW + 100)

            await w.attack("u1", GUILD_A, 100)
            await w.db.execute("UPDATE players SET location_guild_id=? WHERE user_id='u1'", (GUILD_B,))
            await w.attack("u1", GUILD_B, 100, now=NOW + 120)
            assert w.gateway.holders(GUILD_A) == {"u1"}
            assert w.gateway.holders(GUILD_B) == {"u1"}

            # Boss A expires; u1 is still fighting in B so both roles stay
            await w.service.cleanup_expired_bosses(NOW + 600)
            assert w.gateway.holders(GUILD_A) == {"u1"}
            assert w.gateway.holders(GUILD_B) == {"u1"}

            # Boss B falls; release plus the sweep clear both guilds
            await w.attack("helper", GUILD_B, boss_b.max_hp, counter=None, now=NOW + 650)
            assert w.gateway.holders(GUILD_A) == set()
            assert w.gateway.holders(GUILD_B) == set()

    asyncio.run(scenario())


def test_release_is_idempotent_and_reports_removal(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            w.gateway.holders(GUILD_A).add("u1")
            assert await w.service.roles.release("u1", GUILD_A, NOW)
            assert not await w.service.roles.release("u1", GUILD_A, NOW)
            assert w.gateway.calls.count(("remove", GUILD_A, "u1")) == 1

    asyncio.run(scenario())


def test_sweep_removes_stale_holders_in_recent_guilds(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            await w.add_guild(GUILD_A)
            await w.add_player("u1", GUILD_A)
            await w.spawn(GUILD_A)
            await w.attack("u1", GUILD_A, 100)
            w.gateway.holders(GUILD_A).update({"stale", "ghost"})
            # Guild with no recent boss is left alone
            w.gateway.holders(GUILD_B).add("untouched")

            purged, removed = await w.service.cleanup_roles(NOW)
            assert removed == 2
            assert w.gateway.holders(GUILD_A) == {"u1"}
            assert w.gateway.holders(GUILD_B) == {"untouched"}

    asyncio.run(scenario())


def test_assign_is_a_noop_for_existing_holder(db_path) -> None:
    async def scenario():
        async with World(db_path) as w:
            w.gateway.holders(GUILD_A).add("u1")
            await w.service.roles.assign("u1", GUILD_A)
            assert ("add", GUILD_A, "u1") not in w.gateway.calls

    asyncio.run(scenario())
