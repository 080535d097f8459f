"""
Boss Scheduler

Single heartbeat for:
- finishing interrupted payouts
- expiring overdue bosses
- the periodic spawn cycle
- the fighter role orphan sweep
"""

from __future__ import annotations
import logging

from discord.ext import commands, tasks

from ..core.errors import BossError

log = logging.getLogger(__name__)


class BossSchedulerCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.boss_tick.change_interval(seconds=bot.bosses.settings.tick_seconds)
        self.boss_tick.start()

    def cog_unload(self):
        self.boss_tick.cancel()

    @tasks.loop(seconds=60)
    async def boss_tick(self):
        try:
            report = await self.bot.bosses.tick()
        except BossError as e:
            log.error("boss_scheduler: tick failed: %s", e.message)
            return
        except Exception:
            log.exception("boss_scheduler: unexpected error in tick")
            return
        if report and report.spawned:
            log.info("boss_scheduler: spawned boss ids %s", report.spawned)

    @boss_tick.before_loop
    async def before_boss_tick(self):
        await self.bot.wait_until_ready()
        next_at = await self.bot.bosses.scheduler.ensure_next_spawn()
        log.info("boss_scheduler: next spawn cycle at %s", next_at)


async def setup(bot: commands.Bot):
    await bot.add_cog(BossSchedulerCog(bot))
