from __future__ import annotations

import asyncio
import logging
import os
import sys

import discord
from discord import app_commands
from discord.ext import commands

from .core.bosses import BossService
from .core.config import BossSettings, Config
from .core.db import Database
from .core.errors import ConfigError
from .core.items import ItemCatalog
from .core.roles import NullRoleGateway
from .utils.discord_gateway import DiscordBossHooks, DiscordRoleGateway

log = logging.getLogger("questbot")

BOT_DIR = os.path.dirname(os.path.abspath(__file__))

COGS = [
    "questbot.cogs.boss",            # /boss status|attack|spawn, /cleanup-boss-roles
    "questbot.cogs.boss_scheduler",  # spawn cycle, expiry sweep, role sweep
]


class QuestBot(commands.Bot):
    def __init__(self, cfg: Config, db: Database, settings: BossSettings, catalog: ItemCatalog):
        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix=commands.when_mentioned_or("!"),
            intents=intents,
        )
        self.cfg = cfg
        self.db = db

        gateway = DiscordRoleGateway(self, settings.fighter_role_id) if settings.fighter_role_id else NullRoleGateway()
        self.bosses = BossService(
            db,
            settings,
            catalog=catalog,
            hooks=DiscordBossHooks(self, db, settings),
            gateway=gateway,
        )
        self._commands_synced = False

    async def setup_hook(self):
        """Connect the database and load cogs."""
        await self.db.connect()
        await self.db.migrate()
        log.info("Database ready at %s", self.db.path)

        loaded, failed = 0, 0
        for ext in COGS:
            try:
                await self.load_extension(ext)
                loaded += 1
                log.info("Loaded: %s", ext)
            except commands.ExtensionError:
                failed += 1
                log.exception("Failed to load %s", ext)
        log.info("Extensions: %s loaded, %s failed", loaded, failed)

    async def _sync_commands(self):
        guild_ids = [str(g).strip() for g in (self.cfg.get("guilds", default=[]) or []) if str(g).strip()]
        if not guild_ids:
            synced = await self.tree.sync()
            log.info("Synced %s global commands", len(synced))
            return
        for gid in guild_ids:
            try:
                guild_obj = discord.Object(id=int(gid))
                self.tree.copy_global_to(guild=guild_obj)
                synced = await self.tree.sync(guild=guild_obj)
                log.info("Synced %s commands to guild %s", len(synced), gid)
            except ValueError:
                log.error("Invalid guild ID format %r in config", gid)
            except discord.HTTPException as e:
                log.error("Command sync failed for guild %s: HTTP %s %s", gid, e.status, e)

    async def on_ready(self):
        log.info("Bot is ready! Logged in as %s (ID: %s), %s guild(s)", self.user, self.user.id, len(self.guilds))
        if not self._commands_synced:
            await self._sync_commands()
            self._commands_synced = True

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Global error handler for app commands."""
        if isinstance(error, app_commands.CommandOnCooldown):
            message = f"This command is on cooldown. Try again in {error.retry_after:.1f} seconds."
        elif isinstance(error, app_commands.MissingPermissions):
            message = "You don't have permission to use this command."
        else:
            log.error("Unhandled command error", exc_info=error)
            message = "An error occurred while executing this command."
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    async def close(self):
        await super().close()
        await self.db.close()


def _configure_logging(cfg: Config):
    level = str(cfg.get("logging", "level", default="INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


async def main():
    config_path = os.getenv("QUESTBOT_CONFIG", os.path.join(BOT_DIR, "config.yml"))
    if not os.path.exists(config_path):
        print(f"ERROR: config.yml not found at {config_path}", file=sys.stderr)
        sys.exit(1)

    cfg = Config.load(config_path)
    _configure_logging(cfg)

    token = os.getenv("DISCORD_BOT_TOKEN") or cfg.get("token")
    if not token or token == "PUT_YOUR_BOT_TOKEN_HERE":
        log.error("Bot token not configured. Set DISCORD_BOT_TOKEN or token in config.yml")
        sys.exit(1)

    try:
        settings = BossSettings.from_config(cfg)
    except ConfigError as e:
        log.error("Invalid configuration: %s", e.message)
        sys.exit(1)
    catalog = ItemCatalog.from_config(cfg)

    db_path = os.getenv("QUESTBOT_DB_PATH", os.path.join(BOT_DIR, "questbot.sqlite3"))
    db = Database(db_path)
    bot = QuestBot(cfg, db, settings, catalog)

    try:
        async with bot:
            await bot.start(token)
    except discord.LoginFailure as e:
        log.error("Discord Login Failure: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
