"""
discord.py implementations of the boss engine's platform capabilities.
"""
from __future__ import annotations
import logging

import discord
from discord.ext import commands

from ..core.config import BossSettings
from ..core.db import Database
from ..core.encounters import Boss, Participant, get_guild
from ..core.errors import ExternalServiceError
from ..core.progress import ProgressHooks
from .embed_utils import boss_defeated_embed, boss_spawned_embed

log = logging.getLogger(__name__)


class DiscordRoleGateway:
    """Fighter role add/remove through the bot's member cache."""

    def __init__(self, bot: commands.Bot, role_id: int):
        self.bot = bot
        self.role_id = int(role_id)

    def _role(self, guild_id: str) -> tuple[discord.Guild | None, discord.Role | None]:
        guild = self.bot.get_guild(int(guild_id))
        if not guild:
            return None, None
        return guild, guild.get_role(self.role_id)

    async def _member(self, guild: discord.Guild, user_id: str) -> discord.Member | None:
        member = guild.get_member(int(user_id))
        if member:
            return member
        try:
            return await guild.fetch_member(int(user_id))
        except discord.NotFound:
            return None
        except discord.HTTPException as e:
            raise ExternalServiceError(f"member lookup failed: {e}") from e

    async def has_role(self, guild_id: str, user_id: str) -> bool | None:
        guild, role = self._role(guild_id)
        if not guild or not role:
            return None
        member = await self._member(guild, user_id)
        if not member:
            return None
        return role in member.roles

    async def add_role(self, guild_id: str, user_id: str) -> None:
        guild, role = self._role(guild_id)
        if not guild or not role:
            return
        member = await self._member(guild, user_id)
        if not member:
            return
        try:
            await member.add_roles(role, reason="Boss fight participation")
        except discord.HTTPException as e:
            raise ExternalServiceError(f"add_roles failed: {e}") from e

    async def remove_role(self, guild_id: str, user_id: str) -> None:
        guild, role = self._role(guild_id)
        if not guild or not role:
            return
        member = await self._member(guild, user_id)
        if not member:
            return
        try:
            await member.remove_roles(role, reason="No longer fighting any boss")
        except discord.HTTPException as e:
            raise ExternalServiceError(f"remove_roles failed: {e}") from e

    async def role_holders(self, guild_id: str) -> list[str]:
        guild, role = self._role(guild_id)
        if not guild or not role:
            return []
        return [str(m.id) for m in role.members]


class DiscordBossHooks(ProgressHooks):
    """ProgressHooks plus staff roles and channel notifications."""

    def __init__(self, bot: commands.Bot, db: Database, settings: BossSettings):
        super().__init__(db, settings)
        self.bot = bot

    async def is_staff(self, user_id: str) -> bool:
        if await super().is_staff(user_id):
            return True
        if not self.settings.staff_role_ids:
            return False
        for guild in self.bot.guilds:
            member = guild.get_member(int(user_id))
            if member and any(str(r.id) in self.settings.staff_role_ids for r in member.roles):
                return True
        return False

    async def _announce(self, embed: discord.Embed):
        channel_id = self.settings.notification_channel_id
        if not channel_id:
            return
        channel = self.bot.get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            log.warning("Boss notification channel %s not found", channel_id)
            return
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as e:
            raise ExternalServiceError(f"notification failed: {e}") from e

    async def boss_spawned(self, boss: Boss, requester_id: str | None):
        guild = await get_guild(self.db, boss.guild_id)
        await self._announce(boss_spawned_embed(boss, guild.name if guild else None))

    async def boss_defeated(self, boss: Boss, participants: list[Participant]):
        await self._announce(boss_defeated_embed(boss, participants))
