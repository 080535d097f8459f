"""
Boss Group Commands

/boss group with subcommands:
  /boss status
  /boss attack
  /boss spawn [serverid]

plus the admin /cleanup-boss-roles.
"""

from __future__ import annotations
import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..core.errors import BossError, StorageError
from ..utils.embed_utils import attack_embed, boss_spawned_embed, boss_status_embed, create_embed, error_embed

log = logging.getLogger(__name__)


class BossGroup(commands.Cog):
    boss = app_commands.Group(name="boss", description="World boss commands")

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def service(self):
        return self.bot.bosses

    async def _reply_error(self, interaction: discord.Interaction, err: BossError):
        if isinstance(err, StorageError):
            log.warning("boss command %s failed on storage", interaction.command.qualified_name if interaction.command else "?")
        await interaction.followup.send(embed=error_embed(err.message, title="Boss"), ephemeral=True)

    # ---------- /boss status ----------
    @boss.command(name="status", description="Show the boss in this server.")
    async def status(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        if not interaction.guild_id:
            return await interaction.followup.send("Server only.", ephemeral=True)
        try:
            snapshot = await self.service.status(str(interaction.guild_id))
        except BossError as e:
            return await self._reply_error(interaction, e)
        if not snapshot:
            return await interaction.followup.send(
                embed=create_embed("No active boss here.", title="World Boss"), ephemeral=True
            )
        await interaction.followup.send(embed=boss_status_embed(snapshot), ephemeral=True)

    # ---------- /boss attack ----------
    @boss.command(name="attack", description="Attack the boss in this server.")
    async def attack(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        if not interaction.guild_id:
            return await interaction.followup.send("Server only.", ephemeral=True)
        try:
            result = await self.service.attack(str(interaction.user.id), str(interaction.guild_id))
        except BossError as e:
            return await self._reply_error(interaction, e)
        await interaction.followup.send(embed=attack_embed(result), ephemeral=True)

    # ---------- /boss spawn ----------
    @boss.command(name="spawn", description="Spawn a boss (staff only).")
    @app_commands.describe(serverid="Target server ID (defaults to your current location)")
    async def spawn(self, interaction: discord.Interaction, serverid: str | None = None):
        await interaction.response.defer(ephemeral=True)
        try:
            boss = await self.service.spawn(str(interaction.user.id), serverid.strip() if serverid else None)
        except BossError as e:
            return await self._reply_error(interaction, e)
        await interaction.followup.send(embed=boss_spawned_embed(boss), ephemeral=True)

    # ---------- /cleanup-boss-roles ----------
    @app_commands.command(name="cleanup-boss-roles", description="Remove stale boss fighter roles (staff only).")
    async def cleanup_boss_roles(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        if not await self.service.hooks.is_staff(str(interaction.user.id)):
            return await interaction.followup.send(embed=error_embed("Staff/Developer only."), ephemeral=True)
        try:
            purged, removed = await self.service.cleanup_roles()
        except BossError as e:
            return await self._reply_error(interaction, e)
        await interaction.followup.send(
            embed=create_embed(
                f"Purged **{purged}** orphaned participation records.\nRemoved **{removed}** stale fighter roles.",
                title="Boss Role Cleanup",
                color="success",
            ),
            ephemeral=True,
        )


async def setup(bot: commands.Bot):
    await bot.add_cog(BossGroup(bot))
