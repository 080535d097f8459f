"""
Centralized embed utility for QuestBot.
"""
from __future__ import annotations
import discord

from ..core.encounters import Boss, Participant
from ..core.tiers import tier_label
from ..core.utility import fmt, format_time_left

# Embed colors for different message types
COLORS = {
    "info": 0x3498DB,        # Blue - informational messages
    "success": 0x2ECC71,     # Green - success/confirmation
    "warning": 0xF39C12,     # Orange - warnings
    "error": 0xE74C3C,       # Red - errors
    "neutral": 0x9B59B6,     # Purple - neutral/default
    "boss": 0xC0392B,        # Dark red - boss encounters
    "reward": 0xFFD700,      # Gold - loot and coins
}


def create_embed(
    description: str,
    title: str | None = None,
    color: str | int = "neutral",
    fields: list[dict] | None = None,
    footer: str | None = None,
) -> discord.Embed:
    """
    Create a standardized QuestBot embed.

    Args:
        description: The embed description
        title: Optional embed title
        color: Color name (from COLORS) or hex int
        fields: List of field dicts with 'name', 'value', and optional 'inline'
        footer: Optional footer text
    """
    if isinstance(color, str):
        embed_color = COLORS.get(color, COLORS["neutral"])
    else:
        embed_color = color

    embed = discord.Embed(title=title, description=description, color=embed_color)

    if fields:
        for field in fields:
            embed.add_field(
                name=field.get("name", ""),
                value=field.get("value", ""),
                inline=field.get("inline", False),
            )

    if footer:
        embed.set_footer(text=footer)

    return embed


def error_embed(desc: str, title: str | None = None) -> discord.Embed:
    return create_embed(description=desc, title=title, color="error")


def hp_bar(hp: int, max_hp: int, width: int = 12) -> str:
    filled = 0 if max_hp <= 0 else round(width * hp / max_hp)
    return "█" * filled + "░" * (width - filled)


def boss_spawned_embed(boss: Boss, guild_name: str | None = None) -> discord.Embed:
    where = f" in **{guild_name}**" if guild_name else ""
    return create_embed(
        f"A **{tier_label(boss.tier)}** boss appeared{where}!\n"
        f"**{boss.name}** (Tier {boss.tier})\n"
        f"HP: **{fmt(boss.max_hp)}**\n"
        f"Vanishes <t:{boss.expires_at}:R>.",
        title="World Boss Spawned",
        color="boss",
        footer="Travel there and use /boss attack.",
    )


def boss_defeated_embed(boss: Boss, participants: list[Participant]) -> discord.Embed:
    lines = [f"{i}) <@{p.user_id}> - {fmt(p.damage)}" for i, p in enumerate(participants[:5], start=1)]
    return create_embed(
        f"**{boss.name}** (Tier {boss.tier}) has fallen!\n"
        f"{len(participants)} fighter(s) share the spoils.",
        title="World Boss Defeated",
        color="reward",
        fields=[{"name": "Top Damage", "value": "\n".join(lines) or "No data."}],
    )


def boss_status_embed(snapshot) -> discord.Embed:
    boss = snapshot.boss
    lines = [
        f"{i}) <@{d.user_id}> - {fmt(d.damage)} ({d.share:.0%})"
        for i, d in enumerate(snapshot.top_damagers, start=1)
    ]
    return create_embed(
        f"**{boss.name}** (Tier {boss.tier}, {tier_label(boss.tier)})\n"
        f"`{hp_bar(boss.hp, boss.max_hp)}` **{fmt(boss.hp)} / {fmt(boss.max_hp)}** ({snapshot.hp_percent}%)\n"
        f"Time left: **{format_time_left(snapshot.seconds_left)}**",
        title="World Boss",
        color="boss",
        fields=[
            {"name": "Fighters", "value": str(snapshot.participant_count), "inline": True},
            {"name": "Top Damage", "value": "\n".join(lines) or "No one has attacked yet.", "inline": False},
        ],
    )


def attack_embed(result) -> discord.Embed:
    boss = result.boss
    desc = f"You hit **{boss.name}** for **{fmt(result.damage_dealt)}** damage.\n"
    if result.defeated:
        desc += "**The boss is defeated!**\n"
        mine = result.rewards
        if mine:
            desc += f"Every fighter earned **{fmt(mine[0].currency)}** coins plus loot.\n"
    else:
        desc += f"Boss HP: **{fmt(result.hp_remaining)} / {fmt(boss.max_hp)}**\n"
        if result.counter_damage is not None:
            desc += f"It strikes back for **{result.counter_damage}**. Your health: **{result.health_remaining}**\n"
    return create_embed(desc, title="Attack", color="reward" if result.defeated else "boss")
