"""
Which guilds may host a boss.

Two policies, picked by ``boss.eligibility.mode``:
  hash            - trailing id digits read as hex, mod divisor == 0.
                    Spreads spawns over roughly 1/divisor of the fleet.
  all_except_home - every guild except the home guild.
"""

from __future__ import annotations
import logging

from .config import BossSettings

log = logging.getLogger(__name__)


def hash_bucket(guild_id: str, digits: int, divisor: int) -> int | None:
    """Trailing ``digits`` characters of the id as base 16, mod divisor.
    Returns None for ids that are too short or not hex."""
    gid = str(guild_id).strip()
    if len(gid) < digits:
        return None
    try:
        value = int(gid[-digits:], 16)
    except ValueError:
        return None
    return value % divisor


def is_guild_eligible(guild_id: str, settings: BossSettings) -> bool:
    gid = str(guild_id).strip()
    if settings.eligibility_mode == "all_except_home":
        return bool(gid) and gid != (settings.home_guild_id or "")

    bucket = hash_bucket(gid, settings.eligibility_digits, settings.eligibility_divisor)
    if bucket is None:
        log.debug("Guild id %r too short or not hex, treating as ineligible", gid)
        return False
    return bucket == 0
