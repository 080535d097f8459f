"""
Side-effect capabilities handed to the boss engine.

The combat resolver, reward distributor and spawn governor never reach into
other subsystems directly; they call a BossHooks instance. Every call site
goes through ``best_effort`` so a failing hook is logged and the fight goes on.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

if TYPE_CHECKING:
    from .encounters import Boss, Participant

log = logging.getLogger(__name__)

T = TypeVar("T")


async def best_effort(label: str, fn: Callable[..., Awaitable[T]], *args, default: T | None = None, **kwargs) -> T | None:
    """Await ``fn(*args, **kwargs)``; log and return ``default`` on any error."""
    try:
        return await fn(*args, **kwargs)
    except Exception as e:
        log.warning("%s failed: %s", label, e, exc_info=log.isEnabledFor(logging.DEBUG))
        return default


class BossHooks:
    """No-op capability set. Subclass and override what the deployment has."""

    async def is_staff(self, user_id: str) -> bool:
        return False

    async def is_premium(self, user_id: str) -> bool:
        return False

    async def record_attack(self, user_id: str, boss: "Boss", damage: int, weapon_id: str | None, ts: int):
        pass

    async def challenge_progress(self, user_id: str, kind: str, amount: int):
        pass

    async def award_participation_gems(self, user_id: str, damage: int, boss_max_hp: int, ts: int) -> int:
        return 0

    async def check_achievements(self, user_id: str, ts: int):
        pass

    async def boss_spawned(self, boss: "Boss", requester_id: str | None):
        pass

    async def boss_defeated(self, boss: "Boss", participants: list["Participant"]):
        pass
