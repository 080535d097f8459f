"""
Boss engine error taxonomy.

ValidationError  - a precondition failed; the player may retry later.
CapacityError    - a soft fleet limit was hit; retry later.
ExternalServiceError - role mutation / notification / oracle failures. Always
                   caught by best_effort, never part of a core result.
StorageError     - fatal to the single operation.
"""

from __future__ import annotations


class BossError(Exception):
    """Base class. ``message`` is safe to show to the player."""

    message = "Something went wrong with the boss fight."

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


class ConfigError(BossError):
    message = "Invalid boss configuration."


class ValidationError(BossError):
    pass


class CapacityError(BossError):
    pass


class ExternalServiceError(BossError):
    message = "An external service failed."


class StorageError(BossError):
    message = "The boss database is unavailable right now. Try again shortly."


# Attack rejections
class NoBoss(ValidationError):
    message = "No active boss here."


class NotPresent(ValidationError):
    message = "You must be visiting this server (arrived) to attack."


class Expired(ValidationError):
    message = "The boss has vanished."


class Downed(ValidationError):
    message = "You are downed (0 health). Use healing items to recover before attacking again."


class Exhausted(ValidationError):
    message = "You are too exhausted to attack."


# Spawn rejections
class Unauthorized(ValidationError):
    message = "Staff/Developer only."


class NoCoordinates(ValidationError):
    message = "Target server has no coordinates yet."


class ForbiddenGuild(ValidationError):
    message = "Bosses cannot spawn in the home server."


class NotEligible(ValidationError):
    message = "Target server is not eligible to host a boss."


class OnCooldown(ValidationError):
    message = "Target server is on boss cooldown."


class BossAlreadyActive(ValidationError):
    message = "Target server already has an active boss."


class CapacityExceeded(CapacityError):
    message = "Global boss limit reached. Wait for some to be defeated or expire."
