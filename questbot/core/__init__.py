# Core package - centralized exports
# - config.py: Config, BossSettings
# - db.py: Database class and schema
# - bosses.py: BossService facade (spawn, attack, status, cleanup)
# - errors.py: BossError hierarchy
# - hooks.py / progress.py: side-effect capabilities

# Configuration
from .config import Config, BossSettings

# Database
from .db import Database

# Errors
from .errors import (
    BossError, ConfigError, ValidationError, CapacityError, ExternalServiceError, StorageError,
    NoBoss, NotPresent, Expired, Downed, Exhausted,
    Unauthorized, NoCoordinates, ForbiddenGuild, NotEligible, OnCooldown, BossAlreadyActive,
    CapacityExceeded,
)

# Boss engine
from .encounters import Boss, Participant
from .combat import AttackResult
from .rewards import ParticipantReward
from .bosses import BossService, BossSnapshot
from .hooks import BossHooks
from .progress import ProgressHooks
from .roles import RoleGateway, NullRoleGateway
from .items import Item, ItemCatalog

# Utility
from .utility import now_ts, fmt

__all__ = [
    "Config", "BossSettings", "Database",
    "BossError", "ConfigError", "ValidationError", "CapacityError", "ExternalServiceError", "StorageError",
    "NoBoss", "NotPresent", "Expired", "Downed", "Exhausted",
    "Unauthorized", "NoCoordinates", "ForbiddenGuild", "NotEligible", "OnCooldown", "BossAlreadyActive",
    "CapacityExceeded",
    "Boss", "Participant", "AttackResult", "ParticipantReward", "BossService", "BossSnapshot",
    "BossHooks", "ProgressHooks", "RoleGateway", "NullRoleGateway", "Item", "ItemCatalog",
    "now_ts", "fmt",
]
