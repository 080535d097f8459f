from __future__ import annotations

from pathlib import Path

import pytest

from questbot.core.config import DEFAULT_TIER_WEIGHTS, BossSettings, Config
from questbot.core.errors import ConfigError
from questbot.core.items import ItemCatalog


def test_empty_config_uses_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SPAWN_GUILD_ID", raising=False)
    s = BossSettings.from_config(Config({}))
    assert s.base_hp == 2000
    assert s.tier_growth == pytest.approx(0.2)
    assert s.tier_weights == DEFAULT_TIER_WEIGHTS
    assert s.global_cap == 10
    assert (s.counter_min, s.counter_max) == (5, 30)
    assert (s.loot_rolls_min, s.loot_rolls_max) == (3, 5)
    assert s.eligibility_mode == "hash"
    assert s.defeat_cooldown_seconds == 300
    assert s.home_guild_id is None
    assert s.stamina_cap == 100


def test_swapped_ranges_are_normalised() -> None:
    cfg = Config({"boss": {"counter_damage": {"min": 30, "max": 5}, "spawn_interval": {"min": 7200, "max": 3600}}})
    s = BossSettings.from_config(cfg)
    assert (s.counter_min, s.counter_max) == (5, 30)
    assert (s.spawn_interval_min, s.spawn_interval_max) == (3600, 7200)


def test_home_guild_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPAWN_GUILD_ID", "4242")
    assert BossSettings.from_config(Config({})).home_guild_id == "4242"
    cfg = Config({"boss": {"home_guild_id": 77}})
    assert BossSettings.from_config(cfg).home_guild_id == "77"


@pytest.mark.parametrize(
    "boss",
    [
        {"max_tier": 0},
        {"eligibility": {"divisor": 0}},
        {"spawn_chance": 1.5},
    ],
)
def test_invalid_values_raise(boss: dict) -> None:
    with pytest.raises(ConfigError):
        BossSettings.from_config(Config({"boss": boss}))


def test_example_config_loads() -> None:
    path = Path(__file__).resolve().parents[1] / "config.example.yml"
    cfg = Config.load(str(path))
    s = BossSettings.from_config(cfg)
    catalog = ItemCatalog.from_config(cfg)
    assert s.eligibility_mode == "hash"
    assert catalog.get("starforged_blade").premium_needed
    assert not catalog.is_tradable(catalog.get("founders_badge"))
    assert catalog.weights_for_tier(9) == catalog.weights_for_tier(1)
