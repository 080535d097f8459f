from __future__ import annotations

import pytest

from questbot.core.config import BossSettings, Config
from questbot.core.eligibility import hash_bucket, is_guild_eligible
from questbot.core.errors import ConfigError


def test_hash_bucket_reads_trailing_digits_as_hex() -> None:
    # 0x0000000f == 15
    assert hash_bucket("12340000000f", 8, 3) == 0
    # 0x00000010 == 16
    assert hash_bucket("123400000010", 8, 3) == 1


@pytest.mark.parametrize("guild_id", ["1234567", "", "abc"])
def test_hash_bucket_rejects_short_ids(guild_id: str) -> None:
    assert hash_bucket(guild_id, 8, 3) is None


def test_hash_bucket_rejects_non_hex() -> None:
    assert hash_bucket("guild-zzzzzzzz", 8, 3) is None


def test_hash_mode_admits_only_bucket_zero() -> None:
    settings = BossSettings(eligibility_mode="hash", eligibility_divisor=3)
    assert is_guild_eligible("100000000000000000", settings)
    assert is_guild_eligible("100000000000000003", settings)
    assert not is_guild_eligible("100000000000000001", settings)
    assert not is_guild_eligible("100000000000000002", settings)
    assert not is_guild_eligible("42", settings)


def test_divisor_one_admits_every_valid_id() -> None:
    settings = BossSettings(eligibility_mode="hash", eligibility_divisor=1)
    assert is_guild_eligible("100000000000000001", settings)


def test_all_except_home_mode() -> None:
    settings = BossSettings(eligibility_mode="all_except_home", home_guild_id="555")
    assert is_guild_eligible("100000000000000001", settings)
    assert is_guild_eligible("42", settings)
    assert not is_guild_eligible("555", settings)


def test_unknown_mode_is_a_config_error() -> None:
    cfg = Config({"boss": {"eligibility": {"mode": "random"}}})
    with pytest.raises(ConfigError):
        BossSettings.from_config(cfg)
