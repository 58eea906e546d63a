"""Tests for config.py."""
from __future__ import annotations

from pathlib import Path

import pytest

from conquest_odds.config import (
    DEFAULT_MAX_ATTACKER_ARMIES,
    DEFAULT_MAX_DEFENDER_ARMIES,
    HEADER_SIZE,
    MAX_TABLE_CELLS,
    EngineConfig,
    data_dir,
    table_file_path,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("CONQUEST_TABLE_PATH", "CONQUEST_MAX_ATTACKER", "CONQUEST_MAX_DEFENDER",
                 "CONQUEST_WORKERS", "CONQUEST_MAX_TABLE_CELLS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_data_dir():
    assert data_dir(".") == Path("./data")


def test_table_file_path():
    assert table_file_path("/srv/game") == Path("/srv/game/data/conquest_probabilities.bin")


def test_header_size():
    assert HEADER_SIZE == 16


def test_defaults(clean_env):
    config = EngineConfig.from_env("/srv/game")
    assert config.table_path == Path("/srv/game/data/conquest_probabilities.bin")
    assert config.max_attacker_armies == DEFAULT_MAX_ATTACKER_ARMIES == 100
    assert config.max_defender_armies == DEFAULT_MAX_DEFENDER_ARMIES == 100
    assert config.workers >= 1
    assert config.max_table_cells == MAX_TABLE_CELLS


def test_env_overrides(clean_env, tmp_path):
    clean_env.setenv("CONQUEST_TABLE_PATH", str(tmp_path / "x.bin"))
    clean_env.setenv("CONQUEST_MAX_ATTACKER", "250")
    clean_env.setenv("CONQUEST_MAX_DEFENDER", "40")
    clean_env.setenv("CONQUEST_WORKERS", "3")
    config = EngineConfig.from_env()
    assert config.table_path == tmp_path / "x.bin"
    assert (config.max_attacker_armies, config.max_defender_armies) == (250, 40)
    assert config.workers == 3


def test_bad_integer(clean_env):
    clean_env.setenv("CONQUEST_WORKERS", "many")
    with pytest.raises(ValueError, match="CONQUEST_WORKERS"):
        EngineConfig.from_env()
