"""Single source of truth for table paths, binary format and precomputation defaults."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# ── Binary format constants (conquest_probabilities.bin) ───────────────────
TABLE_FILE_MAGIC = 0x51434E43  # "CNCQ"
TABLE_FILE_VERSION = 1
HEADER_SIZE = 16  # bytes: magic, version, max attacker, max defender (u32 each)
VALUE_SIZE = 8  # float64 per cell

# ── Precomputation defaults ────────────────────────────────────────────────
DEFAULT_MAX_ATTACKER_ARMIES = 100
DEFAULT_MAX_DEFENDER_ARMIES = 100
# 25M cells of float64 is 200 MB.
MAX_TABLE_CELLS = 25_000_000
# Diagonals shorter than this are computed on the calling thread.
MIN_PARALLEL_CELLS = 256

TABLE_FILENAME = "conquest_probabilities.bin"

# ── Environment variables ──────────────────────────────────────────────────
ENV_TABLE_PATH = "CONQUEST_TABLE_PATH"
ENV_MAX_ATTACKER = "CONQUEST_MAX_ATTACKER"
ENV_MAX_DEFENDER = "CONQUEST_MAX_DEFENDER"
ENV_WORKERS = "CONQUEST_WORKERS"
ENV_MAX_CELLS = "CONQUEST_MAX_TABLE_CELLS"
ENV_LOG_LEVEL = "CONQUEST_LOG_LEVEL"


def data_dir(base_path: str = ".") -> Path:
    return Path(base_path) / "data"


def table_file_path(base_path: str = ".") -> Path:
    """Default location of the persisted conquest table."""
    return data_dir(base_path) / TABLE_FILENAME


def default_workers() -> int:
    return os.cpu_count() or 1


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class EngineConfig:
    """Startup configuration, read once by the composition root."""
    table_path: Path
    max_attacker_armies: int = DEFAULT_MAX_ATTACKER_ARMIES
    max_defender_armies: int = DEFAULT_MAX_DEFENDER_ARMIES
    workers: int = 1
    max_table_cells: int = MAX_TABLE_CELLS

    @classmethod
    def from_env(cls, base_path: str = ".") -> EngineConfig:
        """Build a config from CONQUEST_* environment variables, falling back to defaults.

        Args:
            base_path: Repository root used to resolve the default table path.

        Returns:
            EngineConfig with every field populated.
        """
        raw_path = os.environ.get(ENV_TABLE_PATH)
        table_path = Path(raw_path) if raw_path else table_file_path(base_path)
        return cls(
            table_path=table_path,
            max_attacker_armies=_env_int(ENV_MAX_ATTACKER, DEFAULT_MAX_ATTACKER_ARMIES),
            max_defender_armies=_env_int(ENV_MAX_DEFENDER, DEFAULT_MAX_DEFENDER_ARMIES),
            workers=_env_int(ENV_WORKERS, default_workers()),
            max_table_cells=_env_int(ENV_MAX_CELLS, MAX_TABLE_CELLS),
        )
