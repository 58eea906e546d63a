"""Conquest table container and its versioned binary format.

File layout (little-endian):
    16-byte header: magic u32, version u32, max_attacker u32, max_defender u32
    payload: (max_attacker + 1) * (max_defender + 1) float64, row-major by attacker
"""

from __future__ import annotations

import os
import struct
import tempfile
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from .config import HEADER_SIZE, TABLE_FILE_MAGIC, TABLE_FILE_VERSION, VALUE_SIZE
from .errors import CorruptTableData, InvalidTableBounds, UnsupportedTableVersion
from .logger import ConquestLogger

logger = ConquestLogger(__name__).get_logger()

HEADER_FORMAT = "<IIII"
SUPPORTED_VERSIONS = (TABLE_FILE_VERSION,)
VALUE_DTYPE = np.dtype("<f8")


class ConquestTable:
    """Read-only grid of conquest probabilities indexed [attacker_armies, defender_armies]."""

    def __init__(self, probabilities: NDArray[np.float64], copy: bool = True):
        if probabilities.ndim != 2 or min(probabilities.shape) < 2:
            raise InvalidTableBounds(
                f"A conquest table needs at least 2x2 cells, got shape {probabilities.shape}"
            )
        values = np.array(probabilities, dtype=np.float64) if copy else probabilities
        values.flags.writeable = False
        self._values = values

    @property
    def probabilities(self) -> NDArray[np.float64]:
        return self._values

    @property
    def max_attacker_armies(self) -> int:
        return self._values.shape[0] - 1

    @property
    def max_defender_armies(self) -> int:
        return self._values.shape[1] - 1

    @property
    def shape(self) -> tuple[int, int]:
        return self._values.shape

    def contains(self, attacker_armies: int, defender_armies: int) -> bool:
        return (
            0 <= attacker_armies <= self.max_attacker_armies
            and 0 <= defender_armies <= self.max_defender_armies
        )

    def cell(self, attacker_armies: int, defender_armies: int) -> float:
        if not self.contains(attacker_armies, defender_armies):
            raise IndexError(
                f"({attacker_armies}, {defender_armies}) outside table "
                f"{self.max_attacker_armies}x{self.max_defender_armies}"
            )
        return float(self._values[attacker_armies, defender_armies])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConquestTable):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._values, other._values))

    def __hash__(self):
        return hash((self.shape, self._values.tobytes()))

    def __repr__(self) -> str:
        return f"ConquestTable({self.max_attacker_armies}x{self.max_defender_armies})"


def encode(table: ConquestTable) -> bytes:
    """Serialize a table: header followed by the float64 payload."""
    header = struct.pack(
        HEADER_FORMAT,
        TABLE_FILE_MAGIC,
        TABLE_FILE_VERSION,
        table.max_attacker_armies,
        table.max_defender_armies,
    )
    return header + table.probabilities.astype(VALUE_DTYPE, copy=False).tobytes(order="C")


def read_header(data: bytes) -> tuple[int, int, int, int]:
    """Unpack (magic, version, max_attacker, max_defender), validating magic and version."""
    if len(data) < HEADER_SIZE:
        raise CorruptTableData(f"Table data too short: {len(data)} bytes, header needs {HEADER_SIZE}")
    magic, version, max_attacker, max_defender = struct.unpack_from(HEADER_FORMAT, data, 0)
    if magic != TABLE_FILE_MAGIC:
        raise CorruptTableData(f"Invalid magic: 0x{magic:08x}")
    if version not in SUPPORTED_VERSIONS:
        raise UnsupportedTableVersion(f"Unsupported version: {version}")
    return magic, version, max_attacker, max_defender


def decode(data: bytes) -> ConquestTable:
    """Rebuild a table from encode() output.

    Raises:
        CorruptTableData: bad magic, truncated data, payload size that does not
            match the declared dimensions, or values breaking the table laws.
        UnsupportedTableVersion: unknown format version.
    """
    _, _, max_attacker, max_defender = read_header(data)
    if max_attacker < 1 or max_defender < 1:
        raise CorruptTableData(f"Invalid declared bounds: {max_attacker}x{max_defender}")

    rows, cols = max_attacker + 1, max_defender + 1
    expected_size = HEADER_SIZE + rows * cols * VALUE_SIZE
    if len(data) != expected_size:
        raise CorruptTableData(
            f"Payload size mismatch: {max_attacker}x{max_defender} needs {expected_size} bytes, "
            f"got {len(data)}"
        )

    values = np.frombuffer(data, dtype=VALUE_DTYPE, offset=HEADER_SIZE).reshape(rows, cols)
    if not np.all(np.isfinite(values)) or values.min() < 0.0 or values.max() > 1.0:
        raise CorruptTableData("Probabilities outside [0, 1]")
    if not np.all(values[:, 0] == 1.0) or not np.all(values[0, 1:] == 0.0):
        raise CorruptTableData("Boundary cells do not match P(a, 0) = 1 and P(0, d) = 0")
    return ConquestTable(values)


def save_table(table: ConquestTable, path: str | Path) -> Path:
    """Write the encoded table, replacing any existing file in one step."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(encode(table))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info(f"Wrote {table!r} to {path} ({path.stat().st_size:,d} bytes)")
    return path


def load_table(path: str | Path) -> ConquestTable:
    """Read and decode a table file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table file not found: {path}")
    table = decode(path.read_bytes())
    logger.info(f"Loaded {table!r} from {path}")
    return table
