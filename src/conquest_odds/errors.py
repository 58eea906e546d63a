"""Error kinds raised by the combat engine.

Kinds that describe a bad value also derive from ValueError, so callers that
only care about "invalid input" can catch that.
"""

from __future__ import annotations


class ConquestError(Exception):
    """Base class for all engine errors."""


class InvalidDiceCount(ConquestError, ValueError):
    """Dice-count pair outside the six legal (attacker, defender) combinations."""


class InvalidTableBounds(ConquestError, ValueError):
    """Non-positive or non-integer precomputation bounds."""


class CorruptTableData(ConquestError, ValueError):
    """A stored table does not decode: bad magic, truncated or inconsistent payload."""


class UnsupportedTableVersion(ConquestError, ValueError):
    """A stored table carries a format version this build cannot read."""


class ResourceExhausted(ConquestError):
    """Requested table is too large for the configured memory limit."""


class InvalidInput(ConquestError, ValueError):
    """Malformed army counts (negative, or below a call's preconditions)."""
