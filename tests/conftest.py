"""Shared fixtures for engine tests."""
from __future__ import annotations

import numpy as np
import pytest

from conquest_odds.builder import build


class ScriptedRng:
    """Stands in for numpy's Generator, handing out a fixed sequence of die faces."""

    def __init__(self, faces):
        self._faces = list(faces)

    def integers(self, low, high, size):
        if size > len(self._faces):
            raise AssertionError("ScriptedRng ran out of faces")
        out, self._faces = self._faces[:size], self._faces[size:]
        assert all(low <= f < high for f in out)
        return np.array(out, dtype=np.int64)


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture(scope="session")
def table_10():
    return build(10, 10)


@pytest.fixture(scope="session")
def table_30():
    return build(30, 30)
