"""Exact single-round outcome distributions for the classical combat dice rule.

The attacker rolls up to 3 dice, the defender up to 2. Both sides sort their
dice descending and the highest dice are compared pairwise; for each pair the
lower die loses one army and ties go to the defender.

For every legal (attacker dice, defender dice) pair we enumerate all
6^(n_atk + n_def) equally likely rolls (at most 7776) and tally the losses
exactly. Probabilities are kept as Fractions so the six distributions sum to
exactly 1; the float view is what the table builder consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from functools import lru_cache
from itertools import product
from types import MappingProxyType
from typing import Iterator, Mapping

import numpy as np

from .errors import InvalidDiceCount

NUM_SIDES = 6
MAX_ATTACKER_DICE = 3
MAX_DEFENDER_DICE = 2

DICE_COUNT_PAIRS: tuple[tuple[int, int], ...] = tuple(
    (n_atk, n_def)
    for n_atk in range(1, MAX_ATTACKER_DICE + 1)
    for n_def in range(1, MAX_DEFENDER_DICE + 1)
)


@dataclass(frozen=True, order=True)
class RoundOutcome:
    """Armies lost by each side in one round."""
    attacker_losses: int
    defender_losses: int

    @property
    def compared(self) -> int:
        return self.attacker_losses + self.defender_losses


def dice_counts(attacker_armies: int, defender_armies: int) -> tuple[int, int]:
    """Dice thrown by each side for the given (already reserved) army counts."""
    return min(MAX_ATTACKER_DICE, attacker_armies), min(MAX_DEFENDER_DICE, defender_armies)


def count_defender_losses(attacker_rolls: np.ndarray, defender_rolls: np.ndarray) -> np.ndarray:
    """Apply the comparison rule to a batch of rolls.

    Args:
        attacker_rolls: (N, n_atk) array of die faces.
        defender_rolls: (N, n_def) array of die faces.

    Returns:
        (N,) int array with the defender's losses for each roll. The attacker
        loses min(n_atk, n_def) minus that.
    """
    compared = min(attacker_rolls.shape[1], defender_rolls.shape[1])
    attacker_sorted = -np.sort(-attacker_rolls, axis=1)
    defender_sorted = -np.sort(-defender_rolls, axis=1)
    # Strictly greater: a tie is a defender win.
    return (attacker_sorted[:, :compared] > defender_sorted[:, :compared]).sum(axis=1)


def compare_dice(attacker_dice, defender_dice) -> RoundOutcome:
    """Resolve one concrete roll into the losses it causes."""
    attacker_rolls = np.asarray(attacker_dice, dtype=np.int64).reshape(1, -1)
    defender_rolls = np.asarray(defender_dice, dtype=np.int64).reshape(1, -1)
    compared = min(attacker_rolls.shape[1], defender_rolls.shape[1])
    defender_losses = int(count_defender_losses(attacker_rolls, defender_rolls)[0])
    return RoundOutcome(compared - defender_losses, defender_losses)


class OutcomeDistribution:
    """Immutable mapping RoundOutcome -> probability for one dice-count pair."""

    def __init__(self, n_atk: int, n_def: int, exact: Mapping[RoundOutcome, Fraction]):
        self.n_atk = n_atk
        self.n_def = n_def
        ordered = dict(sorted(exact.items()))
        self._exact = MappingProxyType(ordered)
        self._float = MappingProxyType({o: float(p) for o, p in ordered.items()})

    def __iter__(self) -> Iterator[RoundOutcome]:
        return iter(self._exact)

    def __len__(self) -> int:
        return len(self._exact)

    def __repr__(self) -> str:
        body = ", ".join(
            f"({o.attacker_losses},{o.defender_losses}): {p}" for o, p in self._exact.items()
        )
        return f"OutcomeDistribution({self.n_atk}v{self.n_def}: {body})"

    def items(self):
        """(outcome, float probability) pairs, ordered by attacker losses."""
        return self._float.items()

    def exact_items(self):
        return self._exact.items()

    def probability(self, outcome: RoundOutcome) -> float:
        return self._float.get(outcome, 0.0)

    def exact(self, outcome: RoundOutcome) -> Fraction:
        return self._exact.get(outcome, Fraction(0))

    def total(self) -> Fraction:
        return sum(self._exact.values(), Fraction(0))

    def expected_losses(self) -> tuple[float, float]:
        """Mean (attacker, defender) losses per round."""
        attacker = sum(p * o.attacker_losses for o, p in self._exact.items())
        defender = sum(p * o.defender_losses for o, p in self._exact.items())
        return float(attacker), float(defender)


def _check_pair(n_atk: int, n_def: int) -> None:
    if (n_atk, n_def) not in DICE_COUNT_PAIRS:
        raise InvalidDiceCount(
            f"Invalid dice counts: attacker {n_atk}, defender {n_def} "
            f"(attacker 1-{MAX_ATTACKER_DICE}, defender 1-{MAX_DEFENDER_DICE})"
        )


@lru_cache(maxsize=None)
def _enumerate(n_atk: int, n_def: int) -> OutcomeDistribution:
    faces = np.arange(1, NUM_SIDES + 1, dtype=np.int8)
    rolls = np.array(list(product(faces, repeat=n_atk + n_def)), dtype=np.int8)
    defender_losses = count_defender_losses(rolls[:, :n_atk], rolls[:, n_atk:])

    compared = min(n_atk, n_def)
    counts = np.bincount(defender_losses, minlength=compared + 1)
    total = NUM_SIDES ** (n_atk + n_def)
    assert counts.sum() == total

    exact = {
        RoundOutcome(compared - lost, lost): Fraction(int(count), total)
        for lost, count in enumerate(counts)
        if count > 0
    }
    return OutcomeDistribution(n_atk, n_def, exact)


def distribution_for(n_atk: int, n_def: int) -> OutcomeDistribution:
    """Exact outcome distribution for n_atk attacker dice against n_def defender dice.

    Raises:
        InvalidDiceCount: if the pair is not one of the six legal combinations.
    """
    _check_pair(n_atk, n_def)
    return _enumerate(n_atk, n_def)


def distribution_for_armies(attacker_armies: int, defender_armies: int) -> OutcomeDistribution:
    return distribution_for(*dice_counts(attacker_armies, defender_armies))


def all_distributions() -> dict[tuple[int, int], OutcomeDistribution]:
    """The six distributions keyed by (n_atk, n_def)."""
    return {pair: distribution_for(*pair) for pair in DICE_COUNT_PAIRS}
