"""Live combat: roll real dice for one round, or fight a whole attack.

The random source is always passed in (a numpy Generator), so a fixed seed
gives a reproducible battle.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .dice import NUM_SIDES, RoundOutcome, compare_dice, dice_counts
from .errors import InvalidInput


@dataclass(frozen=True)
class RoundResult:
    """One resolved round: the dice both sides threw and the losses they caused."""
    attacker_dice: tuple[int, ...]
    defender_dice: tuple[int, ...]
    outcome: RoundOutcome

    @property
    def attacker_losses(self) -> int:
        return self.outcome.attacker_losses

    @property
    def defender_losses(self) -> int:
        return self.outcome.defender_losses


@dataclass
class AttackResult:
    """Summary of an attack fought round after round."""
    attacker_armies: int
    defender_armies: int
    rounds: int = 0
    attacker_losses: int = 0
    defender_losses: int = 0

    @property
    def conquered(self) -> bool:
        return self.defender_armies == 0

    @property
    def exhausted(self) -> bool:
        """True when the attacker has nothing left to throw."""
        return self.attacker_armies == 0


def attacking_armies(territory_armies: int) -> int:
    """Armies able to attack from a territory; one always stays behind to hold it."""
    if territory_armies < 1:
        raise InvalidInput(f"A held territory has at least one army, got {territory_armies}")
    return territory_armies - 1


def _roll(rng: np.random.Generator, n: int) -> tuple[int, ...]:
    """Roll n dice, sorted highest first."""
    dice = rng.integers(1, NUM_SIDES + 1, size=n)
    return tuple(int(d) for d in sorted(dice, reverse=True))


def resolve_round(attacker_armies: int, defender_armies: int, rng: np.random.Generator) -> RoundResult:
    """Fight one round between the given army counts.

    attacker_armies counts only the armies able to attack (the one holding the
    source territory is already reserved). The attacker throws
    min(3, attacker_armies) dice and the defender min(2, defender_armies).
    """
    if attacker_armies < 1 or defender_armies < 1:
        raise InvalidInput(
            f"Both sides need at least one army to fight: "
            f"attacker {attacker_armies}, defender {defender_armies}"
        )
    n_atk, n_def = dice_counts(attacker_armies, defender_armies)
    attacker_dice = _roll(rng, n_atk)
    defender_dice = _roll(rng, n_def)
    return RoundResult(attacker_dice, defender_dice, compare_dice(attacker_dice, defender_dice))


def resolve_attack(
    attacker_armies: int,
    defender_armies: int,
    rng: np.random.Generator,
    max_rounds: int | None = None,
) -> AttackResult:
    """Keep fighting rounds until one side is wiped out or max_rounds is reached."""
    if max_rounds is not None and max_rounds < 0:
        raise InvalidInput(f"max_rounds must be non-negative, got {max_rounds}")
    result = AttackResult(attacker_armies, defender_armies)
    while result.attacker_armies > 0 and result.defender_armies > 0:
        if max_rounds is not None and result.rounds >= max_rounds:
            break
        fought = resolve_round(result.attacker_armies, result.defender_armies, rng)
        result.attacker_armies -= fought.attacker_losses
        result.defender_armies -= fought.defender_losses
        result.attacker_losses += fought.attacker_losses
        result.defender_losses += fought.defender_losses
        result.rounds += 1
    return result


def estimate_conquest(
    attacker_armies: int,
    defender_armies: int,
    rng: np.random.Generator,
    trials: int = 10_000,
) -> float:
    """Monte Carlo estimate of the conquest probability (for cross-checking tables)."""
    if trials < 1:
        raise InvalidInput(f"trials must be positive, got {trials}")
    if attacker_armies < 1 or defender_armies < 1:
        raise InvalidInput(
            f"Both sides need at least one army to fight: "
            f"attacker {attacker_armies}, defender {defender_armies}"
        )
    wins = sum(
        resolve_attack(attacker_armies, defender_armies, rng).conquered for _ in range(trials)
    )
    return wins / trials
