"""Tests for combat.py: live round resolution with injected dice."""

import numpy as np
import pytest

from conquest_odds.combat import (
    AttackResult,
    attacking_armies,
    estimate_conquest,
    resolve_attack,
    resolve_round,
)
from conquest_odds.dice import RoundOutcome
from conquest_odds.errors import InvalidInput


class TestResolveRound:
    def test_three_vs_two_split(self, scripted_rng):
        rng = scripted_rng([6, 3, 1, 6, 2])
        result = resolve_round(3, 2, rng)
        assert result.attacker_dice == (6, 3, 1)
        assert result.defender_dice == (6, 2)
        assert result.outcome == RoundOutcome(1, 1)

    def test_result_reads_through_to_outcome(self, scripted_rng):
        result = resolve_round(2, 2, scripted_rng([4, 2, 3, 3]))
        assert isinstance(result.outcome, RoundOutcome)
        assert result.outcome == RoundOutcome(1, 1)
        assert (result.attacker_losses, result.defender_losses) == (1, 1)

    def test_tie_goes_to_defender(self, scripted_rng):
        result = resolve_round(1, 1, scripted_rng([5, 5]))
        assert result.attacker_losses == 1
        assert result.defender_losses == 0

    def test_attacker_sweeps(self, scripted_rng):
        result = resolve_round(5, 4, scripted_rng([2, 6, 5, 4, 1]))
        assert result.attacker_dice == (6, 5, 2)
        assert result.defender_dice == (4, 1)
        assert result.outcome == RoundOutcome(0, 2)

    def test_dice_counts_follow_armies(self, scripted_rng):
        result = resolve_round(2, 1, scripted_rng([3, 4, 2]))
        assert len(result.attacker_dice) == 2
        assert len(result.defender_dice) == 1
        assert result.outcome == RoundOutcome(0, 1)

    def test_one_attacker_many_defenders(self, scripted_rng):
        result = resolve_round(1, 9, scripted_rng([6, 5, 6]))
        assert len(result.defender_dice) == 2
        assert result.outcome == RoundOutcome(1, 0)

    def test_seeded_generators_agree(self):
        a = [resolve_round(3, 2, np.random.default_rng(123)) for _ in range(5)]
        b = [resolve_round(3, 2, np.random.default_rng(123)) for _ in range(5)]
        assert a == b

    def test_losses_bounded(self):
        rng = np.random.default_rng(0)
        for attacker in range(1, 5):
            for defender in range(1, 4):
                result = resolve_round(attacker, defender, rng)
                assert result.outcome.compared == min(attacker, 3, defender, 2)
                assert all(1 <= d <= 6 for d in result.attacker_dice + result.defender_dice)

    @pytest.mark.parametrize("armies", [(0, 1), (1, 0), (-1, 3), (0, 0)])
    def test_contract_violation(self, armies):
        with pytest.raises(InvalidInput):
            resolve_round(*armies, np.random.default_rng(0))


class TestResolveAttack:
    def test_fights_to_the_end(self):
        result = resolve_attack(10, 10, np.random.default_rng(5))
        assert result.conquered != result.exhausted
        assert result.attacker_losses + result.attacker_armies == 10
        assert result.defender_losses + result.defender_armies == 10
        assert result.rounds >= 4

    def test_max_rounds(self, scripted_rng):
        # 3 vs 2, attacker sweeps once, then stop
        result = resolve_attack(3, 4, scripted_rng([6, 6, 6, 1, 1]), max_rounds=1)
        assert result == AttackResult(3, 2, rounds=1, attacker_losses=0, defender_losses=2)
        assert not result.conquered
        assert not result.exhausted

    def test_zero_rounds(self):
        result = resolve_attack(3, 3, np.random.default_rng(0), max_rounds=0)
        assert result.rounds == 0
        assert (result.attacker_armies, result.defender_armies) == (3, 3)

    def test_scripted_conquest(self, scripted_rng):
        # 2 vs 1: 6,1 vs 3 -> defender loses its only army
        result = resolve_attack(2, 1, scripted_rng([6, 1, 3]))
        assert result.conquered
        assert result.rounds == 1

    def test_negative_max_rounds(self):
        with pytest.raises(InvalidInput):
            resolve_attack(3, 3, np.random.default_rng(0), max_rounds=-1)


class TestAttackingArmies:
    def test_one_stays_behind(self):
        assert attacking_armies(5) == 4
        assert attacking_armies(1) == 0

    def test_empty_territory(self):
        with pytest.raises(InvalidInput):
            attacking_armies(0)


class TestEstimateConquest:
    def test_close_to_exact(self):
        estimate = estimate_conquest(3, 2, np.random.default_rng(2024), trials=5000)
        assert estimate == pytest.approx(0.656, abs=0.03)

    def test_invalid_trials(self):
        with pytest.raises(InvalidInput):
            estimate_conquest(3, 2, np.random.default_rng(0), trials=0)
