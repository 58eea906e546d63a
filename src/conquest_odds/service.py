"""Runtime odds lookups on top of a precomputed conquest table.

In-range requests are a single cell read. Requests beyond the table fall back
to evaluating the same recurrence the builder uses, memoized for the duration
of that one request and seeded from the table wherever it has the answer.
"""

from __future__ import annotations

import math
import threading
from pathlib import Path
from typing import Iterable

from .builder import build
from .combat import attacking_armies
from .config import EngineConfig
from .dice import DICE_COUNT_PAIRS, dice_counts, distribution_for
from .errors import InvalidInput
from .logger import ConquestLogger
from .tables import ConquestTable, load_table, save_table

logger = ConquestLogger(__name__).get_logger()


class TableHandle:
    """Shared reference to the currently published table.

    Readers call get() and keep using the table they got; swap() publishes a
    new table with a single reference assignment, so nobody sees a mix of old
    and new cells.
    """

    def __init__(self, table: ConquestTable | None = None):
        self._table = table
        self._lock = threading.Lock()

    def get(self) -> ConquestTable | None:
        return self._table

    def swap(self, table: ConquestTable) -> ConquestTable | None:
        """Publish a new table and return the one it replaced."""
        with self._lock:
            previous, self._table = self._table, table
        return previous


def as_percent(probability: float) -> float:
    """Probability as a percentage rounded to two decimals (0.65596 -> 65.6).

    Halves round up (1/32 -> 3.13), not to the nearest even hundredth as round() would.
    """
    return math.floor(probability * 10000.0 + 0.5) / 100.0


class ProbabilityService:
    def __init__(self, handle: TableHandle):
        self.handle = handle
        self._transitions = {
            pair: [(o.attacker_losses, o.defender_losses, p) for o, p in distribution_for(*pair).items()]
            for pair in DICE_COUNT_PAIRS
        }

    @classmethod
    def from_table(cls, table: ConquestTable | None) -> ProbabilityService:
        return cls(TableHandle(table))

    @classmethod
    def from_config(cls, config: EngineConfig) -> ProbabilityService:
        """Load the configured table, building and saving it first if it does not exist yet."""
        path = Path(config.table_path)
        if path.exists():
            table = load_table(path)
        else:
            logger.info(f"No table at {path}, building one")
            table = build(
                config.max_attacker_armies,
                config.max_defender_armies,
                workers=config.workers,
                max_cells=config.max_table_cells,
            )
            save_table(table, path)
        return cls.from_table(table)

    @property
    def table(self) -> ConquestTable | None:
        return self.handle.get()

    def replace_table(self, table: ConquestTable) -> None:
        """Swap in a freshly built or loaded table."""
        previous = self.handle.swap(table)
        logger.info(f"Replaced conquest table {previous!r} with {table!r}")

    def probability_of_conquest(self, attacker_armies: int, defender_armies: int) -> float:
        """Probability that attacker_armies eventually eliminate defender_armies.

        Raises:
            InvalidInput: if either army count is negative.
        """
        if attacker_armies < 0 or defender_armies < 0:
            raise InvalidInput(
                f"Army counts must be non-negative: attacker {attacker_armies}, "
                f"defender {defender_armies}"
            )
        if defender_armies == 0:
            return 1.0
        if attacker_armies == 0:
            return 0.0

        table = self.handle.get()
        if table is not None and table.contains(attacker_armies, defender_armies):
            return table.cell(attacker_armies, defender_armies)
        return self._evaluate(attacker_armies, defender_armies, table)

    def _evaluate(self, attacker_armies: int, defender_armies: int, table: ConquestTable | None) -> float:
        """Evaluate the recurrence for cells the table does not cover.

        Walks anti-diagonals of the rectangle up to (attacker_armies,
        defender_armies) in increasing order, so every lookup hits the
        boundary, the table or the request-local memo. No recursion, so large
        counts do not run into the interpreter's recursion limit.
        """
        logger.debug(f"Table miss for ({attacker_armies}, {defender_armies}), evaluating on demand")
        memo: dict[tuple[int, int], float] = {}

        def known(a: int, d: int) -> float:
            if d == 0:
                return 1.0
            if a == 0:
                return 0.0
            if table is not None and table.contains(a, d):
                return float(table.probabilities[a, d])
            return memo[a, d]

        for s in range(2, attacker_armies + defender_armies + 1):
            for a in range(max(1, s - defender_armies), min(attacker_armies, s - 1) + 1):
                d = s - a
                if table is not None and table.contains(a, d):
                    continue
                acc = 0.0
                for la, ld, p in self._transitions[dice_counts(a, d)]:
                    acc += p * known(a - la, d - ld)
                memo[a, d] = min(acc, 1.0)

        return memo[attacker_armies, defender_armies]

    def odds_for_borders(
        self, borders: Iterable[tuple[str, str, int, int]]
    ) -> list[tuple[str, str, float]]:
        """Odds for each (from, to, territory_armies, defender_armies) border.

        territory_armies is the full garrison of the source territory; one army
        stays behind, so sources with fewer than two armies are skipped.
        Returns (from, to, percent) with percent rounded to two decimals.
        """
        odds = []
        for source, target, territory_armies, defender_armies in borders:
            if territory_armies < 2:
                continue
            probability = self.probability_of_conquest(attacking_armies(territory_armies), defender_armies)
            odds.append((source, target, as_percent(probability)))
        return odds
