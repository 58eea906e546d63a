"""Wavefront dynamic program for the conquest table.

P(a, d) is the probability that a attacking armies eventually wipe out d
defending armies when every round is fought to the end:

    P(a, 0) = 1                      (defender already gone)
    P(0, d) = 0          for d > 0   (attacker has nothing left to throw)
    P(a, d) = sum  p(la, ld) * P(a - la, d - ld)
              over the outcomes of distribution_for(min(3, a), min(2, d))

Every round removes at least one army, so each cell only depends on cells
with a strictly smaller a + d. Filling the table one anti-diagonal (constant
a + d) at a time therefore only ever reads finished cells. Cells on one
diagonal are independent and write disjoint memory, so a diagonal is split
into chunks for a thread pool; waiting for pool.map to return is the barrier
before the next diagonal starts.

Row-major or column-major fan-out is not safe: cell (a, d) reads (a, d - 1)
and (a - 1, d), which would be in flight on other workers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool

import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from .config import MAX_TABLE_CELLS, MIN_PARALLEL_CELLS
from .dice import DICE_COUNT_PAIRS, MAX_ATTACKER_DICE, MAX_DEFENDER_DICE, all_distributions
from .errors import InvalidTableBounds, ResourceExhausted
from .logger import ConquestLogger
from .tables import ConquestTable

logger = ConquestLogger(__name__).get_logger()


@dataclass(frozen=True)
class PrecomputationRequest:
    """Bounds (and parallelism) for one build."""
    max_attacker_armies: int
    max_defender_armies: int
    workers: int = 1

    def __post_init__(self):
        for name in ("max_attacker_armies", "max_defender_armies"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                raise InvalidTableBounds(f"{name} must be a positive integer, got {value!r}")
        if self.workers < 1:
            raise InvalidTableBounds(f"workers must be at least 1, got {self.workers}")

    @property
    def cells(self) -> int:
        return (self.max_attacker_armies + 1) * (self.max_defender_armies + 1)

    @property
    def diagonals(self) -> range:
        """Anti-diagonal sums that hold interior cells (a >= 1, d >= 1)."""
        return range(2, self.max_attacker_armies + self.max_defender_armies + 1)


def anti_diagonal(s: int, max_attacker_armies: int, max_defender_armies: int) -> NDArray[np.int64]:
    """Attacker indices of the interior cells with a + d == s, ascending."""
    lo = max(1, s - max_defender_armies)
    hi = min(max_attacker_armies, s - 1)
    return np.arange(lo, hi + 1, dtype=np.int64)


def _transitions():
    """Per dice pair: list of (attacker_losses, defender_losses, probability), fixed order."""
    return {
        pair: [(o.attacker_losses, o.defender_losses, p) for o, p in dist.items()]
        for pair, dist in all_distributions().items()
    }


def _fill_cells(values: NDArray[np.float64], s: int, attackers: NDArray[np.int64], transitions) -> None:
    """Compute P for the given attacker indices on diagonal s, writing into values."""
    defenders = s - attackers
    n_atk = np.minimum(attackers, MAX_ATTACKER_DICE)
    n_def = np.minimum(defenders, MAX_DEFENDER_DICE)
    for pair in DICE_COUNT_PAIRS:
        mask = (n_atk == pair[0]) & (n_def == pair[1])
        if not mask.any():
            continue
        a = attackers[mask]
        d = defenders[mask]
        acc = np.zeros(a.shape[0], dtype=np.float64)
        for la, ld, p in transitions[pair]:
            acc += p * values[a - la, d - ld]
        # Rounding in the sum can overshoot 1.0 by an ulp near certain conquest.
        np.minimum(acc, 1.0, out=acc)
        values[a, d] = acc


def _allocate(request: PrecomputationRequest, max_cells: int) -> NDArray[np.float64]:
    if request.cells > max_cells:
        raise ResourceExhausted(
            f"{request.max_attacker_armies}x{request.max_defender_armies} table needs "
            f"{request.cells:,d} cells, limit is {max_cells:,d}"
        )
    try:
        values = np.empty(
            (request.max_attacker_armies + 1, request.max_defender_armies + 1), dtype=np.float64
        )
    except MemoryError as exc:
        raise ResourceExhausted(
            f"Out of memory allocating {request.cells:,d} cells"
        ) from exc
    values[:, 0] = 1.0
    values[0, 1:] = 0.0
    return values


def build_table(
    request: PrecomputationRequest,
    progress: bool = False,
    max_cells: int = MAX_TABLE_CELLS,
    min_parallel_cells: int = MIN_PARALLEL_CELLS,
) -> ConquestTable:
    """Run the wavefront for a request and return the finished, read-only table."""
    t0 = time.time()
    values = _allocate(request, max_cells)
    transitions = _transitions()
    diagonals = request.diagonals
    logger.info(
        f"Building {request.max_attacker_armies}x{request.max_defender_armies} conquest table "
        f"({len(diagonals)} diagonals, {request.workers} workers)"
    )

    pool = ThreadPool(request.workers) if request.workers > 1 else None
    try:
        for s in tqdm(diagonals, desc="Anti-diagonals", disable=not progress):
            attackers = anti_diagonal(s, request.max_attacker_armies, request.max_defender_armies)
            if pool is None or attackers.shape[0] < min_parallel_cells:
                _fill_cells(values, s, attackers, transitions)
                continue
            chunks = np.array_split(attackers, request.workers)
            pool.map(lambda chunk: _fill_cells(values, s, chunk, transitions), chunks)
    finally:
        if pool is not None:
            pool.close()
            pool.join()

    # The builder never touches values again, so the table can take it over.
    table = ConquestTable(values, copy=False)
    logger.info(f"Built {table!r} in {time.time() - t0:.2f}s")
    return table


def build(
    max_attacker_armies: int,
    max_defender_armies: int,
    workers: int | None = None,
    progress: bool = False,
    max_cells: int = MAX_TABLE_CELLS,
) -> ConquestTable:
    """Build the conquest table for 0..max_attacker_armies x 0..max_defender_armies.

    Args:
        max_attacker_armies: Largest attacking army count covered (>= 1).
        max_defender_armies: Largest defending army count covered (>= 1).
        workers: Thread-pool size for per-diagonal fan-out; 1 or None builds serially.
            Values below 1 are rejected like any other invalid request.
        progress: Show a tqdm progress bar over diagonals.
        max_cells: Refuse tables larger than this many cells.

    Raises:
        InvalidTableBounds: a bound is not a positive integer.
        ResourceExhausted: the table exceeds max_cells or cannot be allocated.
    """
    request = PrecomputationRequest(
        max_attacker_armies, max_defender_armies, 1 if workers is None else workers
    )
    return build_table(request, progress=progress, max_cells=max_cells)
