"""
rearrange.py

Cell assignment API for cellmorph.

Provides:
- a greedy solver: every target, in order, takes its cheapest unused source
- a memory-aware `optimal` solver wrapper around SciPy's Hungarian method
- a single `rearrange` function that selects the requested solver
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from . import distance
from .blocks import Cell
from .errors import EmptyGridError, MismatchedCellCountError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    source_index: int
    target_index: int
    cost: float


Assignment = Tuple[MatchResult, ...]


def _check_inputs(sources: Sequence[Cell], targets: Sequence[Cell], gradient_weight: float) -> int:
    if len(sources) != len(targets):
        raise MismatchedCellCountError(
            f"source has {len(sources)} cells but target has {len(targets)}"
        )
    if len(sources) == 0:
        raise EmptyGridError("cannot match an empty grid")
    if not 0.0 <= gradient_weight <= 1.0:
        raise ValueError(f"gradient_weight must be in [0, 1], got {gradient_weight}")
    return len(sources)


def is_bijection(assignment: Sequence[MatchResult], n: int) -> bool:
    """True when every index 0..n-1 appears exactly once on each side."""
    if len(assignment) != n:
        return False
    src = sorted(m.source_index for m in assignment)
    tgt = sorted(m.target_index for m in assignment)
    expected = list(range(n))
    return src == expected and tgt == expected


def rearrange_greedy(
    sources: Sequence[Cell],
    targets: Sequence[Cell],
    gradient_weight: float,
) -> Assignment:
    """
    Greedy one-sided matching:
      - For each target cell (in raster order), pick the *cheapest unused* source cell.
      - Ties go to the lowest source index.
      - Remove picked source from pool.

    Complexity: O(N^2) time, O(N) memory. Not globally optimal.
    """
    N = _check_inputs(sources, targets, gradient_weight)

    mags, dirs, colors = distance.signature_arrays([c.signature for c in sources])
    available = np.ones(N, dtype=bool)
    results = []

    for t in range(N):
        costs = distance.batch_pair_cost(mags, dirs, colors, targets[t].signature, gradient_weight)

        # mask out-unavailable sources; argmin returns the first minimum
        masked = np.where(available, costs, np.inf)
        best = int(np.argmin(masked))
        available[best] = False
        results.append(MatchResult(source_index=best, target_index=t, cost=float(costs[best])))

    logger.debug("greedy matching done: %d cells, total cost %.3f", N, sum(r.cost for r in results))
    return tuple(results)


def build_full_cost_matrix(
    sources: Sequence[Cell],
    targets: Sequence[Cell],
    gradient_weight: float,
) -> np.ndarray:
    """
    Build NxN cost matrix where element (i,j) is cost of assigning source i to target j.

    WARNING: This allocates an N x N matrix. Use the greedy solver for large grids.
    """
    N = len(sources)
    est_bytes = N * N * 8
    # If matrix > ~1.5 GB, refuse
    if est_bytes > 1.5 * (1024 ** 3):
        raise MemoryError(f"Requested cost matrix is large: ~{est_bytes/(1024**3):.2f} GiB. Use greedy mode or a larger cell size.")

    mags, dirs, colors = distance.signature_arrays([c.signature for c in sources])
    mat = np.empty((N, N), dtype=np.float64)
    for j in range(N):
        mat[:, j] = distance.batch_pair_cost(mags, dirs, colors, targets[j].signature, gradient_weight)
    return mat


def rearrange_optimal(
    sources: Sequence[Cell],
    targets: Sequence[Cell],
    gradient_weight: float,
) -> Assignment:
    """
    Minimum total cost assignment via the Hungarian algorithm.
    Results are ordered by target index like the greedy solver's.
    """
    _check_inputs(sources, targets, gradient_weight)
    cost = build_full_cost_matrix(sources, targets, gradient_weight)

    from scipy.optimize import linear_sum_assignment

    row_ind, col_ind = linear_sum_assignment(cost)  # row_ind: source idx, col_ind: target idx
    order = np.argsort(col_ind)
    return tuple(
        MatchResult(source_index=int(row_ind[k]), target_index=int(col_ind[k]), cost=float(cost[row_ind[k], col_ind[k]]))
        for k in order
    )


def rearrange(
    sources: Sequence[Cell],
    targets: Sequence[Cell],
    gradient_weight: float,
    mode: str = "greedy",
) -> Assignment:
    """
    Unified entrypoint.

    Parameters
    ----------
    sources, targets : sequences of Cell
        Row-major cells of the two normalized images. Counts must match.
    gradient_weight : float
        Weight of the edge term in [0, 1]; color gets 1 - gradient_weight.
    mode : 'greedy' or 'optimal'
        Which solver to run.
    Returns
    -------
    assignment : tuple of MatchResult ordered by target index
    """
    if mode == "greedy":
        return rearrange_greedy(sources, targets, gradient_weight)
    elif mode == "optimal":
        return rearrange_optimal(sources, targets, gradient_weight)
    else:
        raise ValueError(f"Unknown mode '{mode}'. Expected 'greedy' or 'optimal'.")
