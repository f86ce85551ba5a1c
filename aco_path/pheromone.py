"""
aco_path/pheromone.py
─────────────────────
The pheromone table: the engine's only learned, persistent state.

What is pheromone here?
───────────────────────
One non-negative scalar per edge. An edge that sits on short successful
tours accumulates pheromone; an edge nobody uses decays towards zero.
Ants read the table, never write it. Only the orchestrator's update step
(AntSystem._update_trails) mutates it, once per iteration.

Two forces balance each other:
  1. Evaporation  — every level is multiplied by (1 − ρ) each iteration,
                    used or not.
  2. Deposit      — every edge on a successful trace gets Q / tour_length.
                    Shorter tours deposit more.

Storage layout
──────────────
  A 1D float64 numpy vector, one cell per edge, aligned with the
  Topology's insertion order: cell i belongs to topology.edge_at(i).
  The table knows nothing about node ids or edge ids — the Topology
  owns that translation.

Lifecycle
─────────
  reset(n)  → every cell back to TAU_INITIAL. Called after EVERY edge
              insertion, so all accumulated learning is discarded, not
              just the new edge's.
  clear()   → zero cells. Called when the topology is cleared.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

# ── Pheromone constants ────────────────────────────────────────────────────────

TAU_INITIAL: float = 100.0
"""Starting pheromone on every edge.
All edges equal at reset → the first ants are steered by the heuristic only.
"""

PHERO_QUANTITY: float = 100.0
"""Deposit numerator Q.

Deposit amount for one edge = Q / tour_length.
A tour of length 4 deposits 25.0 on each of its edges; length 10 deposits 10.0.
"""

EVAPORATION_RATE: float = 0.5
"""ρ (rho): fraction of pheromone that evaporates each iteration.

τ_new = τ_old × (1 − ρ)

ρ = 0.5 halves every level per iteration, so an edge that stops being
used loses its advantage within a handful of iterations.
"""


class PheromoneTable:
    """
    A float64 vector τ[edge_position] of pheromone levels.

    Used by:
        Ant.transition_probabilities() → reads levels() for one node's edges.
        AntSystem._update_trails()     → evaporate() then deposit().
        Tests                          → snapshot() to inspect state.

    Thread safety:
        Reads may run concurrently (ants of one iteration). Writes must
        not overlap reads; AntSystem only writes between iterations.
    """

    def __init__(self, n_edges: int = 0, initial: float = TAU_INITIAL) -> None:
        """
        Args:
            n_edges: Number of cells. 0 is a valid, empty table.
            initial: Level every cell takes on reset(). Must be > 0.

        Raises:
            ValueError: on a negative size or non-positive initial level.
        """
        if n_edges < 0:
            raise ValueError(f"PheromoneTable requires n_edges≥0, got {n_edges}")
        if initial <= 0.0:
            raise ValueError(f"Initial pheromone must be > 0, got {initial}")
        self._initial = float(initial)
        self._levels: NDArray[np.float64] = np.full(
            n_edges, self._initial, dtype=np.float64
        )

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def reset(self, n_edges: int) -> None:
        """Resize to n_edges cells, all at the initial level."""
        self._levels = np.full(n_edges, self._initial, dtype=np.float64)

    def clear(self) -> None:
        self._levels = np.empty(0, dtype=np.float64)

    # ── Core operations ────────────────────────────────────────────────────────

    def evaporate(self, rate: float = EVAPORATION_RATE) -> None:
        """
        Multiply every cell by (1 − rate), in place.

        Applied to the whole table regardless of which edges were used.
        With rate in [0, 1] a non-negative level stays non-negative.
        """
        self._levels *= (1.0 - rate)

    def deposit(self, index: int, amount: float) -> None:
        """
        Add `amount` to one cell.

        Guards:
            • amount ≤ 0 or non-finite → skip. A deposit never lowers a
              level and never writes inf/NaN into the table.
        """
        if not np.isfinite(amount) or amount <= 0.0:
            return
        self._levels[index] += amount

    def level(self, index: int) -> float:
        return float(self._levels[index])

    def levels(self, indices) -> NDArray[np.float64]:
        """
        Levels for a list of positions (fancy indexing → a new array).

        The caller may transform the result freely; the table is unaffected.
        """
        return self._levels[np.asarray(indices, dtype=np.intp)]

    # ── Inspection & testing ───────────────────────────────────────────────────

    def snapshot(self) -> NDArray[np.float64]:
        """Deep copy of the current vector. Mutating it does not touch the table."""
        return self._levels.copy()

    @property
    def initial(self) -> float:
        return self._initial

    def __len__(self) -> int:
        return int(self._levels.shape[0])

    def __repr__(self) -> str:
        if len(self) == 0:
            return "PheromoneTable(n_edges=0)"
        return (
            f"PheromoneTable(n_edges={len(self)}, "
            f"min={self._levels.min():.4f}, max={self._levels.max():.4f}, "
            f"mean={self._levels.mean():.4f})"
        )
