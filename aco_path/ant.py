"""
aco_path/ant.py
───────────────
One ant: one stochastic attempt to walk from a source node to a destination.

What does an ant do?
─────────────────────
Starting at the source, the ant repeatedly looks at the edges leaving its
current node and picks one at random — not uniformly, but weighted by how
much pheromone the edge carries and how short it is. It stops when it
reaches the destination (success), hits a dead end (failure), or is about
to revisit a node (failure — traces are cycle-free by construction).

The two inputs to every decision
──────────────────────────────────
1. Pheromone trail (τ)  — what did previous iterations learn?
   Read from the shared PheromoneTable. The ant never writes it.

2. Heuristic desirability (η) — static, η(u, v) = 1 / weight(u, v).
   A zero-weight edge gets η = 0.0 (explicit guard, no division).

The selection formula
──────────────────────
P(u → v) = (τ(u,v)^α × η(u,v)^β) / Σ_n (τ(u,n)^α × η(u,n)^β)

  α = 1.0: pheromone exponent.
  β = 5.0: heuristic exponent. Strongly favours short edges until the
           pheromone has differentiated.

Zero or non-finite denominator
────────────────────────────────
If every neighbour scores 0.0 (or a score overflows), the distribution is
undefined. transition_probabilities() reports it as None and the ant
fails its walk. It never falls back to a uniform pick.

Iterative walk
───────────────
The walk is a plain loop over an explicit trace buffer, not recursion, so
long paths do not run into Python's recursion limit.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set, Tuple

import numpy as np

from aco_path.pheromone import PheromoneTable
from aco_path.topology import Topology

# ── ACO hyperparameters ────────────────────────────────────────────────────────

ALPHA: float = 1.0
"""Pheromone influence exponent. τ^ALPHA — linear by default."""

BETA: float = 5.0
"""Heuristic influence exponent.
η^BETA with BETA=5 makes an edge half as long 32× more attractive, so
early iterations behave almost greedily on edge length.
"""


class Ant:
    """
    Constructs one trace using pheromone + heuristic.

    Lifecycle:
        1. __init__()             → bind topology, table and a private RNG.
        2. construct(src, dst)    → walk; returns the trace.
        3. Read results           → ant.trace, ant.tour_length, ant.is_complete.

    The ant is single-use: create a new Ant for each walk.

    Attributes:
        trace       : List[int] — visited nodes, [] on failure.
        tour_length : float     — sum of edge weights along trace (0.0 = none).
        is_complete : bool      — True if trace runs source → destination.
    """

    def __init__(
        self,
        topology: Topology,
        table: PheromoneTable,
        rng: Optional[np.random.Generator] = None,
        alpha: float = ALPHA,
        beta: float = BETA,
    ) -> None:
        """
        Args:
            topology: Static graph structure (read-only for this ant).
            table:    Shared PheromoneTable (read-only for this ant).
            rng:      This ant's own generator. Ants running concurrently
                      must not share one. Defaults to a fresh unseeded one.
            alpha:    Pheromone exponent.
            beta:     Heuristic exponent.
        """
        self._topology = topology
        self._table = table
        self._rng = rng if rng is not None else np.random.default_rng()
        self._alpha = alpha
        self._beta = beta

        # Results — populated by construct()
        self.trace: List[int] = []
        self.tour_length: float = 0.0
        self.is_complete: bool = False

    # ── Heuristic and neighbourhood ────────────────────────────────────────────

    @staticmethod
    def _inverse_weight(weight: float) -> float:
        """η for one edge: 1 / weight, or 0.0 for a zero-weight edge."""
        return 1.0 / weight if weight > 0.0 else 0.0

    def available_neighbors(self, node: int) -> List[int]:
        """
        Destination of every edge leaving `node`, in insertion order.

        Parallel edges appear once per edge. Already-visited nodes are NOT
        filtered out: picking one ends the walk through the cycle check.
        """
        topology = self._topology
        return [topology.edge_at(i).dest for i in topology.outgoing(node)]

    def heuristic(self, edge_start: int, edge_end: int) -> float:
        """1 / weight of the (edge_start, edge_end) edge, 0.0 if absent or zero-weight."""
        edge = self._topology.find_edge(edge_start, edge_end)
        return self._inverse_weight(edge.weight) if edge is not None else 0.0

    def pheromone(self, edge_start: int, edge_end: int) -> float:
        """τ of the (edge_start, edge_end) edge, 0.0 if absent."""
        index = self._topology.first_edge_index(edge_start, edge_end)
        return self._table.level(index) if index is not None else 0.0

    # ── Transition probabilities ───────────────────────────────────────────────

    def _numerators(self, node: int) -> Tuple[List[int], np.ndarray]:
        """
        Neighbour list of `node` and the unnormalised score of each entry.

        Every entry is scored through the lowest-id edge of its (node, dest)
        pair, so parallel edges share τ and η.
        """
        neighbors = self.available_neighbors(node)
        if not neighbors:
            return neighbors, np.empty(0, dtype=np.float64)

        topology = self._topology
        positions = [topology.first_edge_index(node, dest) for dest in neighbors]
        tau = self._table.levels(positions)
        eta = np.array(
            [self._inverse_weight(topology.edge_at(p).weight) for p in positions],
            dtype=np.float64,
        )
        with np.errstate(over="ignore", invalid="ignore"):
            numerators = (tau ** self._alpha) * (eta ** self._beta)
        return neighbors, numerators

    def transition_probabilities(
        self, node: int
    ) -> Tuple[List[int], Optional[np.ndarray]]:
        """
        Probability of moving from `node` to each of its neighbours.

        Returns:
            (neighbors, probabilities) — probabilities is aligned with
            neighbors and sums to 1.0, or None when the distribution is
            undefined (no neighbours, all-zero or non-finite scores).
        """
        neighbors, numerators = self._numerators(node)
        if not neighbors:
            return neighbors, None

        total = float(numerators.sum())
        if not np.isfinite(total) or total <= 0.0:
            return neighbors, None
        return neighbors, numerators / total

    def transition_probability(self, edge_start: int, edge_end: int) -> float:
        """
        P(edge_start → edge_end). 0.0 when edge_end is not a neighbour or
        the distribution over edge_start's neighbours is undefined.
        """
        neighbors, probabilities = self.transition_probabilities(edge_start)
        if probabilities is None or edge_end not in neighbors:
            return 0.0
        return float(probabilities[neighbors.index(edge_end)])

    # ── Neighbour selection ────────────────────────────────────────────────────

    def _select_next(self, node: int) -> Optional[int]:
        """
        Roulette-wheel pick of the next node, or None if none is viable.

        cumsum = [0.05, 0.35, 0.55, 0.80, 1.00]   (from probabilities)
        u      = 0.42                              (uniform in [0, 1))
        searchsorted(side="left") → first index with cumsum[i] >= u → 2

        If rounding leaves cumsum[-1] < u, searchsorted returns len(cumsum).
        That is treated as "no neighbour selected" rather than clamped.
        """
        neighbors, probabilities = self.transition_probabilities(node)
        if probabilities is None:
            return None

        cumsum = np.cumsum(probabilities)
        chosen = int(np.searchsorted(cumsum, self._rng.random(), side="left"))
        if chosen >= len(neighbors):
            return None
        return neighbors[chosen]

    # ── Trace construction ─────────────────────────────────────────────────────

    def construct(self, source: int, destination: int) -> List[int]:
        """
        Walk from `source` towards `destination`.

        Each step, in order:
            1. Cycle check — if `current` is already on the trace, abort.
            2. Arrival     — if current == destination and the trace already
                             has a node, append it and stop. A walk never
                             "arrives" at its own starting node.
            3. Selection   — pick a neighbour; none viable → abort.
            4. Append current, move to the chosen neighbour.

        Returns:
            The trace: source … destination on success, [] on failure.
        """
        trace: List[int] = []
        visited: Set[int] = set()
        current = source

        while True:
            if current in visited:
                trace = []
                break
            if current == destination and trace:
                trace.append(current)
                break

            chosen = self._select_next(current)
            if chosen is None:
                trace = []
                break

            trace.append(current)
            visited.add(current)
            current = chosen

        self.trace = trace
        self.tour_length = self._topology.tour_length(trace)
        self.is_complete = _is_complete(trace, source, destination)
        return trace

    def __repr__(self) -> str:
        return (
            f"Ant(trace={self.trace}, "
            f"length={self.tour_length:.4f}, "
            f"complete={self.is_complete})"
        )


def _is_complete(trace: Sequence[int], source: int, destination: int) -> bool:
    return len(trace) > 1 and trace[0] == source and trace[-1] == destination
