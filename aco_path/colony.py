"""
aco_path/colony.py
──────────────────
The AntSystem: owns the graph and the pheromone table, releases the ants.

How a search works
───────────────────
find_path(source, destination) is the outer loop of the Ant System:

  1. For each iteration:
       a. Release N ants. Each walks source → destination on its own,
          reading (never writing) the shared PheromoneTable.
       b. Score every trace with Topology.tour_length().
       c. Keep the shortest successful trace seen so far.
       d. Update trails ONCE: evaporate the whole table, then deposit
          Q / tour_length on every edge of every successful trace.
  2. Return the best trace found across ALL iterations (not just the
     last one), or [] if no ant ever reached the destination.

Learning persists: a second find_path() call starts from the pheromone
the first one left behind. insert_edge() and clear() throw it away.

Parallel ants
──────────────
Ants of one iteration are independent — they only read the table. With
workers > 1 they run on a ThreadPoolExecutor; the update still runs once,
after every future of the iteration has completed, so no ant ever sees a
half-updated table. Each ant gets its own numpy Generator spawned from
the engine's SeedSequence, so a fixed seed gives the same traces whether
the ants run sequentially or in parallel.

Topology mutation during a search
──────────────────────────────────
insert_edge(), clear() and find_path() share one lock. Searches queue up
behind each other (blocking acquire). Mutations never wait: calling
insert_edge() or clear() while the lock is held raises TopologyBusyError,
so the caller has to serialise mutations with searches.
"""

from __future__ import annotations

import abc
import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from aco_path.ant import ALPHA, BETA, Ant
from aco_path.pheromone import EVAPORATION_RATE, PHERO_QUANTITY, PheromoneTable
from aco_path.topology import Edge, Topology

logger = logging.getLogger(__name__)

# ── Colony hyperparameters ─────────────────────────────────────────────────────

N_ANTS: int = 250
"""Ants per iteration when the caller passes a non-positive count."""

N_ITERATIONS: int = 150
"""Iterations per find_path() when the caller passes a non-positive count."""

EdgeTriple = Tuple[int, int, float]


class TopologyBusyError(RuntimeError):
    """
    Raised when insert_edge() or clear() finds the engine locked by a
    running search or another topology mutation.

    Caller contract:
        Topology mutation is not allowed to interleave with a running
        search. Wait for find_path() to return, then mutate.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Cannot {operation}() while the engine is busy "
            f"(a search or another topology update holds it)."
        )


class PathSearchEngine(abc.ABC):
    """
    Capability interface for path search strategies.

    Alternate strategies implement these three operations; they do not
    subclass AntSystem to override individual steps.
    """

    @abc.abstractmethod
    def insert_edge(self, source: int, dest: int, weight: float) -> None:
        """Add a directed edge source → dest."""

    @abc.abstractmethod
    def find_path(self, source: int, destination: int) -> List[int]:
        """Node sequence source … destination, or [] if none was found."""

    @abc.abstractmethod
    def clear(self) -> None:
        """Forget the topology and all learned state."""


class AntSystem(PathSearchEngine):
    """
    Ant System shortest-path engine.

    Usage:
        engine = AntSystem([(0, 1, 1.0), (1, 2, 1.0), (0, 2, 5.0)], ants=50, iterations=20)
        path   = engine.find_path(0, 2)     # [0, 1, 2]

    After find_path():
        engine.last_run_ms      → wall-clock time of the last search.
        engine.last_best_length → length of the returned path (inf if []).
    """

    def __init__(
        self,
        edges: Optional[Iterable[EdgeTriple]] = None,
        ants: int = 0,
        iterations: int = 0,
        *,
        alpha: float = ALPHA,
        beta: float = BETA,
        evaporation_rate: float = EVAPORATION_RATE,
        pheromone_quantity: float = PHERO_QUANTITY,
        seed: Optional[int] = None,
        workers: int = 1,
    ) -> None:
        """
        Args:
            edges:              Optional (source, dest, weight) triples,
                                inserted in order.
            ants:               Ants per iteration. ≤ 0 → N_ANTS.
            iterations:         Iterations per search. ≤ 0 → N_ITERATIONS.
            alpha:              Pheromone exponent (≥ 0).
            beta:               Heuristic exponent (≥ 0).
            evaporation_rate:   ρ in [0, 1].
            pheromone_quantity: Initial level of every edge and the deposit
                                numerator Q (> 0).
            seed:               Seed for reproducible searches. None → OS entropy.
            workers:            Threads used for the ants of one iteration.

        Raises:
            ValueError: on an out-of-range tuning parameter.
        """
        if not 0.0 <= evaporation_rate <= 1.0:
            raise ValueError(
                f"evaporation_rate must be in [0, 1], got {evaporation_rate}"
            )
        if alpha < 0.0 or beta < 0.0:
            raise ValueError(f"alpha and beta must be ≥ 0, got {alpha}, {beta}")
        if pheromone_quantity <= 0.0:
            raise ValueError(
                f"pheromone_quantity must be > 0, got {pheromone_quantity}"
            )
        if workers < 1:
            raise ValueError(f"workers must be ≥ 1, got {workers}")
        if seed is not None and seed < 0:
            raise ValueError(f"seed must be ≥ 0, got {seed}")

        if ants > 0 and iterations > 0:
            self._ants = ants
            self._iterations = iterations
        else:
            self._ants = N_ANTS
            self._iterations = N_ITERATIONS

        self._alpha = alpha
        self._beta = beta
        self._evaporation_rate = evaporation_rate
        self._quantity = pheromone_quantity
        self._workers = workers
        self._seed_sequence = np.random.SeedSequence(seed)

        self._topology = Topology()
        self._table = PheromoneTable(0, initial=pheromone_quantity)
        self._lock = threading.Lock()

        # Populated after find_path()
        self.last_run_ms: float = 0.0
        self.last_best_length: float = math.inf

        for source, dest, weight in edges or ():
            self._topology.add(source, dest, weight)
        self._table.reset(len(self._topology))

    # ── Topology mutation ──────────────────────────────────────────────────────

    def insert_edge(self, source: int, dest: int, weight: float) -> None:
        """
        Append an edge and reset EVERY pheromone level to the initial quantity.

        Raises:
            TopologyBusyError: if a search or another mutation holds the engine.
            ValueError:        on a non-integer or negative node id, or a bad weight.
        """
        if not self._lock.acquire(blocking=False):
            raise TopologyBusyError("insert_edge")
        try:
            self._topology.add(source, dest, weight)
            self._table.reset(len(self._topology))
        finally:
            self._lock.release()

    def clear(self) -> None:
        """
        Empty the topology and the pheromone table.

        Raises:
            TopologyBusyError: if a search or another mutation holds the engine.
        """
        if not self._lock.acquire(blocking=False):
            raise TopologyBusyError("clear")
        try:
            self._topology.clear()
            self._table.clear()
        finally:
            self._lock.release()

    # ── Probability calculator (delegates to a throwaway Ant) ──────────────────

    def _probe(self) -> Ant:
        return Ant(self._topology, self._table, alpha=self._alpha, beta=self._beta)

    def available_neighbors(self, node: int) -> List[int]:
        return self._probe().available_neighbors(node)

    def heuristic(self, edge_start: int, edge_end: int) -> float:
        return self._probe().heuristic(edge_start, edge_end)

    def pheromone_level(self, edge_start: int, edge_end: int) -> float:
        return self._probe().pheromone(edge_start, edge_end)

    def transition_probability(self, edge_start: int, edge_end: int) -> float:
        return self._probe().transition_probability(edge_start, edge_end)

    def tour_length(self, trace: Sequence[int]) -> float:
        return self._topology.tour_length(trace)

    # ── Main search loop ───────────────────────────────────────────────────────

    def find_path(self, source: int, destination: int) -> List[int]:
        """
        Run the full Ant System and return the best trace found.

        Returns:
            source … destination, or [] if no ant in any iteration
            reached the destination. source == destination always gives [].

        Concurrent calls on one engine run one after another: a second
        find_path() waits for the first to release the lock.
        """
        with self._lock:
            return self._search(source, destination)

    def _search(self, source: int, destination: int) -> List[int]:
        start = time.perf_counter()

        best_trace: List[int] = []
        shortest: float = math.inf

        executor = (
            ThreadPoolExecutor(max_workers=self._workers)
            if self._workers > 1 else None
        )
        try:
            for iteration in range(self._iterations):
                ants = self._release_ants(source, destination, executor)

                for ant in ants:
                    if not ant.is_complete:
                        continue
                    # Strictly shorter and positive: ties keep the earlier trace,
                    # and a 0.0 length is indistinguishable from "no tour".
                    if 0.0 < ant.tour_length < shortest:
                        shortest = ant.tour_length
                        best_trace = list(ant.trace)

                self._update_trails(ants)

                logger.debug(
                    "iteration %d/%d: %d/%d ants complete, best=%.4f",
                    iteration + 1, self._iterations,
                    sum(1 for a in ants if a.is_complete), len(ants), shortest,
                )
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        self.last_run_ms = (time.perf_counter() - start) * 1000.0
        self.last_best_length = shortest

        logger.info(
            "find_path(%d, %d): %s (length=%s, %d×%d ants, %.2fms)",
            source, destination,
            best_trace or "no path",
            f"{shortest:.4f}" if best_trace else "n/a",
            self._iterations, self._ants, self.last_run_ms,
        )
        return best_trace

    def _release_ants(
        self,
        source: int,
        destination: int,
        executor: Optional[ThreadPoolExecutor],
    ) -> List[Ant]:
        """
        Build and walk one iteration's ants, returned in launch order.

        Each ant's generator is spawned from the engine SeedSequence, so
        streams are independent and the ordering is reproducible.
        """
        ants = [
            Ant(
                self._topology,
                self._table,
                rng=np.random.default_rng(child),
                alpha=self._alpha,
                beta=self._beta,
            )
            for child in self._seed_sequence.spawn(self._ants)
        ]

        if executor is None:
            for ant in ants:
                ant.construct(source, destination)
        else:
            futures = [
                executor.submit(ant.construct, source, destination) for ant in ants
            ]
            for future in futures:
                future.result()
        return ants

    # ── Pheromone update ───────────────────────────────────────────────────────

    def _update_trails(self, ants: Sequence[Ant]) -> None:
        """
        Evaporate the whole table, then reinforce successful traces.

        Evaporation always runs first and always covers every edge, so a
        round with no successful ant still decays the table. Deposits are
        added after, so they are not evaporated in the same round.

        Reinforcement per trace: Q / tour_length on every edge whose
        (source, dest) pair appears consecutively in the trace — all
        parallel edges of the pair included. Traces of length ≤ 1 and
        zero-length tours deposit nothing.
        """
        self._table.evaporate(self._evaporation_rate)

        for ant in ants:
            trace = ant.trace
            if len(trace) <= 1 or ant.tour_length <= 0.0:
                continue
            amount = self._quantity / ant.tour_length
            for a, b in zip(trace, trace[1:]):
                for index in self._topology.pair_indices(a, b):
                    self._table.deposit(index, amount)

    # ── Read-only views ────────────────────────────────────────────────────────

    @property
    def edges(self) -> List[Edge]:
        return self._topology.edges

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def pheromone(self) -> PheromoneTable:
        return self._table

    @property
    def ants(self) -> int:
        return self._ants

    @property
    def iterations(self) -> int:
        return self._iterations

    def __repr__(self) -> str:
        return (
            f"AntSystem(edges={len(self._topology)}, ants={self._ants}, "
            f"iterations={self._iterations}, last_run_ms={self.last_run_ms:.2f})"
        )
