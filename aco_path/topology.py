"""
aco_path/topology.py
────────────────────
The static structure the ants walk on: directed, weighted edges.

Edge identity
─────────────
Every Edge carries an integer id assigned by the Topology at insertion
time (1, 2, 3, … in insertion order). Equality, hashing and ordering use
the id ONLY — two edges with the same endpoints and weight are still two
different edges if their ids differ.

Parallel edges
──────────────
Several edges may join the same ordered pair (u, v). Every lookup that
is keyed on the pair (heuristic, pheromone read, tour length) resolves to
the lowest-id edge of that pair. Reinforcement, on the other hand, is
applied to every edge of the pair (see AntSystem._update_trails).

Index layout
────────────
  _edges     : List[Edge]                 — insertion order, defines the
                                            position of each edge in the
                                            PheromoneTable vector.
  _outgoing  : Dict[int, List[int]]       — source node → edge positions.
  _by_pair   : Dict[(int, int), int]      — (source, dest) → position of
                                            the first edge of that pair.
  _all_pairs : Dict[(int, int), List[int]]— (source, dest) → every position.

All four are maintained incrementally by add(): O(1) per insertion,
O(1) per lookup. No linear scan over the edge list on the hot path.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple


@dataclass(frozen=True, order=True)
class Edge:
    """
    One directed, weighted connection source → dest.

    Only `id` takes part in ==, hash() and <; the other fields are
    excluded from comparison.
    """
    id: int
    source: int = field(compare=False)
    dest: int = field(compare=False)
    weight: float = field(compare=False)

    @property
    def pair(self) -> Tuple[int, int]:
        return (self.source, self.dest)


class Topology:
    """
    Ordered collection of Edges with O(1) neighbourhood and pair lookups.

    Used by:
        Ant              → outgoing(), first_edge_index() while walking.
        AntSystem        → add(), clear(), pair_indices() for deposits.
        Tour evaluation  → tour_length().
    """

    def __init__(self) -> None:
        self._edges: List[Edge] = []
        self._outgoing: Dict[int, List[int]] = {}
        self._by_pair: Dict[Tuple[int, int], int] = {}
        self._all_pairs: Dict[Tuple[int, int], List[int]] = {}
        self._next_id: int = 1

    # ── Mutation ──────────────────────────────────────────────────────────────

    def add(self, source: int, dest: int, weight: float) -> Edge:
        """
        Append a new edge and return it.

        Args:
            source: Non-negative integer node id.
            dest:   Non-negative integer node id.
            weight: Non-negative, finite cost. Zero is accepted; the
                    heuristic treats a zero-weight edge as unusable.

        Raises:
            ValueError: on a non-integer or negative node id, or a negative /
                        non-finite weight. Negative weights are not supported.
        """
        if not isinstance(source, numbers.Integral) or not isinstance(dest, numbers.Integral):
            raise ValueError(
                f"Node ids must be integers, got source={source!r}, dest={dest!r}"
            )
        if source < 0 or dest < 0:
            raise ValueError(
                f"Node ids must be non-negative, got source={source}, dest={dest}"
            )
        weight = float(weight)
        if not math.isfinite(weight) or weight < 0.0:
            raise ValueError(f"Edge weight must be finite and ≥ 0, got {weight}")

        edge = Edge(id=self._next_id, source=int(source), dest=int(dest), weight=weight)
        self._next_id += 1

        position = len(self._edges)
        self._edges.append(edge)
        self._outgoing.setdefault(edge.source, []).append(position)
        self._by_pair.setdefault(edge.pair, position)
        self._all_pairs.setdefault(edge.pair, []).append(position)
        return edge

    def clear(self) -> None:
        """Drop every edge. Ids restart at 1."""
        self._edges.clear()
        self._outgoing.clear()
        self._by_pair.clear()
        self._all_pairs.clear()
        self._next_id = 1

    # ── Lookups ───────────────────────────────────────────────────────────────

    def outgoing(self, node: int) -> List[int]:
        """Positions of every edge leaving `node`, in insertion order."""
        return self._outgoing.get(node, [])

    def first_edge_index(self, source: int, dest: int) -> Optional[int]:
        """Position of the lowest-id edge source → dest, or None."""
        return self._by_pair.get((source, dest))

    def find_edge(self, source: int, dest: int) -> Optional[Edge]:
        index = self._by_pair.get((source, dest))
        return self._edges[index] if index is not None else None

    def pair_indices(self, source: int, dest: int) -> List[int]:
        """Positions of every (parallel) edge source → dest."""
        return self._all_pairs.get((source, dest), [])

    def edge_at(self, index: int) -> Edge:
        return self._edges[index]

    @property
    def edges(self) -> List[Edge]:
        """A copy of the edge list (insertion order)."""
        return list(self._edges)

    @property
    def nodes(self) -> Set[int]:
        """Every integer that appears as an edge endpoint."""
        found: Set[int] = set()
        for edge in self._edges:
            found.add(edge.source)
            found.add(edge.dest)
        return found

    # ── Tour evaluation ───────────────────────────────────────────────────────

    def tour_length(self, trace: Sequence[int]) -> float:
        """
        Sum of edge weights along consecutive node pairs of `trace`.

        Returns 0.0 for a trace of length ≤ 1. That 0.0 means "no tour",
        which a genuine zero-weight tour cannot be told apart from.

        A pair with no matching edge contributes 0.0 instead of raising.
        Ants only produce traces along existing edges, so this only
        matters for traces built elsewhere.
        """
        if len(trace) <= 1:
            return 0.0

        total = 0.0
        for a, b in zip(trace, trace[1:]):
            index = self._by_pair.get((a, b))
            if index is not None:
                total += self._edges[index].weight
        return total

    # ── Dunder ────────────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[Edge]:
        return iter(self._edges)

    def __repr__(self) -> str:
        return f"Topology(edges={len(self._edges)}, nodes={len(self.nodes)})"
