"""
routing/shared/models.py
────────────────────────
Every data structure that crosses the boundary between the engine and
its collaborators (topology files, settings files, route queries).

Reading guide
-------------
Section 1: the serialized topology (what a topology JSON file holds).
Section 2: engine settings (what a settings YAML file holds).
Section 3: route results (what RouteService.find_route() answers).

The engine itself (aco_path) never imports this module — it only ever
sees plain (source, dest, weight) triples and returns a list of ints.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator

from aco_path.ant import ALPHA, BETA
from aco_path.colony import N_ANTS, N_ITERATIONS
from aco_path.pheromone import EVAPORATION_RATE, PHERO_QUANTITY


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 1: SERIALIZED TOPOLOGY
# ─────────────────────────────────────────────────────────────────────────────

class TopologyLink(BaseModel):
    """
    One directed link as written in a topology file.

        {"nodes": [0, 3], "length": 2}

    Fields:
        nodes  → [source, dest]. Exactly two non-negative node ids.
        length → Edge weight. Non-negative; zero-length links load fine but
                 are never chosen by an ant (their heuristic is 0).
    """
    nodes: Tuple[NonNegativeInt, NonNegativeInt] = Field(
        ..., description="[source, dest] node ids"
    )
    length: float = Field(..., ge=0.0, description="Edge weight / distance")

    @property
    def source(self) -> int:
        return self.nodes[0]

    @property
    def dest(self) -> int:
        return self.nodes[1]


class TopologyDocument(BaseModel):
    """
    A whole topology file.

    On-disk layout:
        {
          "number_of_nodes": 6,
          "links": [{"nodes": [0, 1], "length": 3}, ...],
          "backbone": [...]
        }

    `number_of_nodes` is required. Every other top-level key is a named
    group of links, whatever its name ("groups" included); groups are kept
    in document order and their links are concatenated by edge_triples().
    The group names carry no meaning for the engine.

    Build from raw file data with from_file_data(); model_validate()
    expects the field layout below.

    Fields:
        number_of_nodes → Declared node count. When > 0, every link
                          endpoint must be < number_of_nodes.
        groups          → Group name → links, in document order.
    """
    model_config = ConfigDict(extra="forbid")

    number_of_nodes: int = Field(..., ge=0, description="Declared node count")
    groups: Dict[str, List[TopologyLink]] = Field(
        default_factory=dict,
        description="Named link groups, in document order",
    )

    @classmethod
    def from_file_data(cls, data: Dict[str, Any]) -> "TopologyDocument":
        """Validate the on-disk layout: every key but number_of_nodes is a group."""
        fields: Dict[str, Any] = {
            "groups": {k: v for k, v in data.items() if k != "number_of_nodes"}
        }
        if "number_of_nodes" in data:
            fields["number_of_nodes"] = data["number_of_nodes"]
        return cls.model_validate(fields)

    @model_validator(mode="after")
    def _endpoints_within_node_count(self) -> "TopologyDocument":
        if self.number_of_nodes == 0:
            return self
        for name, links in self.groups.items():
            for link in links:
                if max(link.nodes) >= self.number_of_nodes:
                    raise ValueError(
                        f"link {list(link.nodes)} in group '{name}' references a node "
                        f"outside 0..{self.number_of_nodes - 1}"
                    )
        return self

    @property
    def links(self) -> List[TopologyLink]:
        return [link for links in self.groups.values() for link in links]

    def edge_triples(self) -> Iterator[Tuple[int, int, float]]:
        """(source, dest, weight) for every link, in document order."""
        for link in self.links:
            yield (link.source, link.dest, link.length)


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 2: ENGINE SETTINGS
# ─────────────────────────────────────────────────────────────────────────────

class EngineSettings(BaseModel):
    """
    Tuning parameters for one AntSystem.

    Defaults mirror the engine's module-level constants. Unknown keys are
    rejected, so a typo in a settings file fails loudly instead of
    silently running with a default.

    Fields:
        ants               → Ants per iteration. 0 = engine default.
        iterations         → Iterations per search. 0 = engine default.
        alpha              → Pheromone exponent.
        beta               → Heuristic (1/weight) exponent.
        evaporation_rate   → ρ, fraction of pheromone lost per iteration.
        pheromone_quantity → Initial pheromone and deposit numerator Q.
        seed               → RNG seed. None = non-reproducible runs.
        workers            → Threads per iteration (1 = sequential).
    """
    model_config = ConfigDict(extra="forbid")

    ants: int = Field(N_ANTS, ge=0)
    iterations: int = Field(N_ITERATIONS, ge=0)
    alpha: float = Field(ALPHA, ge=0.0)
    beta: float = Field(BETA, ge=0.0)
    evaporation_rate: float = Field(EVAPORATION_RATE, ge=0.0, le=1.0)
    pheromone_quantity: float = Field(PHERO_QUANTITY, gt=0.0)
    seed: Optional[int] = Field(None, ge=0)
    workers: int = Field(1, ge=1)


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 3: ROUTE RESULTS
# ─────────────────────────────────────────────────────────────────────────────

class RouteStatus(str, Enum):
    """
    FOUND     → at least one ant reached the destination.
    NOT_FOUND → no ant did. A normal outcome, not an error.
    ERROR     → the query itself failed (unexpected exception in the engine).
    """
    FOUND = "found"
    NOT_FOUND = "not-found"
    ERROR = "error"


class RouteResult(BaseModel):
    """
    Answer to one RouteService.find_route() query.

    Fields:
        source, destination → The queried node pair.
        status              → See RouteStatus.
        path                → Node sequence, [] unless status is FOUND.
        length              → Sum of edge weights along path. None unless FOUND.
        latency_ms          → Wall-clock time spent in the engine.
        message             → Human-readable summary.
    """
    source: int
    destination: int
    status: RouteStatus
    path: List[int] = Field(default_factory=list)
    length: Optional[float] = Field(None, ge=0.0)
    latency_ms: float = Field(0.0, ge=0.0)
    message: str = ""
