"""
routing/control_plane/route_service.py
──────────────────────────────────────
RouteService: the one object a caller talks to.

Responsibilities
─────────────────
  1. Own exactly one AntSystem, built from EngineSettings.
  2. Load topologies (file or already-validated document) into it.
     A bad topology is logged and leaves the engine empty — it never
     propagates to the caller.
  3. Answer route queries as RouteResult records. find_route() never
     raises: "no path" is NOT_FOUND, anything unexpected is ERROR.
  4. Keep simple query metrics (counts, average / P99 latency).

Thread safety
──────────────
Not thread-safe. The engine queues concurrent searches and rejects
topology mutation while it is locked (TopologyBusyError); that surfaces
here as a logged failure for load_topology() / load_document().
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from aco_path import AntSystem, TopologyBusyError
from routing.control_plane.topology_loader import (
    TopologyLoadError,
    load_topology,
    populate_engine,
)
from routing.shared.models import (
    EngineSettings,
    RouteResult,
    RouteStatus,
    TopologyDocument,
)

logger = logging.getLogger(__name__)


def build_engine(settings: EngineSettings) -> AntSystem:
    """An empty AntSystem configured from settings."""
    return AntSystem(
        ants=settings.ants,
        iterations=settings.iterations,
        alpha=settings.alpha,
        beta=settings.beta,
        evaporation_rate=settings.evaporation_rate,
        pheromone_quantity=settings.pheromone_quantity,
        seed=settings.seed,
        workers=settings.workers,
    )


class RouteService:
    """
    Topology loading + route queries on top of one AntSystem.

    Public API:
        load_topology(path)          → int   edges loaded (0 on failure)
        load_document(document)      → int   edges loaded
        find_route(source, dest)     → RouteResult
        get_metrics()                → Dict
        reset()                      → None

    Attributes:
        engine        : AntSystem        — the engine this service drives.
        settings      : EngineSettings   — what the engine was built with.
        query_latencies: deque(maxlen=1000) — per-query engine time, ms.
    """

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self.settings = settings or EngineSettings()
        self.engine = build_engine(self.settings)
        self.query_latencies: deque = deque(maxlen=1000)
        self._counts: Dict[str, int] = {status.value: 0 for status in RouteStatus}

        logger.info(
            "RouteService initialised (ants=%d, iterations=%d, workers=%d).",
            self.engine.ants, self.engine.iterations, self.settings.workers,
        )

    # ── Topology ───────────────────────────────────────────────────────────────

    def load_topology(self, path: Union[str, Path]) -> int:
        """
        Replace the engine's topology with the one in `path`.

        The engine is cleared BEFORE the file is read, so a failed load
        leaves it with an empty topology rather than the previous one.

        Returns:
            Number of edges loaded; 0 if the file was rejected.
        """
        try:
            self.engine.clear()
            document = load_topology(path)
        except (TopologyLoadError, TopologyBusyError) as exc:
            logger.error("Topology load failed: %s", exc)
            return 0
        return self.load_document(document)

    def load_document(self, document: TopologyDocument) -> int:
        """Replace the engine's topology with an already-validated document."""
        try:
            self.engine.clear()
        except TopologyBusyError as exc:
            logger.error("Topology load failed: %s", exc)
            return 0

        try:
            count = populate_engine(self.engine, document)
        except ValueError as exc:
            logger.error("Topology load failed: %s", exc)
            self.engine.clear()
            return 0

        logger.info(
            "Topology loaded: %d edges across %d node(s).",
            count, len(self.engine.topology.nodes),
        )
        return count

    def reset(self) -> None:
        """Drop the topology and all learned pheromone."""
        self.engine.clear()
        logger.info("RouteService reset: engine cleared.")

    # ── Queries ────────────────────────────────────────────────────────────────

    def find_route(self, source: int, destination: int) -> RouteResult:
        """
        Ask the engine for a path and wrap the outcome.

        Returns:
            RouteResult with status FOUND, NOT_FOUND or ERROR.
        """
        try:
            path = self.engine.find_path(source, destination)
        except Exception as e:
            logger.exception(
                "Unexpected error in find_route(%s, %s)", source, destination
            )
            return self._record(RouteResult(
                source=source,
                destination=destination,
                status=RouteStatus.ERROR,
                message=f"Unexpected error: {e.__class__.__name__}: {e}",
            ))

        latency_ms = self.engine.last_run_ms
        self.query_latencies.append(latency_ms)

        if not path:
            logger.info("No route %d → %d (%.2fms)", source, destination, latency_ms)
            return self._record(RouteResult(
                source=source,
                destination=destination,
                status=RouteStatus.NOT_FOUND,
                latency_ms=latency_ms,
                message=f"No ant reached {destination} from {source}",
            ))

        length = self.engine.tour_length(path)
        logger.info(
            "Route %d → %d: %s (length %.4f, %.2fms)",
            source, destination, path, length, latency_ms,
        )
        return self._record(RouteResult(
            source=source,
            destination=destination,
            status=RouteStatus.FOUND,
            path=path,
            length=length,
            latency_ms=latency_ms,
            message=f"{len(path) - 1} hop(s), length {length:g}",
        ))

    def _record(self, result: RouteResult) -> RouteResult:
        self._counts[result.status.value] += 1
        return result

    # ── Metrics ────────────────────────────────────────────────────────────────

    def get_metrics(self) -> Dict:
        """
        Query counts and engine latency statistics.

        Returns:
            {
              "queries", "found", "not_found", "errors" : int,
              "avg_latency_ms", "p99_latency_ms"        : float (0.0 if no data),
              "edges"                                   : int,
            }
        """
        latencies = np.array(self.query_latencies, dtype=np.float64)
        return {
            "queries": sum(self._counts.values()),
            "found": self._counts[RouteStatus.FOUND.value],
            "not_found": self._counts[RouteStatus.NOT_FOUND.value],
            "errors": self._counts[RouteStatus.ERROR.value],
            "avg_latency_ms": float(latencies.mean()) if latencies.size else 0.0,
            "p99_latency_ms": (
                float(np.percentile(latencies, 99)) if latencies.size else 0.0
            ),
            "edges": len(self.engine.topology),
        }
