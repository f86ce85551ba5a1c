"""
routing/control_plane/topology_loader.py
────────────────────────────────────────
Topology loading: JSON file → validated TopologyDocument → engine edges.

The loader is the only place that knows about the serialized format.
It hands the engine plain (source, dest, weight) triples; the engine
never parses anything.

Error handling contract
────────────────────────
  TopologyLoadError: raised for every way a topology source can be bad —
                     missing/unreadable file, invalid JSON, schema violation.
                     The original exception is chained (raise … from exc).

                     Callers (RouteService) catch it, log it, and carry on
                     with an empty topology. A bad file must never leave the
                     engine half-loaded.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from aco_path import AntSystem
from routing.shared.models import TopologyDocument

logger = logging.getLogger(__name__)


class TopologyLoadError(Exception):
    """
    Raised when a topology source cannot be turned into a TopologyDocument.

    Attributes:
        source: Path or short description of what was being loaded.
        reason: Human-readable explanation.
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load topology from {source}: {reason}")


def parse_topology(data: Any, source: str = "<data>") -> TopologyDocument:
    """
    Validate an already-decoded JSON value.

    Args:
        data:   Decoded JSON (expected: a dict with number_of_nodes).
        source: Label used in error messages.

    Raises:
        TopologyLoadError: if data does not match the schema.
    """
    if not isinstance(data, dict):
        raise TopologyLoadError(
            source, f"expected a JSON object, got {type(data).__name__}"
        )
    try:
        return TopologyDocument.from_file_data(data)
    except ValidationError as exc:
        raise TopologyLoadError(
            source, f"{exc.error_count()} validation error(s): {exc}"
        ) from exc


def load_topology(path: Union[str, Path]) -> TopologyDocument:
    """
    Read and validate a topology JSON file.

    Raises:
        TopologyLoadError: on I/O failure, undecodable bytes, invalid JSON
                           or schema violation.
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            data = json.load(f)
    except OSError as exc:
        raise TopologyLoadError(str(path), exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise TopologyLoadError(
            str(path), f"not valid {exc.encoding} text at byte {exc.start}"
        ) from exc
    except json.JSONDecodeError as exc:
        raise TopologyLoadError(
            str(path), f"invalid JSON at line {exc.lineno}, column {exc.colno}"
        ) from exc

    document = parse_topology(data, source=str(path))
    logger.debug(
        "Parsed topology %s: %d declared nodes, %d links in %d group(s)",
        path, document.number_of_nodes, len(document.links), len(document.groups),
    )
    return document


def populate_engine(engine: AntSystem, document: TopologyDocument) -> int:
    """
    Insert every link of `document` into `engine`, in document order.

    Every insertion resets the engine's pheromone table, so loading a
    topology always leaves the engine with uniform initial pheromone.

    Returns:
        Number of edges inserted.
    """
    count = 0
    for source, dest, weight in document.edge_triples():
        engine.insert_edge(source, dest, weight)
        count += 1
    return count
