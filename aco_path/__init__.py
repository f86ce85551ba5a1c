"""
aco_path — Ant System shortest-path engine.

Public API:
    AntSystem          — the engine: insert_edge / find_path / clear
    PathSearchEngine   — capability interface AntSystem implements
    TopologyBusyError  — raised on topology mutation during a search
    Edge, Topology     — the graph model
    PheromoneTable     — per-edge pheromone levels

Usage:
    from aco_path import AntSystem

    engine = AntSystem([(0, 3, 2), (3, 5, 2), (0, 5, 10)], ants=40, iterations=30)
    path = engine.find_path(0, 5)    # [0, 3, 5], or [] if no ant got through
"""

from aco_path.colony import AntSystem, PathSearchEngine, TopologyBusyError
from aco_path.pheromone import PheromoneTable
from aco_path.topology import Edge, Topology

__all__ = [
    "AntSystem",
    "PathSearchEngine",
    "TopologyBusyError",
    "Edge",
    "Topology",
    "PheromoneTable",
]
