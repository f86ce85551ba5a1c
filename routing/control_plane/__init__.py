"""
routing/control_plane — everything around the engine.

Public API:

    Topology loading:
        load_topology()      — JSON file → TopologyDocument
        parse_topology()     — decoded JSON → TopologyDocument
        populate_engine()    — TopologyDocument → AntSystem edges
        TopologyLoadError    — raised on any malformed topology source

    Settings:
        load_settings()      — YAML file → EngineSettings
        SettingsError        — raised on a bad settings file

    Service:
        RouteService         — owns one AntSystem, answers route queries
        build_engine()       — EngineSettings → empty AntSystem
"""

from routing.control_plane.topology_loader import (
    TopologyLoadError,
    load_topology,
    parse_topology,
    populate_engine,
)
from routing.control_plane.settings import SettingsError, load_settings
from routing.control_plane.route_service import RouteService, build_engine

__all__ = [
    "TopologyLoadError",
    "load_topology",
    "parse_topology",
    "populate_engine",
    "SettingsError",
    "load_settings",
    "RouteService",
    "build_engine",
]
