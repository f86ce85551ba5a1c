"""
routing/cli.py
──────────────
Command-line entry point:

    aco-path topology.json 0 5 --ants 100 --iterations 40 --seed 1

Prints the path as "0 -> 3 -> 5" and its length. Exit code 0 when a path
was found, 1 when none was (or the topology could not be loaded), 2 on a
usage error.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from routing.control_plane.route_service import RouteService
from routing.control_plane.settings import SettingsError, load_settings
from routing.shared.models import EngineSettings, RouteStatus

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="aco-path",
        description="Approximate shortest path in a weighted directed graph (Ant System).",
    )
    p.add_argument("topology", help="Topology JSON file")
    p.add_argument("source", type=int, help="Start node id")
    p.add_argument("dest", type=int, help="Destination node id")

    aco = p.add_argument_group("Ant System parameters (override --config)")
    aco.add_argument("--config", default=None, help="YAML settings file")
    aco.add_argument("--ants", type=int, default=None, help="Ants per iteration")
    aco.add_argument("--iterations", type=int, default=None, help="Iterations")
    aco.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
    aco.add_argument("--workers", type=int, default=None, help="Threads per iteration")

    out = p.add_argument_group("Output")
    out.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_argparser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        parser.error(str(exc))

    overrides = {
        name: getattr(args, name)
        for name in ("ants", "iterations", "seed", "workers")
        if getattr(args, name) is not None
    }
    if overrides:
        try:
            settings = EngineSettings.model_validate({**settings.model_dump(), **overrides})
        except ValueError as exc:
            parser.error(str(exc))

    service = RouteService(settings)
    if service.load_topology(args.topology) == 0:
        print(f"No edges loaded from {args.topology}")
        return 1

    result = service.find_route(args.source, args.dest)
    if result.status is not RouteStatus.FOUND:
        print(result.message)
        return 1

    print(" -> ".join(map(str, result.path)))
    print(f"Length: {result.length:g}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
