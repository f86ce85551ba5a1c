"""
tests/test_route_service.py
───────────────────────────
Everything around the engine: topology files, settings files, the
RouteService and the command line.

Reading guide
─────────────
Group 1 — Topology loader
    Valid documents, schema violations, I/O and JSON errors.

Group 2 — Settings
    YAML overrides, defaults, rejected keys and documents.

Group 3 — RouteService
    FOUND / NOT_FOUND / ERROR results, metrics, failed loads.

Group 4 — CLI
    Exit codes and printed output.

All files are written to pytest's tmp_path; every search runs with a
fixed seed and a small colony.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from aco_path import AntSystem
from routing.cli import main
from routing.control_plane import (
    RouteService,
    SettingsError,
    TopologyLoadError,
    build_engine,
    load_settings,
    load_topology,
    parse_topology,
    populate_engine,
)
from routing.shared.models import EngineSettings, RouteStatus, TopologyDocument


# ─────────────────────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────────────────────

DETOUR = {
    "number_of_nodes": 6,
    "links": [
        {"nodes": [0, 5], "length": 10},
        {"nodes": [0, 3], "length": 2},
        {"nodes": [3, 5], "length": 2},
    ],
}


def _write_json(tmp_path: Path, data, name: str = "topology.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _write_text(tmp_path: Path, text: str, name: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def _write_bytes(tmp_path: Path, raw: bytes, name: str) -> Path:
    path = tmp_path / name
    path.write_bytes(raw)
    return path


def _settings(**overrides) -> EngineSettings:
    values = {"ants": 20, "iterations": 10, "seed": 42}
    values.update(overrides)
    return EngineSettings(**values)


def _service(tmp_path: Path, data=DETOUR, **overrides) -> RouteService:
    service = RouteService(_settings(**overrides))
    service.load_topology(_write_json(tmp_path, data))
    return service


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 1 — Topology loader
# ─────────────────────────────────────────────────────────────────────────────

class TestTopologyLoader:
    """JSON file → TopologyDocument → engine edges."""

    def test_valid_file(self, tmp_path):
        document = load_topology(_write_json(tmp_path, DETOUR))
        assert document.number_of_nodes == 6
        assert list(document.edge_triples()) == [(0, 5, 10.0), (0, 3, 2.0), (3, 5, 2.0)]

    def test_groups_concatenate_in_document_order(self):
        document = parse_topology({
            "number_of_nodes": 4,
            "backbone": [{"nodes": [0, 1], "length": 1}],
            "access": [{"nodes": [1, 2], "length": 2}, {"nodes": [2, 3], "length": 3}],
        })
        assert list(document.groups) == ["backbone", "access"]
        assert [l.nodes for l in document.links] == [(0, 1), (1, 2), (2, 3)]

    def test_zero_node_count_skips_range_check(self):
        document = parse_topology({
            "number_of_nodes": 0,
            "links": [{"nodes": [7, 9], "length": 1}],
        })
        assert len(document.links) == 1

    def test_missing_node_count_rejected(self):
        with pytest.raises(TopologyLoadError):
            parse_topology({"links": [{"nodes": [0, 1], "length": 1}]})

    def test_endpoint_out_of_range_rejected(self):
        with pytest.raises(TopologyLoadError) as info:
            parse_topology({"number_of_nodes": 2, "links": [{"nodes": [0, 2], "length": 1}]})
        assert "outside 0..1" in str(info.value)

    @pytest.mark.parametrize("link", [
        {"nodes": [0, 1], "length": -1},
        {"nodes": [0, -1], "length": 1},
        {"nodes": [0, 1, 2], "length": 1},
        {"nodes": [0, 1]},
    ])
    def test_bad_link_rejected(self, link):
        with pytest.raises(TopologyLoadError):
            parse_topology({"number_of_nodes": 3, "links": [link]})

    def test_non_object_rejected(self):
        with pytest.raises(TopologyLoadError) as info:
            parse_topology([1, 2, 3], source="inline")
        assert info.value.source == "inline"
        assert "list" in info.value.reason

    def test_invalid_json(self, tmp_path):
        path = _write_text(tmp_path, "{not json", "broken.json")
        with pytest.raises(TopologyLoadError) as info:
            load_topology(path)
        assert "invalid JSON" in info.value.reason

    def test_missing_file(self, tmp_path):
        with pytest.raises(TopologyLoadError) as info:
            load_topology(tmp_path / "absent.json")
        assert isinstance(info.value.__cause__, OSError)

    def test_undecodable_bytes(self, tmp_path):
        """A file that is not UTF-8 text is a load error, not a UnicodeDecodeError."""
        raw = json.dumps(DETOUR).encode("utf-8") + b"\xff\xfe"
        path = _write_bytes(tmp_path, raw, "binary.json")
        with pytest.raises(TopologyLoadError) as info:
            load_topology(path)
        assert isinstance(info.value.__cause__, UnicodeDecodeError)
        assert "utf-8" in info.value.reason

    def test_group_named_groups_is_a_link_group(self):
        document = parse_topology({
            "number_of_nodes": 3,
            "groups": [{"nodes": [0, 1], "length": 1}],
            "links": [{"nodes": [1, 2], "length": 2}],
        })
        assert list(document.groups) == ["groups", "links"]
        assert list(document.edge_triples()) == [(0, 1, 1.0), (1, 2, 2.0)]

    def test_field_layout_rejects_unknown_keys(self):
        """model_validate() takes the field layout; stray keys are not dropped."""
        with pytest.raises(ValueError):
            TopologyDocument.model_validate({
                "number_of_nodes": 2,
                "groups": {},
                "links": [{"nodes": [0, 1], "length": 1}],
            })

    def test_populate_engine(self):
        engine = AntSystem(ants=5, iterations=2, seed=0)
        count = populate_engine(engine, TopologyDocument.from_file_data(DETOUR))
        assert count == 3
        assert [e.id for e in engine.edges] == [1, 2, 3]
        assert [e.weight for e in engine.edges] == [10.0, 2.0, 2.0]


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 2 — Settings
# ─────────────────────────────────────────────────────────────────────────────

class TestSettings:
    """YAML → EngineSettings."""

    def test_defaults_without_file(self):
        settings = load_settings(None)
        assert settings == EngineSettings()
        assert (settings.ants, settings.iterations) == (250, 150)
        assert (settings.alpha, settings.beta, settings.evaporation_rate) == (1.0, 5.0, 0.5)

    def test_yaml_overrides(self, tmp_path):
        path = _write_text(tmp_path, "ants: 30\nbeta: 3.5\nseed: 9\n", "settings.yaml")
        settings = load_settings(path)
        assert settings.ants == 30
        assert settings.beta == 3.5
        assert settings.seed == 9
        assert settings.iterations == 150

    def test_empty_file_is_defaults(self, tmp_path):
        path = _write_text(tmp_path, "", "empty.yaml")
        assert load_settings(path) == EngineSettings()

    def test_unknown_key_rejected(self, tmp_path):
        path = _write_text(tmp_path, "antz: 30\n", "typo.yaml")
        with pytest.raises(SettingsError):
            load_settings(path)

    def test_out_of_range_rejected(self, tmp_path):
        path = _write_text(tmp_path, "evaporation_rate: 2.0\n", "rho.yaml")
        with pytest.raises(SettingsError):
            load_settings(path)

    def test_list_document_rejected(self, tmp_path):
        path = _write_text(tmp_path, "- 1\n- 2\n", "list.yaml")
        with pytest.raises(SettingsError) as info:
            load_settings(path)
        assert "mapping" in info.value.reason

    def test_missing_file(self, tmp_path):
        with pytest.raises(SettingsError):
            load_settings(tmp_path / "absent.yaml")

    def test_undecodable_bytes(self, tmp_path):
        path = _write_bytes(tmp_path, b"ants: 30\nseed: \xff\xfe\n", "binary.yaml")
        with pytest.raises(SettingsError):
            load_settings(path)

    def test_negative_seed_rejected(self, tmp_path):
        path = _write_text(tmp_path, "seed: -1\n", "seed.yaml")
        with pytest.raises(SettingsError):
            load_settings(path)
        with pytest.raises(ValueError):
            EngineSettings(seed=-1)

    def test_build_engine_uses_settings(self):
        engine = build_engine(_settings(ants=7, iterations=3))
        assert (engine.ants, engine.iterations) == (7, 3)

    def test_zero_counts_fall_back_to_engine_defaults(self):
        engine = build_engine(_settings(ants=0, iterations=0))
        assert (engine.ants, engine.iterations) == (250, 150)


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 3 — RouteService
# ─────────────────────────────────────────────────────────────────────────────

class TestRouteService:
    """Topology loading + route queries + metrics."""

    def test_load_returns_edge_count(self, tmp_path):
        service = RouteService(_settings())
        assert service.load_topology(_write_json(tmp_path, DETOUR)) == 3
        assert len(service.engine.edges) == 3

    def test_found(self, tmp_path):
        result = _service(tmp_path).find_route(0, 5)
        assert result.status is RouteStatus.FOUND
        assert result.path == [0, 3, 5]
        assert result.length == pytest.approx(4.0)
        assert result.message == "2 hop(s), length 4"

    def test_not_found(self, tmp_path):
        result = _service(tmp_path).find_route(5, 0)
        assert result.status is RouteStatus.NOT_FOUND
        assert result.path == []
        assert result.length is None
        assert result.message == "No ant reached 0 from 5"

    def test_engine_failure_is_error(self, tmp_path, monkeypatch, caplog):
        service = _service(tmp_path)

        def broken(source, destination):
            raise RuntimeError("table corrupted")

        monkeypatch.setattr(service.engine, "find_path", broken)
        with caplog.at_level(logging.ERROR):
            result = service.find_route(0, 5)
        assert result.status is RouteStatus.ERROR
        assert result.message == "Unexpected error: RuntimeError: table corrupted"
        assert service.get_metrics()["errors"] == 1
        assert any("find_route(0, 5)" in r.getMessage() for r in caplog.records)

    def test_load_while_engine_locked_is_logged(self, tmp_path, caplog):
        service = _service(tmp_path)
        path = _write_json(tmp_path, DETOUR, "again.json")
        service.engine._lock.acquire()      # stand-in for a running search
        try:
            with caplog.at_level(logging.ERROR):
                assert service.load_topology(path) == 0
                assert service.load_document(TopologyDocument.from_file_data(DETOUR)) == 0
        finally:
            service.engine._lock.release()
        assert sum("Topology load failed" in r.getMessage() for r in caplog.records) == 2
        assert len(service.engine.edges) == 3

    def test_metrics(self, tmp_path):
        service = _service(tmp_path)
        service.find_route(0, 5)
        service.find_route(0, 3)
        service.find_route(5, 0)
        metrics = service.get_metrics()
        assert metrics["queries"] == 3
        assert metrics["found"] == 2
        assert metrics["not_found"] == 1
        assert metrics["errors"] == 0
        assert metrics["edges"] == 3
        assert metrics["avg_latency_ms"] > 0.0
        assert metrics["p99_latency_ms"] > 0.0

    def test_metrics_empty(self):
        metrics = RouteService(_settings()).get_metrics()
        assert metrics["queries"] == 0
        assert metrics["avg_latency_ms"] == 0.0
        assert metrics["p99_latency_ms"] == 0.0

    def test_failed_load_logs_and_empties_engine(self, tmp_path, caplog):
        service = _service(tmp_path)
        bad = _write_text(tmp_path, "{oops", "bad.json")
        with caplog.at_level(logging.ERROR):
            assert service.load_topology(bad) == 0
        assert any("Topology load failed" in r.message for r in caplog.records)
        assert service.engine.edges == []
        assert service.find_route(0, 5).status is RouteStatus.NOT_FOUND

    def test_load_replaces_previous_topology(self, tmp_path):
        service = _service(tmp_path)
        other = {"number_of_nodes": 2, "links": [{"nodes": [0, 1], "length": 1}]}
        assert service.load_topology(_write_json(tmp_path, other, "other.json")) == 1
        assert [e.pair for e in service.engine.edges] == [(0, 1)]

    def test_load_document(self):
        service = RouteService(_settings())
        assert service.load_document(TopologyDocument.from_file_data(DETOUR)) == 3
        assert service.find_route(0, 5).path == [0, 3, 5]

    def test_reset(self, tmp_path):
        service = _service(tmp_path)
        service.reset()
        assert service.engine.edges == []
        assert len(service.engine.pheromone) == 0


# ─────────────────────────────────────────────────────────────────────────────
# GROUP 4 — CLI
# ─────────────────────────────────────────────────────────────────────────────

class TestCli:
    """aco-path TOPOLOGY SOURCE DEST [options]."""

    def _args(self, path: Path, *extra: str):
        return [str(path), *extra, "--ants", "20", "--iterations", "10", "--seed", "3"]

    def test_path_found(self, tmp_path, capsys):
        path = _write_json(tmp_path, DETOUR)
        assert main(self._args(path, "0", "5")) == 0
        out = capsys.readouterr().out
        assert "0 -> 3 -> 5" in out
        assert "Length: 4" in out

    def test_no_path(self, tmp_path, capsys):
        path = _write_json(tmp_path, DETOUR)
        assert main(self._args(path, "5", "0")) == 1
        assert "No ant reached 0 from 5" in capsys.readouterr().out

    def test_unloadable_topology(self, tmp_path, capsys):
        path = _write_text(tmp_path, "[]", "list.json")
        assert main(self._args(path, "0", "5")) == 1
        assert "No edges loaded" in capsys.readouterr().out

    def test_config_file(self, tmp_path, capsys):
        topology = _write_json(tmp_path, DETOUR)
        config = _write_text(tmp_path, "ants: 15\niterations: 5\nseed: 1\n", "cfg.yaml")
        assert main([str(topology), "0", "5", "--config", str(config)]) == 0
        assert "0 -> 3 -> 5" in capsys.readouterr().out

    def test_bad_config_is_usage_error(self, tmp_path):
        topology = _write_json(tmp_path, DETOUR)
        config = _write_text(tmp_path, "nonsense: 1\n", "cfg.yaml")
        with pytest.raises(SystemExit) as info:
            main([str(topology), "0", "5", "--config", str(config)])
        assert info.value.code == 2

    def test_bad_override_is_usage_error(self, tmp_path):
        topology = _write_json(tmp_path, DETOUR)
        with pytest.raises(SystemExit) as info:
            main([str(topology), "0", "5", "--workers", "0"])
        assert info.value.code == 2

    def test_negative_seed_is_usage_error(self, tmp_path):
        topology = _write_json(tmp_path, DETOUR)
        with pytest.raises(SystemExit) as info:
            main([str(topology), "0", "5", "--seed", "-1"])
        assert info.value.code == 2

    def test_undecodable_topology_exits_1(self, tmp_path, capsys):
        raw = json.dumps(DETOUR).encode("utf-8") + b"\xff\xfe"
        path = _write_bytes(tmp_path, raw, "binary.json")
        assert main(self._args(path, "0", "5")) == 1
        assert "No edges loaded" in capsys.readouterr().out
