"""
routing/control_plane/settings.py
─────────────────────────────────
Engine settings: optional YAML file → validated EngineSettings.

    # settings.yaml
    ants: 120
    iterations: 60
    beta: 4.0
    seed: 7

Any key left out keeps its EngineSettings default. An unknown key or an
out-of-range value is an error (SettingsError), not a silent default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from routing.shared.models import EngineSettings


class SettingsError(Exception):
    """Raised when a settings file cannot be read or validated."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid settings in {source}: {reason}")


def load_settings(path: Optional[Union[str, Path]] = None) -> EngineSettings:
    """
    Load EngineSettings from a YAML file, or return defaults when path is None.

    An empty file is treated as an empty mapping.

    Raises:
        SettingsError: on I/O failure, undecodable bytes or invalid YAML,
                       a non-mapping document,
                       or a pydantic validation failure.
    """
    if path is None:
        return EngineSettings()

    path = Path(path)
    try:
        # Bytes in: undecodable input surfaces as yaml.reader.ReaderError.
        with path.open("rb") as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise SettingsError(str(path), exc.strerror or str(exc)) from exc
    except yaml.YAMLError as exc:
        raise SettingsError(str(path), f"invalid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise SettingsError(
            str(path), f"expected a mapping, got {type(raw).__name__}"
        )

    try:
        return EngineSettings.model_validate(raw)
    except ValidationError as exc:
        raise SettingsError(str(path), str(exc)) from exc
