"""Configuration and result persistence for RCC Pro.

Saves and loads cycle configurations (with their mode and project metadata)
and writes calculation results as JSON. The calculation core never calls
into this module; it is used by the command-line interface and by
applications embedding the library.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

from rcc_pro import __version__
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult

logger = logging.getLogger(__name__)


# --- Project metadata ---


@dataclass
class ProjectMeta:
    """Top-level project metadata."""

    name: str = "Untitled"
    description: str = ""
    author: str = ""
    version: str = __version__
    created: str = ""
    modified: str = ""

    def touch(self) -> None:
        """Update the modified timestamp (and created, on first save)."""
        now = datetime.now(timezone.utc).isoformat()
        if not self.created:
            self.created = now
        self.modified = now


@dataclass
class CalculationFile:
    """Contents of a saved configuration file."""

    configuration: CycleConfiguration
    mode: CycleMode | None = None
    meta: ProjectMeta = field(default_factory=ProjectMeta)


# --- JSON serialization ---


class _NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types and enums."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, (np.integer,)):
            return int(obj)
        if isinstance(obj, (np.floating,)):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def save_configuration_json(
    config: CycleConfiguration,
    path: str | Path,
    mode: CycleMode | str | int | None = None,
    meta: ProjectMeta | None = None,
) -> None:
    """Save a cycle configuration to a JSON file."""
    path = Path(path)
    meta = meta or ProjectMeta()
    meta.touch()

    data = {
        "meta": asdict(meta),
        "mode": CycleMode.parse(mode).value if mode is not None else None,
        "configuration": config.to_dict(),
    }
    with open(path, "w") as f:
        json.dump(data, f, indent=2, cls=_NumpyEncoder)

    logger.info("Saved configuration to %s", path)


def load_configuration_json(path: str | Path) -> CalculationFile:
    """Load a configuration file written by :func:`save_configuration_json`.

    A bare configuration dict (without ``meta``/``mode`` wrapper) is also
    accepted.
    """
    path = Path(path)
    with open(path) as f:
        data = json.load(f)

    if "configuration" not in data:
        return CalculationFile(configuration=CycleConfiguration.from_dict(data))

    mode = data.get("mode")
    return CalculationFile(
        configuration=CycleConfiguration.from_dict(data["configuration"]),
        mode=CycleMode.parse(mode) if mode is not None else None,
        meta=ProjectMeta(**data.get("meta", {})),
    )


def save_result_json(
    result: CycleResult,
    path: str | Path,
    config: CycleConfiguration | None = None,
    meta: ProjectMeta | None = None,
) -> None:
    """Write a calculation result (and optionally its configuration) to JSON."""
    path = Path(path)
    meta = meta or ProjectMeta()
    meta.touch()

    data: dict[str, Any] = {"meta": asdict(meta), "result": result.to_dict()}
    if config is not None:
        data["configuration"] = config.to_dict()
    with open(path, "w") as f:
        json.dump(data, f, indent=2, cls=_NumpyEncoder)

    logger.info("Saved result to %s", path)
