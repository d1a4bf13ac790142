"""Compressor model catalogue for RCC Pro.

Loads the bundled brand → series → model table of screw compressors and
returns theoretical displacements (m³/h) for use as
``CompressorSpec.displacement``.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
_COMPRESSOR_DB_PATH = _DATA_DIR / "compressors.json"


@lru_cache(maxsize=1)
def _load_compressor_db() -> dict[str, Any]:
    if not _COMPRESSOR_DB_PATH.exists():
        logger.warning("Compressor catalogue not found at %s", _COMPRESSOR_DB_PATH)
        return {}
    with open(_COMPRESSOR_DB_PATH) as f:
        return json.load(f)


def _match(key: str, table: dict[str, Any], kind: str) -> str:
    for name in table:
        if name.lower() == key.lower():
            return name
    raise KeyError(f"{kind} '{key}' not found. Available: {list(table.keys())}")


def list_brands() -> list[str]:
    """Return all compressor brands in the catalogue."""
    return list(_load_compressor_db().keys())


def list_series(brand: str) -> list[str]:
    """Return the series offered by *brand*.

    Raises:
        KeyError: If the brand is unknown.
    """
    db = _load_compressor_db()
    return list(db[_match(brand, db, "Brand")].keys())


def list_models(brand: str, series: str) -> list[str]:
    """Return the model names of one series.

    Raises:
        KeyError: If the brand or series is unknown.
    """
    db = _load_compressor_db()
    brand_db = db[_match(brand, db, "Brand")]
    return list(brand_db[_match(series, brand_db, "Series")].keys())


def get_displacement(brand: str, series: str, model: str) -> float:
    """Theoretical displacement [m³/h] of a catalogue model.

    Raises:
        KeyError: If brand, series or model is unknown.
    """
    db = _load_compressor_db()
    brand_db = db[_match(brand, db, "Brand")]
    series_db = brand_db[_match(series, brand_db, "Series")]
    return float(series_db[_match(model, series_db, "Model")])


def find_displacement(model: str) -> float | None:
    """Search every brand and series for *model* and return its displacement.

    Matching ignores case and surrounding whitespace. Returns ``None`` when
    the model is not in the catalogue.
    """
    wanted = model.strip().lower()
    for series_table in _load_compressor_db().values():
        for models in series_table.values():
            for name, displacement in models.items():
                if name.lower() == wanted:
                    return float(displacement)
    return None
