"""Fluid property interface wrapping CoolProp.

Provides the single property-lookup capability the cycle solvers consume:
given a fluid and two independent state variables, return the remaining
properties. Lookups go through CoolProp's low-level ``AbstractState`` and are
memoised in a :class:`PropertyCache` owned by one provider instance, so a
cache never outlives the calculation it was created for.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import CoolProp.CoolProp as CP

from rcc_pro.core.errors import OutOfRange, UnsupportedFluid
from rcc_pro.utils.constants import R_UNIVERSAL

logger = logging.getLogger(__name__)

# Path to bundled refrigerant catalogue
_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
_REFRIGERANT_DB_PATH = _DATA_DIR / "refrigerants.json"

# CoolProp input pairs, keyed by the unordered pair of property names.
# The tuple gives the argument order AbstractState.update() expects.
_INPUT_PAIRS = {
    frozenset(("P", "T")): (CP.PT_INPUTS, ("P", "T")),
    frozenset(("P", "H")): (CP.HmassP_INPUTS, ("H", "P")),
    frozenset(("P", "S")): (CP.PSmass_INPUTS, ("P", "S")),
    frozenset(("P", "Q")): (CP.PQ_INPUTS, ("P", "Q")),
    frozenset(("T", "Q")): (CP.QT_INPUTS, ("Q", "T")),
    frozenset(("H", "S")): (CP.HmassSmass_INPUTS, ("H", "S")),
    frozenset(("P", "D")): (CP.DmassP_INPUTS, ("D", "P")),
}


@dataclass(frozen=True)
class StateProperties:
    """Property bundle returned by one lookup. All values in SI units."""

    T: float  # K
    P: float  # Pa
    h: float  # J/kg
    s: float  # J/(kg·K)
    rho: float  # kg/m³
    quality: float = -1.0  # -1 outside the two-phase region

    @property
    def is_two_phase(self) -> bool:
        return 0.0 <= self.quality <= 1.0


class PropertyCache:
    """Memo of property lookups for a single calculation.

    Keys are ``(fluid, name1, value1, name2, value2)`` in canonical order.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[Any, ...], StateProperties] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: tuple[Any, ...]) -> StateProperties | None:
        props = self._entries.get(key)
        if props is None:
            self.misses += 1
        else:
            self.hits += 1
        return props

    def put(self, key: tuple[Any, ...], props: StateProperties) -> None:
        self._entries[key] = props

    def __len__(self) -> int:
        return len(self._entries)


class Fluid:
    """Interface to thermodynamic properties of a single fluid.

    Wraps CoolProp's low-level AbstractState for efficiency and caches the
    backend object.

    Args:
        name: CoolProp fluid name (e.g. "R134a", "R717", "R404A").
        backend: CoolProp backend string. ``"HEOS"`` for built-in,
                 ``"REFPROP"`` if RefProp is installed.

    Raises:
        UnsupportedFluid: If CoolProp does not know the fluid.
    """

    def __init__(self, name: str, backend: str = "HEOS"):
        self.name = name
        self.backend = backend
        try:
            self._state = CP.AbstractState(backend, name)
        except Exception as exc:
            raise UnsupportedFluid(name, {}, f"backend '{backend}': {exc}") from exc

        # Cache fixed-point data
        self.T_critical = self._state.T_critical()
        self.P_critical = self._state.p_critical()
        self.T_min = self._state.Tmin()
        self.molar_mass = self._state.molar_mass()  # kg/mol

    # --- Core property access ---

    def state(self, name1: str, value1: float, name2: str, value2: float) -> StateProperties:
        """Return the property bundle fixed by two independent properties.

        Property names are ``"P"``, ``"T"``, ``"H"``, ``"S"``, ``"Q"`` and
        ``"D"`` (mass-specific where applicable).

        Raises:
            OutOfRange: If CoolProp cannot resolve the state or returns a
                non-finite value.
        """
        name1, name2 = name1.upper(), name2.upper()
        requested = {name1: value1, name2: value2}
        try:
            pair, order = _INPUT_PAIRS[frozenset((name1, name2))]
        except KeyError:
            raise OutOfRange(
                self.name, requested, f"unsupported input pair ({name1}, {name2})"
            ) from None

        try:
            self._state.update(pair, requested[order[0]], requested[order[1]])
            props = self._extract_props()
        except ValueError as exc:
            raise OutOfRange(self.name, requested, str(exc)) from exc

        if not all(math.isfinite(v) for v in (props.T, props.P, props.h, props.s, props.rho)):
            raise OutOfRange(self.name, requested, "non-finite property returned")
        return props

    def _extract_props(self) -> StateProperties:
        s = self._state
        two_phase = s.phase() == CP.iphase_twophase
        return StateProperties(
            T=s.T(),
            P=s.p(),
            h=s.hmass(),
            s=s.smass(),
            rho=s.rhomass(),
            quality=s.Q() if two_phase else -1.0,
        )

    def __repr__(self) -> str:
        return f"Fluid('{self.name}', backend='{self.backend}')"


class PropertyProvider:
    """Uniform property lookup for the cycle solvers.

    One provider is created per calculation. It owns the :class:`Fluid`
    backends it has opened and an explicit :class:`PropertyCache`.

    Args:
        backend: CoolProp backend used for every fluid.
        cache: Cache to use; ``None`` creates a fresh one. Pass
            ``use_cache=False`` to disable memoisation entirely.
    """

    def __init__(
        self,
        backend: str = "HEOS",
        cache: PropertyCache | None = None,
        use_cache: bool = True,
    ):
        self.backend = backend
        self.cache = (cache if cache is not None else PropertyCache()) if use_cache else None
        self._fluids: dict[str, Fluid] = {}

    def fluid(self, name: str) -> Fluid:
        """Return (and remember) the backend for a fluid."""
        if name not in self._fluids:
            self._fluids[name] = Fluid(coolprop_name(name), backend=self.backend)
        return self._fluids[name]

    def lookup(
        self, fluid: str, name1: str, value1: float, name2: str, value2: float
    ) -> StateProperties:
        """Look up the state of *fluid* fixed by two properties."""
        key = None
        if self.cache is not None:
            a, b = sorted(((name1.upper(), float(value1)), (name2.upper(), float(value2))))
            key = (fluid, a[0], a[1], b[0], b[1])
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        props = self.fluid(fluid).state(name1, value1, name2, value2)

        if key is not None:
            self.cache.put(key, props)
        return props

    # --- Convenience scalar lookups ---

    def saturation_pressure(self, fluid: str, T: float, quality: float = 1.0) -> float:
        """Saturation pressure [Pa] at temperature T [K] (dew point by default)."""
        return self.lookup(fluid, "T", T, "Q", quality).P

    def saturation_temperature(self, fluid: str, P: float, quality: float = 1.0) -> float:
        """Saturation temperature [K] at pressure P [Pa] (dew point by default)."""
        return self.lookup(fluid, "P", P, "Q", quality).T

    def molar_mass(self, fluid: str) -> float:
        """Molar mass [kg/mol]."""
        return self.fluid(fluid).molar_mass

    def gas_constant(self, fluid: str) -> float:
        """Specific gas constant [J/(kg·K)]."""
        return R_UNIVERSAL / self.fluid(fluid).molar_mass

    def critical_point(self, fluid: str) -> tuple[float, float]:
        """Critical temperature [K] and pressure [Pa]."""
        f = self.fluid(fluid)
        return f.T_critical, f.P_critical


def lookup(fluid: str, name1: str, value1: float, name2: str, value2: float) -> StateProperties:
    """One-shot property lookup with a throw-away provider."""
    return PropertyProvider(use_cache=False).lookup(fluid, name1, value1, name2, value2)


# --- Refrigerant catalogue ---


@lru_cache(maxsize=1)
def _load_refrigerant_db() -> dict[str, Any]:
    """Load the refrigerant catalogue JSON file."""
    if not _REFRIGERANT_DB_PATH.exists():
        logger.warning("Refrigerant catalogue not found at %s", _REFRIGERANT_DB_PATH)
        return {}
    with open(_REFRIGERANT_DB_PATH) as f:
        return json.load(f)


def list_fluids() -> list[str]:
    """Return names of all refrigerants in the catalogue."""
    return list(_load_refrigerant_db().keys())


def get_fluid_info(name: str) -> dict[str, Any]:
    """Get refrigerant metadata from the catalogue.

    Args:
        name: Refrigerant name (case-insensitive lookup).

    Raises:
        KeyError: If the refrigerant is not in the catalogue.
    """
    db = _load_refrigerant_db()
    for key, val in db.items():
        if key.lower() == name.lower():
            return val
    raise KeyError(f"Refrigerant '{name}' not found. Available: {list(db.keys())}")


def coolprop_name(name: str) -> str:
    """Resolve a catalogue name to its CoolProp identifier.

    Names outside the catalogue are passed through unchanged so any fluid
    CoolProp knows can still be used.
    """
    try:
        return get_fluid_info(name).get("coolprop_name", name)
    except KeyError:
        return name
