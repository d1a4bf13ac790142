"""Unit handling for RCC Pro.

The solvers work in SI throughout (Pa, K, J/kg, W, m³/s). The helpers here
translate at the edges: catalogue and command-line inputs on the way in,
report columns on the way out. All conversions go through one pint
registry.
"""

from __future__ import annotations

from functools import lru_cache

import pint

_ureg = pint.UnitRegistry()
Q_ = _ureg.Quantity

# Display units of the report tables
PRESSURE_UNIT = "bar"
TEMPERATURE_UNIT = "degC"
POWER_UNIT = "kW"
ENTHALPY_UNIT = "kJ/kg"


@lru_cache(maxsize=64)
def _factor(from_unit: str, to_unit: str) -> float:
    # Multiplicative units only; temperatures go through Q_ for the offset
    return Q_(1.0, from_unit).to(to_unit).magnitude


def pressure_to_si(value: float, unit: str = PRESSURE_UNIT) -> float:
    """Pressure in *unit* (e.g. "bar", "psi", "kPa") → Pa."""
    return value * _factor(unit, "Pa")


def pressure_from_si(value_pa: float, unit: str = PRESSURE_UNIT) -> float:
    return value_pa * _factor("Pa", unit)


def temperature_to_si(value: float, unit: str = TEMPERATURE_UNIT) -> float:
    """Temperature in *unit* ("degC", "degF", "K") → K."""
    return Q_(value, unit).to("K").magnitude


def temperature_from_si(value_k: float, unit: str = TEMPERATURE_UNIT) -> float:
    return Q_(value_k, "K").to(unit).magnitude


def volume_flow_to_si(value: float, unit: str) -> float:
    """Volume flow, e.g. a displacement in "m**3/h" or "cm**3/min" → m³/s."""
    return value * _factor(unit, "m**3/s")


def power_from_si(value_w: float, unit: str = POWER_UNIT) -> float:
    return value_w * _factor("W", unit)


def enthalpy_from_si(value: float, unit: str = ENTHALPY_UNIT) -> float:
    """Specific enthalpy or work [J/kg] → *unit*."""
    return value * _factor("J/kg", unit)


def entropy_from_si(value: float, unit: str = "kJ/(kg*K)") -> float:
    return value * _factor("J/(kg*K)", unit)
