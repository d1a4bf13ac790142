"""Utility modules for RCC Pro."""

from rcc_pro.utils.constants import T_CELSIUS_OFFSET
from rcc_pro.utils.units import pressure_from_si, pressure_to_si, temperature_from_si, temperature_to_si

__all__ = [
    "T_CELSIUS_OFFSET",
    "pressure_from_si",
    "pressure_to_si",
    "temperature_from_si",
    "temperature_to_si",
]
