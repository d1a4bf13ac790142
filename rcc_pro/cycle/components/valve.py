"""Expansion valve component model for RCC Pro cycle analysis.

Models throttling of the refrigerant liquid as an isenthalpic pressure drop
to the downstream saturation pressure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rcc_pro.core.errors import InvalidConfiguration
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import CycleComponent, StatePoint, lookup_point


@dataclass
class ValveResult:
    """Valve analysis result."""

    inlet: StatePoint
    outlet: StatePoint
    pressure_drop: float = 0.0  # Pa


class ExpansionValve(CycleComponent):
    """Isenthalpic expansion valve.

    Args:
        provider: Property provider of the current calculation.
        name: Component name.
    """

    component_type = "valve"

    def __init__(self, provider: PropertyProvider, name: str = "expansion_valve"):
        self.name = name
        self._provider = provider
        self._result: ValveResult | None = None

    def compute(
        self,
        inlet: StatePoint,
        outlet_pressure: float = 0.0,
        label: str = "evaporator inlet",
        **kwargs: Any,
    ) -> StatePoint:
        """Throttle *inlet* to *outlet_pressure* at constant enthalpy.

        Raises:
            InvalidConfiguration: If the outlet pressure is not below the inlet
                pressure.
        """
        if outlet_pressure >= inlet.pressure:
            raise InvalidConfiguration(
                f"Valve outlet pressure {outlet_pressure:.0f} Pa must be below "
                f"inlet pressure {inlet.pressure:.0f} Pa"
            )
        outlet = lookup_point(
            self._provider, label, inlet.fluid_name, "P", outlet_pressure, "H", inlet.enthalpy,
            inlet.mass_flow,
        )
        self._result = ValveResult(
            inlet=inlet, outlet=outlet, pressure_drop=inlet.pressure - outlet_pressure
        )
        return outlet

    def power(self) -> float:
        """Valves consume no power."""
        return 0.0

    def summary(self) -> dict[str, Any]:
        d = super().summary()
        if self._result:
            d["pressure_drop_bar"] = self._result.pressure_drop / 1e5
            d["outlet_quality"] = self._result.outlet.quality
        return d
