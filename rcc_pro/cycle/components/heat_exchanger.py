"""Suction-line heat exchanger model for RCC Pro cycle analysis.

Counter-flow exchanger between the warm condenser liquid (hot side) and
the cold evaporator suction vapour (cold side), using the effectiveness
method in enthalpy form.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import CycleComponent, StatePoint, lookup_point

logger = logging.getLogger(__name__)


@dataclass
class HeatExchangerResult:
    """Heat exchanger analysis result."""

    hot_inlet: StatePoint
    hot_outlet: StatePoint
    cold_inlet: StatePoint
    cold_outlet: StatePoint
    heat_transfer: float = 0.0  # W
    effectiveness: float = 0.0


class SuctionLineHeatExchanger(CycleComponent):
    """Liquid-to-suction heat exchanger.

    Both sides carry the same refrigerant mass flow, so the capacity-rate
    minimum is taken directly in enthalpy terms:

        Δh_max = min(h_cold(T_hot,in) − h_cold,in,  h_hot,in − h_hot(T_cold,in))
        q      = ε · Δh_max

    Args:
        provider: Property provider of the current calculation.
        effectiveness: Heat exchanger effectiveness (0–1).
        name: Component name.
    """

    component_type = "heat_exchanger"

    def __init__(
        self,
        provider: PropertyProvider,
        effectiveness: float = 0.5,
        name: str = "slhx",
    ):
        self.name = name
        self._provider = provider
        self._effectiveness = effectiveness
        self._result: HeatExchangerResult | None = None

    def compute(
        self,
        inlet: StatePoint,
        cold_inlet: StatePoint | None = None,
        **kwargs: Any,
    ) -> StatePoint:
        """Compute heat exchanger outlet states.

        The ``inlet`` parameter is the hot-side (liquid) inlet, following
        the CycleComponent interface. After calling this method, retrieve
        the cold-side outlet from ``self.cold_outlet``.

        Returns:
            Hot-side outlet state.
        """
        if cold_inlet is None:
            raise ValueError("SLHX needs a cold-side (suction) inlet state")

        fluid = inlet.fluid_name
        q = 0.0
        if inlet.temperature <= cold_inlet.temperature:
            logger.warning(
                "SLHX pinch point: liquid (%.1f K) not warmer than suction (%.1f K); no heat exchanged",
                inlet.temperature, cold_inlet.temperature,
            )
        else:
            h_cold_max = self._provider.lookup(
                fluid, "P", cold_inlet.pressure, "T", inlet.temperature
            ).h
            h_hot_min = self._provider.lookup(
                fluid, "P", inlet.pressure, "T", cold_inlet.temperature
            ).h
            dh_max = min(h_cold_max - cold_inlet.enthalpy, inlet.enthalpy - h_hot_min)
            q = self._effectiveness * max(dh_max, 0.0)

        hot_outlet = lookup_point(
            self._provider, "SLHX liquid outlet", fluid, "P", inlet.pressure, "H",
            inlet.enthalpy - q, inlet.mass_flow,
        )
        cold_outlet = lookup_point(
            self._provider, "SLHX suction outlet", fluid, "P", cold_inlet.pressure, "H",
            cold_inlet.enthalpy + q, cold_inlet.mass_flow,
        )

        self._result = HeatExchangerResult(
            hot_inlet=inlet,
            hot_outlet=hot_outlet,
            cold_inlet=cold_inlet,
            cold_outlet=cold_outlet,
            heat_transfer=q * inlet.mass_flow,
            effectiveness=self._effectiveness,
        )
        return hot_outlet

    @property
    def cold_outlet(self) -> StatePoint | None:
        """Cold-side outlet state (available after compute)."""
        return self._result.cold_outlet if self._result else None

    @property
    def specific_duty(self) -> float:
        """Heat transferred per kg of refrigerant [J/kg]."""
        if not self._result:
            return 0.0
        return self._result.cold_outlet.enthalpy - self._result.cold_inlet.enthalpy

    def power(self) -> float:
        """Heat exchangers consume no power."""
        return 0.0

    def summary(self) -> dict[str, Any]:
        d = super().summary()
        if self._result:
            d["heat_transfer_kW"] = self._result.heat_transfer / 1e3
            d["effectiveness"] = self._result.effectiveness
        return d
