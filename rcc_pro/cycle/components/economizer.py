"""Economizer component models for RCC Pro cycle analysis.

Two interstage economizers are supported:

- **Flash tank**: the liquid is throttled into a vessel at the economizer
  pressure and separates into saturated liquid and saturated vapour.
- **Subcooler** (closed economizer): a side stream is throttled to the
  economizer pressure and evaporated against the main liquid, which stays
  at its own pressure and leaves subcooled.

In both cases the vapour leaves as an injection stream for the compressor
interstage line, and the mass/energy balance fixes its flow from the
downstream (outlet) liquid flow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from rcc_pro.core.errors import InvalidConfiguration
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import CycleComponent, StatePoint, lookup_point

logger = logging.getLogger(__name__)


class EconomizerType(Enum):
    """Economizer construction."""

    FLASH = "flash"
    SUBCOOLER = "subcooler"


@dataclass
class EconomizerResult:
    """Economizer balance result."""

    liquid_in: StatePoint
    liquid_out: StatePoint
    vapor_out: StatePoint
    pressure: float  # Pa
    inlet_flow: float  # kg/s, liquid arriving
    outlet_flow: float  # kg/s, liquid continuing downstream
    injection_flow: float  # kg/s, vapour to the compressor
    vapor_fraction: float = 0.0  # flash quality, flash tank only
    heat_transfer: float = 0.0  # W, subcooler duty

    @property
    def injection_ratio(self) -> float:
        return self.injection_flow / self.outlet_flow if self.outlet_flow > 0 else 0.0


class Economizer(CycleComponent):
    """Flash-tank or subcooler economizer.

    Args:
        provider: Property provider of the current calculation.
        kind: Economizer construction.
        superheat: Superheat of the subcooler side stream at exit [K].
        approach: Main-liquid outlet temperature above the economizer
            saturation temperature [K] (subcooler only).
        name: Component name.
    """

    component_type = "economizer"

    def __init__(
        self,
        provider: PropertyProvider,
        kind: EconomizerType | str = EconomizerType.FLASH,
        superheat: float = 0.0,
        approach: float = 5.0,
        name: str = "economizer",
    ):
        self.name = name
        self.kind = EconomizerType(kind)
        self._provider = provider
        self._superheat = superheat
        self._approach = approach
        self._result: EconomizerResult | None = None

    def compute(
        self,
        inlet: StatePoint,
        pressure: float = 0.0,
        outlet_flow: float = 0.0,
        **kwargs: Any,
    ) -> StatePoint:
        """Balance the economizer for a given downstream liquid flow.

        Args:
            inlet: Liquid arriving from upstream.
            pressure: Economizer pressure [Pa].
            outlet_flow: Liquid mass flow continuing downstream [kg/s].

        Returns:
            Liquid outlet state. The vapour stream and flows are available
            from :attr:`result`.

        Raises:
            InvalidConfiguration: If the economizer pressure is not below
                the liquid pressure, or the subcooler cannot cool the liquid.
        """
        if pressure >= inlet.pressure:
            raise InvalidConfiguration(
                f"Economizer pressure {pressure / 1e5:.3f} bar must be below the "
                f"liquid pressure {inlet.pressure / 1e5:.3f} bar"
            )
        if self.kind == EconomizerType.FLASH:
            self._result = self._flash(inlet, pressure, outlet_flow)
        else:
            self._result = self._subcool(inlet, pressure, outlet_flow)
        return self._result.liquid_out

    def _flash(self, inlet: StatePoint, pressure: float, outlet_flow: float) -> EconomizerResult:
        fluid = inlet.fluid_name
        liquid = lookup_point(self._provider, "economizer liquid", fluid, "P", pressure, "Q", 0.0)
        vapor = lookup_point(self._provider, "economizer vapour", fluid, "P", pressure, "Q", 1.0)

        x = (inlet.enthalpy - liquid.enthalpy) / (vapor.enthalpy - liquid.enthalpy)
        if x <= 0.0:
            # Liquid already colder than the tank: nothing flashes
            logger.warning("Flash economizer at %.2f bar receives subcooled liquid; no flash gas", pressure / 1e5)
            liquid = lookup_point(
                self._provider, "economizer liquid", fluid, "P", pressure, "H", inlet.enthalpy
            )
            x = 0.0
        m_inj = outlet_flow * x / (1.0 - x)

        return EconomizerResult(
            liquid_in=inlet,
            liquid_out=liquid.with_mass_flow(outlet_flow),
            vapor_out=vapor.with_mass_flow(m_inj),
            pressure=pressure,
            inlet_flow=outlet_flow + m_inj,
            outlet_flow=outlet_flow,
            injection_flow=m_inj,
            vapor_fraction=x,
        )

    def _subcool(self, inlet: StatePoint, pressure: float, outlet_flow: float) -> EconomizerResult:
        fluid = inlet.fluid_name
        T_sat = self._provider.saturation_temperature(fluid, pressure)

        T_liquid_out = T_sat + self._approach
        if T_liquid_out >= inlet.temperature:
            raise InvalidConfiguration(
                f"Subcooler cannot cool liquid at {inlet.temperature - 273.15:.1f} °C to "
                f"{T_liquid_out - 273.15:.1f} °C"
            )
        liquid = lookup_point(
            self._provider, "subcooled liquid", fluid, "P", inlet.pressure, "T", T_liquid_out,
            outlet_flow,
        )
        if self._superheat > 0:
            vapor = lookup_point(
                self._provider, "economizer vapour", fluid, "P", pressure, "T",
                T_sat + self._superheat,
            )
        else:
            vapor = lookup_point(self._provider, "economizer vapour", fluid, "P", pressure, "Q", 1.0)

        dh_main = inlet.enthalpy - liquid.enthalpy
        dh_side = vapor.enthalpy - inlet.enthalpy
        if dh_main <= 0 or dh_side <= 0:
            raise InvalidConfiguration(
                "Subcooler energy balance has no driving enthalpy difference"
            )
        m_inj = outlet_flow * dh_main / dh_side

        return EconomizerResult(
            liquid_in=inlet,
            liquid_out=liquid,
            vapor_out=vapor.with_mass_flow(m_inj),
            pressure=pressure,
            inlet_flow=outlet_flow + m_inj,
            outlet_flow=outlet_flow,
            injection_flow=m_inj,
            heat_transfer=outlet_flow * dh_main,
        )

    @property
    def result(self) -> EconomizerResult | None:
        return self._result

    def power(self) -> float:
        """Economizers consume no power."""
        return 0.0

    def summary(self) -> dict[str, Any]:
        d = super().summary()
        if self._result:
            d["kind"] = self.kind.value
            d["pressure_bar"] = self._result.pressure / 1e5
            d["injection_ratio"] = self._result.injection_ratio
            d["heat_transfer_kW"] = self._result.heat_transfer / 1e3
        return d
