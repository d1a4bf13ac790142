"""Compressor component model for RCC Pro cycle analysis.

Models one compression leg with an isentropic or isothermal efficiency
(constant, fitted curve or empirical) for the real discharge state, then layers
mechanical and motor losses on top for the power bookkeeping.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from rcc_pro.core.errors import InvalidConfiguration, InvalidPressureRatio
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import CycleComponent, StatePoint, lookup_point
from rcc_pro.cycle.efficiency import (
    CompressorSpec,
    PowerChain,
    layer_losses,
    rated_efficiency,
)


@dataclass(frozen=True)
class CompressionResult:
    """Outcome of one compression leg (specific quantities per kg)."""

    outlet: StatePoint
    isentropic_outlet: StatePoint
    isentropic_work: float  # J/kg
    actual_work: float  # J/kg
    efficiency: float
    pressure_ratio: float
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def discharge_temperature(self) -> float:
        return self.outlet.temperature


def compress(
    inlet: StatePoint,
    outlet_pressure: float,
    spec: CompressorSpec,
    provider: PropertyProvider,
    label: str = "discharge",
) -> CompressionResult:
    """Compress *inlet* to *outlet_pressure*.

        h2s = h(P2, s1)
        w_s = h2s − h1
        w   = w_s / η_s
        state 2 = lookup(P2, h1 + w)

    On the isothermal basis the work follows from the ideal-gas isothermal
    work instead, w = R·T1·ln(PR) / η_iso, and the reported efficiency is
    the equivalent isentropic one, w_s / w.

    The efficiency is evaluated at PR = P2 / P1. A fitted curve evaluated
    outside its domain is clamped and the warning is carried in the result.

    Raises:
        InvalidPressureRatio: If outlet_pressure ≤ inlet pressure.
        InvalidConfiguration: If an isothermal efficiency implies less work
            than the isentropic compression.
    """
    if outlet_pressure <= inlet.pressure:
        raise InvalidPressureRatio(inlet.pressure, outlet_pressure)

    pressure_ratio = outlet_pressure / inlet.pressure
    eta, warning = rated_efficiency(spec, pressure_ratio)

    fluid = inlet.fluid_name
    iso = lookup_point(
        provider, f"{label} (isentropic)", fluid, "P", outlet_pressure, "S", inlet.entropy,
        inlet.mass_flow,
    )
    w_s = iso.enthalpy - inlet.enthalpy
    if spec.efficiency_type == "isothermal":
        w_t = provider.gas_constant(fluid) * inlet.temperature * math.log(pressure_ratio)
        w = w_t / eta
        if w <= w_s:
            raise InvalidConfiguration(
                f"Isothermal efficiency {eta:.3f} gives {w / 1e3:.2f} kJ/kg, below the "
                f"isentropic work {w_s / 1e3:.2f} kJ/kg"
            )
        eta = w_s / w
    else:
        w = w_s / eta
    outlet = lookup_point(
        provider, label, fluid, "P", outlet_pressure, "H", inlet.enthalpy + w, inlet.mass_flow
    )

    return CompressionResult(
        outlet=outlet,
        isentropic_outlet=iso,
        isentropic_work=w_s,
        actual_work=w,
        efficiency=eta,
        pressure_ratio=pressure_ratio,
        warnings=(warning,) if warning else (),
    )


def isentropic_efficiency_from_states(
    inlet: StatePoint, outlet: StatePoint, provider: PropertyProvider
) -> float:
    """Recover the isentropic efficiency from measured inlet/discharge states."""
    h2s = provider.lookup(inlet.fluid_name, "P", outlet.pressure, "S", inlet.entropy).h
    return (h2s - inlet.enthalpy) / (outlet.enthalpy - inlet.enthalpy)


class Compressor(CycleComponent):
    """Compression stage wrapping :func:`compress` with power bookkeeping.

    Args:
        spec: Compressor specification.
        provider: Property provider of the current calculation.
        name: Component name.
    """

    component_type = "compressor"

    def __init__(self, spec: CompressorSpec, provider: PropertyProvider, name: str = "compressor"):
        self.name = name
        self.spec = spec
        self._provider = provider
        self._result: CompressionResult | None = None
        self._chain: PowerChain | None = None

    def compute(
        self,
        inlet: StatePoint,
        outlet_pressure: float = 0.0,
        label: str = "discharge",
        **kwargs: Any,
    ) -> StatePoint:
        """Compute the discharge state at *outlet_pressure*.

        The inlet mass flow is carried to the outlet and used for power.
        """
        self._result = compress(inlet, outlet_pressure, self.spec, self._provider, label=label)
        self._chain = layer_losses(inlet.mass_flow * self._result.actual_work, self.spec)
        return self._result.outlet

    @property
    def result(self) -> CompressionResult | None:
        return self._result

    @property
    def power_chain(self) -> PowerChain | None:
        return self._chain

    def power(self) -> float:
        """Electrical input power [W]."""
        return self._chain.input if self._chain else 0.0

    def summary(self) -> dict[str, Any]:
        d = super().summary()
        if self._result and self._chain:
            d["pressure_ratio"] = self._result.pressure_ratio
            d["isentropic_efficiency"] = self._result.efficiency
            d["discharge_temperature_K"] = self._result.outlet.temperature
            d["shaft_power_W"] = self._chain.shaft
        return d
