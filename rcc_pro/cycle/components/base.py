"""Base classes for cycle components.

Defines the state-point record shared by every cycle mode and the common
interface for cycle components (compressors, valves, economizers, heat
exchangers).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any

from rcc_pro.core.errors import InvalidConfiguration
from rcc_pro.core.fluids import PropertyProvider, StateProperties


@dataclass(frozen=True)
class StatePoint:
    """Thermodynamic state of the refrigerant at a point in the cycle.

    All properties in SI units. Build instances with :meth:`from_properties`
    so every field comes from the same property lookup.
    """

    label: str = ""
    pressure: float = 0.0  # Pa
    temperature: float = 0.0  # K
    enthalpy: float = 0.0  # J/kg
    entropy: float = 0.0  # J/(kg·K)
    density: float = 0.0  # kg/m³
    quality: float = -1.0  # vapour quality (-1 = subcooled/superheated)
    mass_flow: float = 0.0  # kg/s
    fluid_name: str = ""

    @classmethod
    def from_properties(
        cls, label: str, props: StateProperties, fluid_name: str, mass_flow: float = 0.0
    ) -> StatePoint:
        return cls(
            label=label,
            pressure=props.P,
            temperature=props.T,
            enthalpy=props.h,
            entropy=props.s,
            density=props.rho,
            quality=props.quality,
            mass_flow=mass_flow,
            fluid_name=fluid_name,
        )

    @property
    def is_two_phase(self) -> bool:
        return 0.0 <= self.quality <= 1.0

    def with_mass_flow(self, mass_flow: float) -> StatePoint:
        return replace(self, mass_flow=mass_flow)

    def relabel(self, label: str) -> StatePoint:
        return replace(self, label=label)


def lookup_point(
    provider: PropertyProvider,
    label: str,
    fluid: str,
    name1: str,
    value1: float,
    name2: str,
    value2: float,
    mass_flow: float = 0.0,
) -> StatePoint:
    """Single lookup → StatePoint."""
    props = provider.lookup(fluid, name1, value1, name2, value2)
    return StatePoint.from_properties(label, props, fluid, mass_flow)


def mix_streams(
    provider: PropertyProvider, label: str, *streams: StatePoint
) -> StatePoint:
    """Adiabatic mixing of streams at a common pressure.

    Mixed enthalpy is the mass-flow-weighted average; the state is resolved
    at the pressure of the first stream.

    Raises:
        InvalidConfiguration: If the total mass flow is not positive.
    """
    total = sum(s.mass_flow for s in streams)
    if total <= 0:
        raise InvalidConfiguration("Cannot mix streams with zero total mass flow")
    h_mix = sum(s.mass_flow * s.enthalpy for s in streams) / total
    first = streams[0]
    return lookup_point(provider, label, first.fluid_name, "P", first.pressure, "H", h_mix, total)


class CycleComponent(ABC):
    """Abstract base class for a cycle component.

    Every component takes an inlet StatePoint and produces an outlet
    StatePoint, along with power and performance metrics.
    """

    name: str = ""
    component_type: str = ""

    @abstractmethod
    def compute(self, inlet: StatePoint, **kwargs: Any) -> StatePoint:
        """Run the component model.

        Args:
            inlet: Inlet state point.
            **kwargs: Component-specific parameters.

        Returns:
            Outlet state point.
        """
        ...

    @abstractmethod
    def power(self) -> float:
        """Power [W] consumed by the component (positive = consumed)."""
        ...

    def summary(self) -> dict[str, Any]:
        """Return a summary dictionary of the component state."""
        return {
            "name": self.name,
            "type": self.component_type,
            "power_W": self.power(),
        }
