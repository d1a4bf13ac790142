"""Error taxonomy for RCC Pro calculations.

Every failure of a calculation is raised as a subclass of
:class:`CalculationError`. None of them are retried inside the library.
"""

from __future__ import annotations

from typing import Any


class CalculationError(Exception):
    """Base class for all calculation failures."""


class InvalidConfiguration(CalculationError):
    """Physically impossible or inconsistently ordered input."""


class MissingParameter(CalculationError):
    """A mode requires a configuration field that is absent."""

    def __init__(self, mode: str, parameter: str):
        self.mode = mode
        self.parameter = parameter
        super().__init__(f"Mode '{mode}' requires parameter '{parameter}'")


class PropertyLookupFailed(CalculationError):
    """The fluid-property library could not return the requested state."""

    def __init__(self, fluid: str, requested_state: dict[str, Any], reason: str = ""):
        self.fluid = fluid
        self.requested_state = dict(requested_state)
        self.reason = reason
        state = ", ".join(f"{k}={v:.6g}" for k, v in self.requested_state.items())
        message = f"Property lookup failed for {fluid} at ({state})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedFluid(PropertyLookupFailed):
    """The fluid is unknown to the property library."""


class OutOfRange(PropertyLookupFailed):
    """The requested state lies outside the library's valid region."""


class InvalidPressureRatio(CalculationError):
    """A compression leg was given a non-physical pressure ratio."""

    def __init__(self, inlet_pressure: float, outlet_pressure: float):
        self.inlet_pressure = inlet_pressure
        self.outlet_pressure = outlet_pressure
        super().__init__(
            f"Outlet pressure {outlet_pressure / 1e5:.3f} bar must exceed "
            f"inlet pressure {inlet_pressure / 1e5:.3f} bar"
        )
