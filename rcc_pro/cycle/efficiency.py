"""Compressor efficiency and correction models.

Stateless functions on scalar inputs shared by every cycle mode:

- empirical pressure-ratio model for volumetric/isentropic efficiency
- fitted efficiency curves with domain clamping
- displacement → volume flow → actual mass flow
- oil dilution of the refrigerant saturation pressure (mode 2)
- mechanical/motor loss layering from indicated to electrical power
- the 10-coefficient EN 12900 / AHRI 540 rating polynomial

Nothing here performs a property lookup; the solvers pass in the densities,
molar masses and pressures they already hold.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

from rcc_pro.core.errors import InvalidConfiguration
from rcc_pro.utils.units import volume_flow_to_si

logger = logging.getLogger(__name__)

# Empirical screw-compressor model (pressure ratio PR)
ETA_V_MAX = 0.98
ETA_V_SLOPE = 0.015
ETA_V_MIN = 0.65
ETA_S_PEAK = 0.80
ETA_S_PEAK_RATIO = 4.0
ETA_S_SLOPE = 0.018
ETA_S_MIN = 0.50
ISOTHERMAL_FACTOR = 0.92
DEFAULT_EFFICIENCIES = (0.90, 0.75, 0.70)  # (volumetric, isentropic, isothermal) for PR < 1

# Load fraction window for motor part-load curves
_MOTOR_LOAD_RANGE = (0.1, 1.2)


@dataclass(frozen=True)
class CompressorSpec:
    """Fluid-independent description of one compression stage.

    The isentropic efficiency comes from, in order of precedence:
    ``efficiency_curve`` (ascending polynomial coefficients in pressure
    ratio, valid over ``curve_domain``), the empirical model when
    ``auto_efficiency`` is set, or the constant ``isentropic_efficiency``.

    ``efficiency_basis`` selects what the isentropic efficiency refers to:
    ``"shaft"`` (gas work; mechanical and motor losses are layered on top)
    or ``"input"`` (already includes drive losses, so the indicated power is
    the electrical input).

    ``efficiency_type`` selects the reference process the efficiency is
    quoted against: ``"isentropic"`` (h2s − h1) or ``"isothermal"``
    (ideal-gas R·T1·ln PR), as gas-compressor data sheets give it. The
    curve and the empirical model then yield the isothermal value.
    """

    isentropic_efficiency: float = 0.75
    isothermal_efficiency: float = 0.70
    efficiency_type: str = "isentropic"
    efficiency_curve: tuple[float, ...] | None = None
    curve_domain: tuple[float, float] | None = None
    volumetric_efficiency: float = 0.85
    auto_efficiency: bool = False

    # Swallowing capacity: displacement [m³/h] or swept volume [cm³/rev] + speed [rpm]
    displacement: float | None = None
    swept_volume: float | None = None
    speed: float | None = None

    # Drive losses
    mechanical_efficiency: float = 1.0
    motor_efficiency: float = 1.0
    motor_part_load_curve: tuple[float, ...] | None = None
    rated_shaft_power: float | None = None  # W
    efficiency_basis: str = "shaft"

    @property
    def has_displacement(self) -> bool:
        return self.displacement is not None or (
            self.swept_volume is not None and self.speed is not None
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompressorSpec:
        """Build a spec from a JSON-style dict (lists become tuples)."""
        data = dict(data)
        for key in ("efficiency_curve", "curve_domain", "motor_part_load_curve"):
            if data.get(key) is not None:
                data[key] = tuple(float(c) for c in data[key])
        return cls(**data)


@dataclass(frozen=True)
class PowerChain:
    """Indicated → shaft → electrical input power of one stage [W]."""

    indicated: float
    shaft: float
    input: float
    mechanical_efficiency: float
    motor_efficiency: float


# --- Efficiency models ---


def empirical_efficiencies(pressure_ratio: float) -> tuple[float, float, float]:
    """Empirical efficiencies of an oil-injected screw compressor.

    Volumetric efficiency decays linearly with pressure ratio; isentropic
    efficiency peaks at PR = 4 and falls off on both sides:

        η_v   = max(0.65, 0.98 − 0.015·(PR − 1))
        η_s   = max(0.50, 0.80 − 0.018·|PR − 4|)
        η_iso = 0.92·η_s

    Returns:
        (volumetric, isentropic, isothermal) efficiencies. A pressure ratio
        below 1 returns the defaults (0.90, 0.75, 0.70).
    """
    if pressure_ratio < 1.0:
        return DEFAULT_EFFICIENCIES
    eta_v = max(ETA_V_MIN, ETA_V_MAX - ETA_V_SLOPE * (pressure_ratio - 1.0))
    eta_s = max(ETA_S_MIN, ETA_S_PEAK - ETA_S_SLOPE * abs(pressure_ratio - ETA_S_PEAK_RATIO))
    return eta_v, eta_s, ISOTHERMAL_FACTOR * eta_s


def evaluate_efficiency_curve(
    coefficients: tuple[float, ...] | list[float],
    pressure_ratio: float,
    domain: tuple[float, float] | None = None,
) -> tuple[float, str | None]:
    """Evaluate a polynomial efficiency curve at a pressure ratio.

    Outside ``domain`` the ratio is clamped to the nearest boundary and a
    warning string is returned alongside the efficiency.

    Raises:
        InvalidConfiguration: If the curve yields an efficiency outside (0, 1].
    """
    warning = None
    pr = pressure_ratio
    if domain is not None:
        lo, hi = domain
        if not lo <= pr <= hi:
            pr = min(max(pr, lo), hi)
            warning = (
                f"Pressure ratio {pressure_ratio:.3f} outside efficiency curve domain "
                f"[{lo:g}, {hi:g}]; clamped to {pr:g}"
            )
            logger.warning(warning)

    eta = float(np.polynomial.polynomial.polyval(pr, np.asarray(coefficients, dtype=float)))
    if not 0.0 < eta <= 1.0:
        raise InvalidConfiguration(
            f"Efficiency curve gives {eta:.4f} at pressure ratio {pr:.3f}; must be in (0, 1]"
        )
    return eta, warning


def isentropic_efficiency(spec: CompressorSpec, pressure_ratio: float) -> tuple[float, str | None]:
    """Isentropic efficiency of *spec* at a pressure ratio, plus any clamp warning."""
    if spec.efficiency_curve is not None:
        return evaluate_efficiency_curve(spec.efficiency_curve, pressure_ratio, spec.curve_domain)
    if spec.auto_efficiency:
        return empirical_efficiencies(pressure_ratio)[1], None
    return spec.isentropic_efficiency, None


def isothermal_efficiency(spec: CompressorSpec, pressure_ratio: float) -> tuple[float, str | None]:
    """Isothermal efficiency of *spec* at a pressure ratio, plus any clamp warning."""
    if spec.efficiency_curve is not None:
        return evaluate_efficiency_curve(spec.efficiency_curve, pressure_ratio, spec.curve_domain)
    if spec.auto_efficiency:
        return empirical_efficiencies(pressure_ratio)[2], None
    return spec.isothermal_efficiency, None


def rated_efficiency(spec: CompressorSpec, pressure_ratio: float) -> tuple[float, str | None]:
    """Efficiency of *spec* on its own ``efficiency_type`` basis."""
    if spec.efficiency_type == "isothermal":
        return isothermal_efficiency(spec, pressure_ratio)
    return isentropic_efficiency(spec, pressure_ratio)


def volumetric_efficiency(spec: CompressorSpec, pressure_ratio: float) -> float:
    """Volumetric efficiency of *spec* at a pressure ratio."""
    if spec.auto_efficiency:
        return empirical_efficiencies(pressure_ratio)[0]
    return spec.volumetric_efficiency


# --- Mass flow ---


def theoretical_volume_flow(spec: CompressorSpec) -> float | None:
    """Theoretical suction volume flow [m³/s], or ``None`` without displacement data.

    ``displacement`` (m³/h) takes precedence over swept volume × speed.
    """
    if spec.displacement is not None:
        return volume_flow_to_si(spec.displacement, "m**3/h")
    if spec.swept_volume is not None and spec.speed is not None:
        return volume_flow_to_si(spec.swept_volume * spec.speed, "cm**3/min")
    return None


def actual_mass_flow(volume_flow: float, density: float, volumetric_efficiency: float) -> float:
    """Actual intake mass flow [kg/s]: ṁ = V_th · η_v · ρ_suction."""
    return volume_flow * volumetric_efficiency * density


# --- Oil dilution (mode 2) ---


def oil_dilution_factor(
    oil_fraction: float,
    refrigerant_molar_mass: float,
    oil_molar_mass: float,
) -> float:
    """Refrigerant mole fraction in the oil-refrigerant liquid.

    Ideal-solution (Raoult) model: the mixture's saturation pressure is the
    pure-refrigerant value multiplied by this factor.

    Args:
        oil_fraction: Oil mass fraction in the circulating liquid (0 ≤ w < 1).
        refrigerant_molar_mass: [kg/mol].
        oil_molar_mass: [kg/mol].

    Raises:
        InvalidConfiguration: For an oil fraction outside [0, 1) or
            non-positive molar masses.
    """
    if not 0.0 <= oil_fraction < 1.0:
        raise InvalidConfiguration(f"Oil fraction must be in [0, 1), got {oil_fraction}")
    if refrigerant_molar_mass <= 0 or oil_molar_mass <= 0:
        raise InvalidConfiguration("Molar masses must be positive")
    n_ref = (1.0 - oil_fraction) / refrigerant_molar_mass
    n_oil = oil_fraction / oil_molar_mass
    return n_ref / (n_ref + n_oil)


def oil_dilution_offset(
    saturation_pressure: float,
    oil_fraction: float,
    refrigerant_molar_mass: float,
    oil_molar_mass: float,
) -> float:
    """Pressure reduction [Pa] of the oil-diluted refrigerant at saturation."""
    factor = oil_dilution_factor(oil_fraction, refrigerant_molar_mass, oil_molar_mass)
    return saturation_pressure * (1.0 - factor)


# --- Drive losses ---


def motor_efficiency_at(spec: CompressorSpec, shaft_power: float) -> float:
    """Motor efficiency, constant or from the part-load curve."""
    if spec.motor_part_load_curve is None or not spec.rated_shaft_power:
        return spec.motor_efficiency
    load = shaft_power / spec.rated_shaft_power
    lo, hi = _MOTOR_LOAD_RANGE
    if not lo <= load <= hi:
        logger.debug("Motor load fraction %.3f clamped to [%g, %g]", load, lo, hi)
        load = min(max(load, lo), hi)
    eta = float(
        np.polynomial.polynomial.polyval(load, np.asarray(spec.motor_part_load_curve, dtype=float))
    )
    if not 0.0 < eta <= 1.0:
        raise InvalidConfiguration(
            f"Motor part-load curve gives {eta:.4f} at load {load:.2f}; must be in (0, 1]"
        )
    return eta


def layer_losses(indicated_power: float, spec: CompressorSpec) -> PowerChain:
    """Convert indicated compressor power into shaft and electrical input power.

    ``"shaft"`` basis:  P_shaft = P_ind / η_mech,  P_in = P_shaft / η_motor
    ``"input"`` basis:  P_in = P_ind,              P_shaft = P_in · η_motor
    """
    if spec.efficiency_basis == "input":
        eta_motor = motor_efficiency_at(spec, indicated_power)
        return PowerChain(
            indicated=indicated_power,
            shaft=indicated_power * eta_motor,
            input=indicated_power,
            mechanical_efficiency=1.0,
            motor_efficiency=eta_motor,
        )
    shaft = indicated_power / spec.mechanical_efficiency
    eta_motor = motor_efficiency_at(spec, shaft)
    return PowerChain(
        indicated=indicated_power,
        shaft=shaft,
        input=shaft / eta_motor,
        mechanical_efficiency=spec.mechanical_efficiency,
        motor_efficiency=eta_motor,
    )


def isothermal_power(
    mass_flow: float, gas_constant: float, temperature: float, pressure_ratio: float
) -> float:
    """Ideal-gas isothermal compression power [W]: ṁ·R·T·ln(PR)."""
    return mass_flow * gas_constant * temperature * math.log(pressure_ratio)


def ahri_polynomial(coefficients: tuple[float, ...] | list[float], evaporating_c: float, condensing_c: float) -> float:
    """Evaluate the 10-coefficient EN 12900 / AHRI 540 rating polynomial.

    X = C1 + C2·S + C3·D + C4·S² + C5·S·D + C6·D² + C7·S³ + C8·D·S²
        + C9·S·D² + C10·D³

    with S the evaporating and D the condensing temperature in °C.

    Raises:
        ValueError: If not exactly ten coefficients are given.
    """
    if len(coefficients) != 10:
        raise ValueError(f"Rating polynomial needs 10 coefficients, got {len(coefficients)}")
    S, D = evaporating_c, condensing_c
    terms = np.array([1.0, S, D, S**2, S * D, D**2, S**3, D * S**2, S * D**2, D**3])
    return float(np.dot(np.asarray(coefficients, dtype=float), terms))
