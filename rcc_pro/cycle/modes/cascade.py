"""Mode 4: cascade of two single-stage loops.

The low-temperature loop condenses in the cascade heat exchanger at the
cascade temperature plus approach; the high-temperature loop evaporates at
the cascade temperature. Each loop is solved with the single-stage solver
and the coupling closes on equal cascade duty:

- **balance mode** (no ``cascade_temperature``): both loops are sized by
  their compressor displacement and the cascade temperature is found by
  root-finding on the duty imbalance;
- **sizing mode** (``cascade_temperature`` given): the high-loop mass flow
  is set so its evaporator absorbs exactly the low-loop condenser duty.

The high loop may run an economizer port at √(Pe·Pc) of its own
pressures; the low loop always runs without one.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from scipy.optimize import brentq

from rcc_pro.core.errors import InvalidConfiguration, MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.modes.common import (
    build_result,
    check_ordering,
    result_from_single_stage,
    solve_single_stage,
)
from rcc_pro.utils.constants import DUTY_TOLERANCE

logger = logging.getLogger(__name__)

MODE = CycleMode.CASCADE

# Distance of the root-finding bracket from the outer saturation temperatures [K]
_BRACKET_MARGIN = 5.0


def _loop_configs(
    config: CycleConfiguration, cascade_temperature: float, high_mass_flow: float | None = None
) -> tuple[CycleConfiguration, CycleConfiguration]:
    low = replace(
        config,
        condensing_temperature=cascade_temperature + config.cascade_approach,
        condensing_pressure=None,
        economizer_enabled=False,
        intermediate_pressure=None,
        economizer_pressures=None,
    )
    high = replace(
        config,
        fluid=config.high_fluid,
        compressor=config.high_stage_compressor,
        evaporating_temperature=cascade_temperature,
        evaporating_pressure=None,
        superheat=config.high_superheat,
        subcooling=config.high_subcooling,
        mass_flow=high_mass_flow,
        slhx_effectiveness=0.0,
        economizer_enabled=config.high_economizer_enabled,
        economizer_type=config.high_economizer_type,
        intermediate_pressure=None,
        economizer_pressures=None,
    )
    return low, high


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve a two-loop cascade."""
    check_ordering(config)
    if not config.high_fluid:
        raise MissingParameter(MODE.value, "high_fluid")
    if config.high_stage_compressor is None:
        raise MissingParameter(MODE.value, "high_stage_compressor")
    if config.cascade_temperature is None and not config.high_stage_compressor.has_displacement:
        raise MissingParameter(MODE.value, "cascade_temperature")

    Te, Tc = _outer_temperatures(config, provider)

    if config.cascade_temperature is not None:
        T_casc = config.cascade_temperature
        if not (Te < T_casc + config.cascade_approach and T_casc < Tc):
            raise InvalidConfiguration(
                f"Cascade temperature {T_casc - 273.15:.2f} °C must lie between the "
                f"evaporating and condensing temperatures"
            )
        low, high, imbalance, sizing = _solve_sized(config, provider, T_casc)
    else:
        T_casc, low, high, imbalance = _solve_balanced(config, provider, Te, Tc)
        sizing = False

    low_result = result_from_single_stage(MODE, config.fluid, low)
    high_result = result_from_single_stage(MODE, config.high_fluid, high)

    points = [p.relabel(f"LT {p.label}") for p in low.points]
    points += [p.relabel(f"HT {p.label}") for p in high.points]
    stages = [replace(s, name=f"LT {s.name}") for s in low.stages]
    stages += [replace(s, name=f"HT {s.name}") for s in high.stages]

    details = {
        "cascade_temperature": T_casc,
        "cascade_duty": low.heat_rejected,
        "duty_imbalance": imbalance,
        "solve_mode": "sizing" if sizing else "balance",
        "low_condensing_temperature": T_casc + config.cascade_approach,
        "evaporating_pressure": low.saturation.evaporating_pressure,
        "condensing_pressure": high.saturation.condensing_pressure,
    }
    return build_result(
        MODE,
        config.fluid,
        points,
        stages,
        {"low_loop": low.total_flow, "high_loop": high.total_flow},
        low.heat_absorbed,
        high.heat_rejected,
        warnings=low.warnings + high.warnings,
        details=details,
        loops=(low_result, high_result),
    )


def _outer_temperatures(config: CycleConfiguration, provider: PropertyProvider) -> tuple[float, float]:
    """Low-loop evaporating and high-loop condensing temperatures [K]."""
    Te = config.evaporating_temperature
    if Te is None:
        if config.evaporating_pressure is None:
            raise MissingParameter(MODE.value, "evaporating_temperature")
        Te = provider.saturation_temperature(config.fluid, config.evaporating_pressure, 1.0)
    Tc = config.condensing_temperature
    if Tc is None:
        if config.condensing_pressure is None:
            raise MissingParameter(MODE.value, "condensing_temperature")
        Tc = provider.saturation_temperature(config.high_fluid, config.condensing_pressure, 0.0)
    if Te >= Tc:
        raise InvalidConfiguration(
            f"Evaporating temperature {Te - 273.15:.2f} °C must be below "
            f"condensing temperature {Tc - 273.15:.2f} °C"
        )
    return Te, Tc


def _solve_sized(config: CycleConfiguration, provider: PropertyProvider, T_casc: float):
    low_cfg, high_cfg = _loop_configs(config, T_casc, high_mass_flow=1.0)
    low = solve_single_stage(low_cfg, provider, MODE)
    unit = solve_single_stage(high_cfg, provider, MODE, config.high_fluid)
    m_high = low.heat_rejected / unit.heat_absorbed
    high = solve_single_stage(replace(high_cfg, mass_flow=m_high), provider, MODE, config.high_fluid)
    imbalance = (low.heat_rejected - high.heat_absorbed) / low.heat_rejected
    logger.debug("Cascade sizing: T=%.2f K, m_high=%.4f kg/s", T_casc, m_high)
    return low, high, imbalance, True


def _solve_balanced(config: CycleConfiguration, provider: PropertyProvider, Te: float, Tc: float):
    def loops(T_casc: float):
        low_cfg, high_cfg = _loop_configs(config, T_casc)
        low = solve_single_stage(low_cfg, provider, MODE)
        high = solve_single_stage(high_cfg, provider, MODE, config.high_fluid)
        return low, high

    def residual(T_casc: float) -> float:
        low, high = loops(T_casc)
        return (low.heat_rejected - high.heat_absorbed) / low.heat_rejected

    lo, hi = Te + _BRACKET_MARGIN, Tc - _BRACKET_MARGIN
    # Low loop must still condense below its critical point
    T_crit_low = provider.critical_point(config.fluid)[0]
    hi = min(hi, T_crit_low - config.cascade_approach - _BRACKET_MARGIN)
    try:
        if hi <= lo:
            raise ValueError("empty cascade temperature bracket")
        T_casc = brentq(residual, lo, hi, xtol=1e-4)
    except ValueError as exc:
        raise InvalidConfiguration(
            "Cascade duties cannot be balanced between "
            f"{lo - 273.15:.1f} °C and {hi - 273.15:.1f} °C; fix cascade_temperature instead"
        ) from exc

    low, high = loops(T_casc)
    imbalance = (low.heat_rejected - high.heat_absorbed) / low.heat_rejected
    if abs(imbalance) > DUTY_TOLERANCE:
        logger.warning("Cascade duty imbalance %.3g after balancing", imbalance)
    logger.debug("Cascade balance: T=%.2f K, imbalance=%.2e", T_casc, imbalance)
    return T_casc, low, high, imbalance
