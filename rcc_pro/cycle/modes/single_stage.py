"""Mode 3: single-stage vapour-compression cycle.

The reference topology: evaporator → compressor → condenser → expansion
valve, with an optional suction-line heat exchanger and compressor
economizer port.

Two gas-compressor options sit on the hot side. A measured discharge
temperature splits the shaft power between the gas and the oil cooler,
and an aftercooler takes the discharge gas down to a set temperature
before it reaches the condenser.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from rcc_pro.core.errors import InvalidConfiguration
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import StatePoint, lookup_point
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.modes.common import (
    SingleStageSolution,
    apply_measured_discharge,
    check_ordering,
    result_from_single_stage,
    solve_single_stage,
)

logger = logging.getLogger(__name__)

MODE = CycleMode.SINGLE_STAGE


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve a single-stage cycle."""
    check_ordering(config)
    solution = solve_single_stage(config, provider, MODE)

    hot_gas = solution.discharge
    if config.discharge_temperature is not None:
        solution = apply_measured_discharge(provider, solution, config.discharge_temperature)
        hot_gas = solution.points[solution.points.index(hot_gas) + 1]
    if config.aftercooler_temperature is not None:
        solution = _aftercool(config.aftercooler_temperature, provider, solution, hot_gas)

    logger.debug(
        "Single stage %s: Q_evap=%.1f W, W=%.1f W",
        config.fluid, solution.heat_absorbed, solution.input_power,
    )
    return result_from_single_stage(MODE, config.fluid, solution)


def _aftercool(
    temperature: float,
    provider: PropertyProvider,
    solution: SingleStageSolution,
    hot_gas: StatePoint,
) -> SingleStageSolution:
    """Split the heat rejection between an aftercooler and the condenser.

    The aftercooler runs at condensing pressure without pressure drop and
    must stay in the superheated region; a target above the discharge
    temperature leaves nothing to cool.
    """
    fluid = hot_gas.fluid_name
    Pc = solution.saturation.condensing_pressure
    T_dew = provider.saturation_temperature(fluid, Pc, 1.0)
    if temperature <= T_dew:
        raise InvalidConfiguration(
            f"Aftercooler outlet {temperature - 273.15:.1f} °C must be above the dew point "
            f"{T_dew - 273.15:.1f} °C at condensing pressure"
        )

    details = dict(solution.details)
    if temperature >= hot_gas.temperature:
        warning = (
            f"Aftercooler outlet {temperature - 273.15:.1f} °C is not below the discharge "
            f"temperature {hot_gas.temperature - 273.15:.1f} °C; aftercooler skipped"
        )
        logger.warning(warning)
        details.update(aftercooler_duty=0.0, condenser_duty=solution.heat_rejected)
        return replace(solution, warnings=solution.warnings + [warning], details=details)

    m = solution.total_flow
    outlet = lookup_point(provider, "aftercooler outlet", fluid, "P", Pc, "T", temperature, m)
    q_ac = m * (hot_gas.enthalpy - outlet.enthalpy)
    points = list(solution.points)
    points.insert(points.index(hot_gas) + 1, outlet)
    details.update(aftercooler_duty=q_ac, condenser_duty=solution.heat_rejected - q_ac)
    return replace(solution, points=points, details=details)
