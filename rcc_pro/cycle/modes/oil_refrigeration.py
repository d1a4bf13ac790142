"""Mode 2: single-stage refrigeration with oil-refrigerant mixture correction.

Oil dissolved in the circulating refrigerant lowers the mixture's
saturation pressure at a given temperature. The dilution factor from
:func:`~rcc_pro.cycle.efficiency.oil_dilution_factor` is applied to both
saturation pressures before the state points are built.

When a measured discharge temperature is given, the shaft power is split
between the discharge gas and the oil cooler by an energy balance; the
heating COP counts both the condenser and the oil-cooler heat.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from rcc_pro.core.errors import MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.efficiency import oil_dilution_factor, oil_dilution_offset
from rcc_pro.cycle.modes.common import (
    apply_measured_discharge,
    check_ordering,
    resolve_saturation,
    result_from_single_stage,
    solve_single_stage,
)

logger = logging.getLogger(__name__)

MODE = CycleMode.OIL_REFRIGERATION


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve a single-stage cycle with oil dilution and oil-cooler balance."""
    check_ordering(config)
    if config.oil_fraction is None:
        raise MissingParameter(MODE.value, "oil_fraction")

    fluid = config.fluid
    M_ref = provider.molar_mass(fluid)
    factor = oil_dilution_factor(config.oil_fraction, M_ref, config.oil_molar_mass)
    sat = resolve_saturation(config, provider, MODE, fluid, pressure_factor=factor)
    solution = solve_single_stage(config, provider, MODE, fluid, saturation=sat)

    if config.discharge_temperature is not None:
        solution = apply_measured_discharge(provider, solution, config.discharge_temperature)
    else:
        # Friction heat of the drive ends up in the oil
        solution = replace(
            solution, oil_heat=max(solution.shaft_power - solution.indicated_power, 0.0)
        )

    details = solution.details
    details["oil_dilution_factor"] = factor
    for side in ("evaporating", "condensing"):
        pure = getattr(sat, f"{side}_pressure") / factor
        details[f"{side}_pressure_offset"] = oil_dilution_offset(
            pure, config.oil_fraction, M_ref, config.oil_molar_mass
        )

    logger.debug("Oil refrigeration: factor=%.4f, Q_oil=%.1f W", factor, solution.oil_heat)
    return result_from_single_stage(MODE, fluid, solution)
