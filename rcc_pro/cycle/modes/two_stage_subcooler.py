"""Mode 5: two-stage cycle with a closed subcooler economizer.

The main liquid stays at condensing pressure and is subcooled in the
economizer to T_sat(P_int) + approach; it is never split in a flash tank.
A side stream taken from the condenser outlet is throttled to the
intermediate pressure, evaporated against the main liquid and returned to
the high-stage suction.
"""

from __future__ import annotations

from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.economizer import EconomizerType
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.modes.two_stage_flash import solve_economized

MODE = CycleMode.TWO_STAGE_SUBCOOLER


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve a two-stage cycle with a subcooler economizer."""
    return solve_economized(config, provider, MODE, EconomizerType.SUBCOOLER)
