"""Mode 3 (two-stage): two compressors in series with a flash-tank economizer.

The condenser liquid is throttled into a flash tank at the intermediate
pressure. Saturated liquid continues to the evaporator; the flash vapour is
mixed (mass-weighted enthalpy) with the low-stage discharge to form the
high-stage suction.

The intermediate pressure is taken from the configuration if given.
Otherwise, when both stages have a displacement, it is the pressure at
which the high stage exactly swallows the interstage flow. Failing that it
falls back to the geometric mean √(Pe·Pc).

:func:`solve_economized` is shared with the closed-subcooler variant
(mode 5), which differs only in the economizer construction.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from scipy.optimize import brentq

from rcc_pro.core.errors import MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import StatePoint, lookup_point, mix_streams
from rcc_pro.cycle.components.compressor import Compressor
from rcc_pro.cycle.components.economizer import Economizer, EconomizerResult, EconomizerType
from rcc_pro.cycle.components.heat_exchanger import SuctionLineHeatExchanger
from rcc_pro.cycle.components.valve import ExpansionValve
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.efficiency import theoretical_volume_flow, volumetric_efficiency
from rcc_pro.cycle.modes.common import (
    Saturation,
    build_result,
    check_ordering,
    condenser_outlet,
    evaporator_outlet,
    resolve_saturation,
    stage_discharge_balance,
    stage_result,
    suction_flow,
)

logger = logging.getLogger(__name__)

MODE = CycleMode.TWO_STAGE_FLASH


@dataclass
class _Interstage:
    suction: StatePoint
    low_stage: Compressor
    volumetric_efficiency: float
    mass_flow_basis: str
    low_discharge: StatePoint
    low_oil_heat: float
    high_suction: StatePoint
    economizer: EconomizerResult
    valve_inlet: StatePoint
    slhx_duty: float = 0.0
    warning: str | None = None


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve a two-stage cycle with a flash-tank economizer."""
    return solve_economized(config, provider, MODE, EconomizerType.FLASH)


def solve_economized(
    config: CycleConfiguration,
    provider: PropertyProvider,
    mode: CycleMode,
    kind: EconomizerType,
) -> CycleResult:
    """Solve a two-stage cycle with one interstage economizer of *kind*.

    An optional SLHX exchanges heat between the economizer liquid and the
    evaporator vapour, both at the evaporator flow. Measured discharge
    temperatures re-balance each stage against its oil cooler; the actual
    low-stage discharge is what mixes with the economizer vapour.
    """
    check_ordering(config)
    if config.high_stage_compressor is None:
        raise MissingParameter(mode.value, "high_stage_compressor")

    fluid = config.fluid
    sat = resolve_saturation(config, provider, mode, fluid)
    Pe, Pc = sat.evaporating_pressure, sat.condensing_pressure
    lp_spec, hp_spec = config.compressor, config.high_stage_compressor
    warnings: list[str] = []

    p_evap = evaporator_outlet(provider, fluid, Pe, sat.evaporating_temperature, config.superheat)
    p_cond = condenser_outlet(provider, fluid, Pc, config.subcooling)
    eco = Economizer(provider, kind, config.economizer_superheat, config.economizer_approach)

    def interstage(P_int: float) -> _Interstage:
        suction, liquid, q_hx = p_evap, eco.compute(p_cond, P_int, outlet_flow=1.0), 0.0
        if config.slhx_effectiveness > 0:
            hx = SuctionLineHeatExchanger(provider, config.slhx_effectiveness)
            liquid = hx.compute(liquid, cold_inlet=p_evap)
            suction = hx.cold_outlet.relabel("compressor suction")
            q_hx = hx.specific_duty

        m, eta_v, basis = suction_flow(lp_spec, suction, P_int / Pe, config.mass_flow)
        suction = suction.with_mass_flow(m)
        lp = Compressor(lp_spec, provider, "low stage")
        lp_out = lp.compute(suction, P_int, label="low stage discharge")
        oil_heat, warning = 0.0, None
        if config.low_stage_discharge_temperature is not None:
            lp_out, oil_heat, warning = stage_discharge_balance(
                provider, stage_result(lp, suction, eta_v),
                config.low_stage_discharge_temperature, "low stage discharge (actual)",
            )
        eco.compute(p_cond, P_int, outlet_flow=m)
        res = eco.result
        mixed = mix_streams(provider, "high stage suction", lp_out, res.vapor_out)
        return _Interstage(
            suction, lp, eta_v, basis, lp_out, oil_heat, mixed, res,
            liquid.with_mass_flow(m), m * q_hx, warning,
        )

    P_int, source = _intermediate_pressure(config, provider, sat, p_cond, kind, interstage, warnings)
    st = interstage(P_int)
    lp = st.low_stage
    warnings.extend(lp.result.warnings)
    if st.warning:
        warnings.append(st.warning)

    hp = Compressor(hp_spec, provider, "high stage")
    hp_in = st.high_suction
    discharge = hp.compute(hp_in, Pc, label="high stage discharge")
    warnings.extend(hp.result.warnings)
    stages = [stage_result(lp, st.suction, st.volumetric_efficiency), stage_result(hp, hp_in)]

    oil_duties: dict[str, float] = {}
    if config.low_stage_discharge_temperature is not None:
        oil_duties[lp.name] = st.low_oil_heat
    hot_gas = discharge
    if config.discharge_temperature is not None:
        hot_gas, q_oil, warning = stage_discharge_balance(
            provider, stages[-1], config.discharge_temperature, "high stage discharge (actual)"
        )
        oil_duties[hp.name] = q_oil
        if warning:
            warnings.append(warning)

    m_lp = st.suction.mass_flow
    m_inj = st.economizer.injection_flow
    m_hp = hp_in.mass_flow

    throttled = lookup_point(
        provider,
        "economizer inlet" if kind == EconomizerType.FLASH else "side stream inlet",
        fluid, "P", P_int, "H", p_cond.enthalpy,
    )
    p_valve = ExpansionValve(provider).compute(st.valve_inlet, Pe)

    points = [p_evap.with_mass_flow(m_lp)]
    if config.slhx_effectiveness > 0:
        points.append(st.suction)
    points.append(lp.result.outlet)
    if st.low_discharge is not lp.result.outlet:
        points.append(st.low_discharge)
    points.extend([st.economizer.vapor_out, hp_in, discharge])
    if hot_gas is not discharge:
        points.append(hot_gas)
    points.extend([
        p_cond.with_mass_flow(m_hp),
        throttled.with_mass_flow(m_hp if kind == EconomizerType.FLASH else m_inj),
        st.economizer.liquid_out.with_mass_flow(m_lp),
    ])
    if config.slhx_effectiveness > 0:
        points.append(st.valve_inlet)
    points.append(p_valve)

    heat_absorbed = m_lp * (p_evap.enthalpy - p_valve.enthalpy)
    heat_rejected = m_hp * (hot_gas.enthalpy - p_cond.enthalpy)

    details = {
        "evaporating_pressure": Pe,
        "condensing_pressure": Pc,
        "evaporating_temperature": sat.evaporating_temperature,
        "condensing_temperature": sat.condensing_temperature,
        "intermediate_pressure": P_int,
        "intermediate_pressure_source": source,
        "injection_ratio": st.economizer.injection_ratio,
        "economizer_vapor_fraction": st.economizer.vapor_fraction,
        "economizer_duty": st.economizer.heat_transfer,
        "slhx_duty": st.slhx_duty,
        "mass_flow_basis": st.mass_flow_basis,
    }
    if oil_duties:
        details["oil_cooler_duties"] = oil_duties
    logger.debug("Two-stage %s: P_int=%.3f bar (%s)", kind.value, P_int / 1e5, source)

    return build_result(
        mode,
        fluid,
        points,
        stages,
        {"low_stage": m_lp, "injection": m_inj, "high_stage": m_hp},
        heat_absorbed,
        heat_rejected,
        oil_heat=sum(oil_duties.values()),
        warnings=warnings,
        details=details,
    )


def _intermediate_pressure(
    config: CycleConfiguration,
    provider: PropertyProvider,
    sat: Saturation,
    liquid: StatePoint,
    kind: EconomizerType,
    interstage,
    warnings: list[str],
) -> tuple[float, str]:
    """Pick the intermediate pressure and report how it was found."""
    Pe, Pc = sat.evaporating_pressure, sat.condensing_pressure
    geometric = math.sqrt(Pe * Pc)
    if config.intermediate_pressure is not None:
        return config.intermediate_pressure, "configured"

    hp_spec = config.high_stage_compressor
    V_hp = theoretical_volume_flow(hp_spec)
    lp_sized = config.mass_flow is not None or config.compressor.has_displacement
    if V_hp is None or not lp_sized:
        return geometric, "geometric mean"

    def residual(P: float) -> float:
        st = interstage(P)
        required = st.high_suction.mass_flow / (
            st.high_suction.density * volumetric_efficiency(hp_spec, Pc / P)
        )
        return required - V_hp

    lo, hi = 1.01 * Pe, 0.99 * Pc
    if kind == EconomizerType.SUBCOOLER:
        # Subcooled liquid must stay colder than the condenser outlet
        T_limit = liquid.temperature - config.economizer_approach - 0.5
        hi = min(hi, provider.saturation_pressure(config.fluid, T_limit, 1.0))

    try:
        if hi <= lo:
            raise ValueError("empty intermediate pressure bracket")
        return brentq(residual, lo, hi, xtol=1.0), "displacement match"
    except ValueError:
        warning = (
            "High-stage displacement cannot be matched to the interstage flow; "
            f"using geometric mean intermediate pressure {geometric / 1e5:.3f} bar"
        )
        logger.warning(warning)
        warnings.append(warning)
        return geometric, "geometric mean"
