"""Mode 6: two-stage compression with two sequential economizers.

Three compression legs Pe → P_e1 → P_e2 → Pc. The condenser liquid passes
the upper economizer (P_e2) and then the lower one (P_e1) before the
expansion valve; each economizer returns its vapour into the interstage
line at its own pressure.

Flows are fixed from the evaporator upwards: the lower economizer is
balanced for the evaporator flow, the upper one for the liquid the lower
economizer needs. The first leg uses ``compressor``; the middle leg uses
``intermediate_compressor`` when given, else the high-stage machine, which
also runs the last leg.

Each economizer can be switched off or given its own construction; a
disabled economizer passes the liquid through and its interstage line
carries no vapour. Measured discharge temperatures of the first and last
legs split those legs' shaft power with their oil coolers.
"""

from __future__ import annotations

import logging

from rcc_pro.core.errors import MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import StatePoint, mix_streams
from rcc_pro.cycle.components.compressor import Compressor
from rcc_pro.cycle.components.economizer import Economizer
from rcc_pro.cycle.components.valve import ExpansionValve
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.modes.common import (
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

MODE = CycleMode.TWO_STAGE_DOUBLE_ECONOMIZER


def _economizer(
    config: CycleConfiguration,
    provider: PropertyProvider,
    enabled: bool,
    kind: str | None,
    name: str,
) -> Economizer | None:
    if not enabled:
        return None
    return Economizer(
        provider, kind or config.economizer_type, config.economizer_superheat,
        config.economizer_approach, name=name,
    )


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve a three-leg cycle with two economizers."""
    check_ordering(config)
    if config.economizer_pressures is None:
        raise MissingParameter(MODE.value, "economizer_pressures")
    if config.high_stage_compressor is None:
        raise MissingParameter(MODE.value, "high_stage_compressor")

    fluid = config.fluid
    sat = resolve_saturation(config, provider, MODE, fluid)
    Pe, Pc = sat.evaporating_pressure, sat.condensing_pressure
    P1, P2 = config.economizer_pressures
    hp_spec = config.high_stage_compressor
    mid_spec = config.intermediate_compressor or hp_spec
    warnings: list[str] = []
    oil_duties: dict[str, float] = {}

    p_evap = evaporator_outlet(provider, fluid, Pe, sat.evaporating_temperature, config.superheat)
    p_cond = condenser_outlet(provider, fluid, Pc, config.subcooling)
    m, eta_v, basis = suction_flow(config.compressor, p_evap, P1 / Pe, config.mass_flow)
    suction = p_evap.with_mass_flow(m)

    upper = _economizer(
        config, provider, config.upper_economizer_enabled, config.upper_economizer_type,
        "upper economizer",
    )
    lower = _economizer(
        config, provider, config.lower_economizer_enabled, config.lower_economizer_type,
        "lower economizer",
    )

    # Liquid state after the upper economizer does not depend on its flow
    upper_liquid = upper.compute(p_cond, P2, outlet_flow=1.0) if upper else p_cond
    valve_liquid, middle_flow = upper_liquid, m
    low_res = up_res = None
    if lower:
        valve_liquid = lower.compute(upper_liquid, P1, outlet_flow=m)
        low_res = lower.result
        middle_flow = low_res.inlet_flow
    if upper:
        upper.compute(p_cond, P2, outlet_flow=middle_flow)
        up_res = upper.result

    def interstage(discharge: StatePoint, res, vapour_label: str, label: str) -> StatePoint:
        if res is None:
            return discharge.relabel(label)
        return mix_streams(provider, label, discharge, res.vapor_out.relabel(vapour_label))

    # Leg 1: evaporator → lower economizer pressure
    c1 = Compressor(config.compressor, provider, "low stage")
    d1 = c1.compute(suction, P1, label="low stage discharge")
    s1 = stage_result(c1, suction, eta_v)
    d1_hot = d1
    if config.low_stage_discharge_temperature is not None:
        d1_hot, q_oil, warning = stage_discharge_balance(
            provider, s1, config.low_stage_discharge_temperature, "low stage discharge (actual)"
        )
        oil_duties[c1.name] = q_oil
        if warning:
            warnings.append(warning)
    s2 = interstage(d1_hot, low_res, "lower economizer vapour", "middle stage suction")

    # Leg 2: lower → upper economizer pressure
    c2 = Compressor(mid_spec, provider, "middle stage")
    d2 = c2.compute(s2, P2, label="middle stage discharge")
    s3 = interstage(d2, up_res, "upper economizer vapour", "high stage suction")

    # Leg 3: upper economizer → condensing pressure
    c3 = Compressor(hp_spec, provider, "high stage")
    discharge = c3.compute(s3, Pc, label="high stage discharge")
    stages = [s1, stage_result(c2, s2), stage_result(c3, s3)]
    hot_gas = discharge
    if config.discharge_temperature is not None:
        hot_gas, q_oil, warning = stage_discharge_balance(
            provider, stages[-1], config.discharge_temperature, "high stage discharge (actual)"
        )
        oil_duties[c3.name] = q_oil
        if warning:
            warnings.append(warning)

    for comp in (c1, c2, c3):
        warnings.extend(comp.result.warnings)

    m_total = s3.mass_flow
    p_valve = ExpansionValve(provider).compute(valve_liquid.with_mass_flow(m), Pe)

    points = [suction.relabel("evaporator outlet"), d1]
    if d1_hot is not d1:
        points.append(d1_hot)
    if low_res:
        points.append(low_res.vapor_out.relabel("lower economizer vapour"))
    points.extend([s2, d2])
    if up_res:
        points.append(up_res.vapor_out.relabel("upper economizer vapour"))
    points.extend([s3, discharge])
    if hot_gas is not discharge:
        points.append(hot_gas)
    points.append(p_cond.with_mass_flow(m_total))
    if up_res:
        points.append(
            up_res.liquid_out.relabel("upper economizer liquid").with_mass_flow(up_res.outlet_flow)
        )
    if low_res:
        points.append(low_res.liquid_out.relabel("lower economizer liquid").with_mass_flow(m))
    points.append(p_valve)

    heat_absorbed = m * (p_evap.enthalpy - p_valve.enthalpy)
    heat_rejected = m_total * (hot_gas.enthalpy - p_cond.enthalpy)

    lower_injection = low_res.injection_flow if low_res else 0.0
    upper_injection = up_res.injection_flow if up_res else 0.0
    details = {
        "evaporating_pressure": Pe,
        "condensing_pressure": Pc,
        "evaporating_temperature": sat.evaporating_temperature,
        "condensing_temperature": sat.condensing_temperature,
        "economizer_pressures": (P1, P2),
        "lower_economizer": lower.kind.value if lower else "disabled",
        "upper_economizer": upper.kind.value if upper else "disabled",
        "lower_injection_ratio": low_res.injection_ratio if low_res else 0.0,
        "upper_injection_ratio": up_res.injection_ratio if up_res else 0.0,
        "mass_flow_basis": basis,
    }
    if oil_duties:
        details["oil_cooler_duties"] = oil_duties
    logger.debug(
        "Double economizer: m=%.4f, inj1=%.4f, inj2=%.4f kg/s",
        m, lower_injection, upper_injection,
    )

    return build_result(
        MODE,
        fluid,
        points,
        stages,
        {
            "low_stage": m,
            "lower_injection": lower_injection,
            "middle_stage": s2.mass_flow,
            "upper_injection": upper_injection,
            "high_stage": m_total,
        },
        heat_absorbed,
        heat_rejected,
        oil_heat=sum(oil_duties.values()),
        warnings=warnings,
        details=details,
    )
