"""Mode 7: ammonia (R717) heat pump.

Same state-point walk as the single-stage cycle, but the working fluid is
fixed to ammonia and the condensing temperature follows the heat-sink
water: T_cond = T_sink,out + condenser approach (unless a condensing
condition is given explicitly).

The heat delivered to the sink water is collected along the refrigerant
side, from the hot end down:

    desuperheater (optional) → condenser → sink subcooler (optional)

plus the heat recovered in the oil cooler: the drive friction heat, or the
shaft power not found in the gas when a discharge temperature is measured.
Only the ``useful_superheat`` part of the suction superheat counts as
capacity; the rest is picked up in the suction line.

With rating polynomial coefficients (EN 12900 / AHRI 540) the mass flow and
input power follow from the rated capacity and power instead of the
displacement model.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from rcc_pro.core.errors import InvalidConfiguration, MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import StatePoint, lookup_point
from rcc_pro.cycle.components.compressor import Compressor
from rcc_pro.cycle.components.valve import ExpansionValve
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult, StageResult
from rcc_pro.cycle.efficiency import ahri_polynomial
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
from rcc_pro.utils.constants import AMMONIA, AMMONIA_ALIASES, CP_WATER, T_CELSIUS_OFFSET

logger = logging.getLogger(__name__)

MODE = CycleMode.AMMONIA_HEAT_PUMP


def _heat_pump_config(config: CycleConfiguration) -> CycleConfiguration:
    """Fix the fluid and derive the condensing temperature from the sink."""
    T_in, T_out = config.heat_sink_inlet_temperature, config.heat_sink_outlet_temperature
    if T_in is None:
        raise MissingParameter(MODE.value, "heat_sink_inlet_temperature")
    if T_out is None:
        raise MissingParameter(MODE.value, "heat_sink_outlet_temperature")
    if T_out <= T_in:
        raise InvalidConfiguration(
            f"Heat-sink outlet {T_out - T_CELSIUS_OFFSET:.1f} °C must exceed inlet "
            f"{T_in - T_CELSIUS_OFFSET:.1f} °C"
        )

    if config.condensing_temperature is None and config.condensing_pressure is None:
        return replace(config, fluid=AMMONIA, condensing_temperature=T_out + config.condenser_approach)
    if config.condensing_temperature is not None and config.condensing_temperature <= T_out:
        raise InvalidConfiguration(
            f"Condensing temperature {config.condensing_temperature - T_CELSIUS_OFFSET:.1f} °C "
            f"cannot heat the sink to {T_out - T_CELSIUS_OFFSET:.1f} °C"
        )
    return replace(config, fluid=AMMONIA)


def solve(config: CycleConfiguration, provider: PropertyProvider) -> CycleResult:
    """Solve an ammonia heat pump against a heat-sink water loop."""
    warnings: list[str] = []
    if config.fluid and config.fluid.lower() not in AMMONIA_ALIASES:
        warning = f"Heat pump mode runs on {AMMONIA}; configured fluid {config.fluid} ignored"
        logger.warning(warning)
        warnings.append(warning)

    hp_config = _heat_pump_config(config)
    check_ordering(hp_config)

    useful_sh = config.superheat if config.useful_superheat is None else config.useful_superheat
    if not 0.0 <= useful_sh <= config.superheat:
        raise InvalidConfiguration(
            f"Useful superheat {useful_sh} K must lie within the total superheat {config.superheat} K"
        )

    fluid = AMMONIA
    sat = resolve_saturation(hp_config, provider, MODE, fluid)
    Pe, Pc = sat.evaporating_pressure, sat.condensing_pressure
    T_sink_in = config.heat_sink_inlet_temperature
    T_sink_out = config.heat_sink_outlet_temperature

    p_useful = evaporator_outlet(provider, fluid, Pe, sat.evaporating_temperature, useful_sh)
    suction = evaporator_outlet(
        provider, fluid, Pe, sat.evaporating_temperature, config.superheat, label="compressor suction"
    )
    p_cond = condenser_outlet(provider, fluid, Pc, config.subcooling)

    # Sink-side subcooler sets the liquid entering the valve
    liquid = p_cond
    if config.sink_subcooler_approach is not None:
        T_sub = T_sink_in + config.sink_subcooler_approach
        if T_sub < p_cond.temperature:
            liquid = lookup_point(provider, "sink subcooler outlet", fluid, "P", Pc, "T", T_sub)
        else:
            warning = (
                f"Sink subcooler outlet {T_sub - T_CELSIUS_OFFSET:.1f} °C is not below the "
                f"condenser outlet; subcooler skipped"
            )
            logger.warning(warning)
            warnings.append(warning)

    rated = (
        config.rating_capacity_coefficients is not None
        and config.rating_power_coefficients is not None
    )
    if rated:
        stage = _rated_stage(config, provider, sat, suction, p_useful.enthalpy - liquid.enthalpy)
        basis = "rating"
    else:
        m, eta_v, basis = suction_flow(
            config.compressor, suction, sat.pressure_ratio, config.mass_flow
        )
        comp = Compressor(config.compressor, provider, "compressor")
        comp.compute(suction.with_mass_flow(m), Pc, label="discharge")
        warnings.extend(comp.result.warnings)
        stage = stage_result(comp, suction.with_mass_flow(m), eta_v)

    m = stage.mass_flow
    discharge = stage.outlet
    points = [p_useful.with_mass_flow(m), stage.inlet, discharge]

    # Friction heat of the drive ends up in the oil
    oil_heat = max(stage.shaft_power - stage.indicated_power, 0.0)
    if config.discharge_temperature is not None:
        discharge, oil_heat, warning = stage_discharge_balance(
            provider, stage, config.discharge_temperature, "discharge (actual)"
        )
        points.append(discharge)
        if warning:
            warnings.append(warning)

    q_desup = 0.0
    h_condenser_in = discharge.enthalpy
    if config.desuperheater_temperature is not None:
        T_d = config.desuperheater_temperature
        if sat.condensing_temperature < T_d < discharge.temperature:
            p_desup = lookup_point(provider, "desuperheater outlet", fluid, "P", Pc, "T", T_d, m)
            q_desup = m * (discharge.enthalpy - p_desup.enthalpy)
            h_condenser_in = p_desup.enthalpy
            points.append(p_desup)
        else:
            warning = (
                f"Desuperheater outlet {T_d - T_CELSIUS_OFFSET:.1f} °C is outside the "
                f"discharge superheat range; desuperheater skipped"
            )
            logger.warning(warning)
            warnings.append(warning)

    q_cond = m * (h_condenser_in - p_cond.enthalpy)
    q_sub = m * (p_cond.enthalpy - liquid.enthalpy)
    points.append(p_cond.with_mass_flow(m))
    if liquid is not p_cond:
        points.append(liquid.with_mass_flow(m))

    p_valve = ExpansionValve(provider).compute(liquid.with_mass_flow(m), Pe)
    points.append(p_valve)

    heat_absorbed = m * (p_useful.enthalpy - p_valve.enthalpy)
    heat_rejected = q_desup + q_cond + q_sub
    sink_heat = heat_rejected + oil_heat
    water_flow = sink_heat / (CP_WATER * (T_sink_out - T_sink_in))

    details = {
        "evaporating_pressure": Pe,
        "condensing_pressure": Pc,
        "evaporating_temperature": sat.evaporating_temperature,
        "condensing_temperature": sat.condensing_temperature,
        "pressure_ratio": sat.pressure_ratio,
        "desuperheater_duty": q_desup,
        "condenser_duty": q_cond,
        "subcooler_duty": q_sub,
        "oil_cooler_duty": oil_heat,
        "sink_heat": sink_heat,
        "sink_water_flow": water_flow,
        "line_superheat_heat": m * (stage.inlet.enthalpy - p_useful.enthalpy),
        "mass_flow_basis": basis,
    }
    logger.debug("Ammonia heat pump: Q_sink=%.1f W, water=%.3f kg/s", sink_heat, water_flow)

    return build_result(
        MODE,
        fluid,
        points,
        [stage],
        {"refrigerant": m, "sink_water": water_flow},
        heat_absorbed,
        heat_rejected,
        oil_heat=oil_heat,
        warnings=warnings,
        details=details,
        heating=True,
    )


def _rated_stage(
    config: CycleConfiguration,
    provider: PropertyProvider,
    sat: Saturation,
    suction: StatePoint,
    specific_capacity: float,
) -> StageResult:
    """Compression stage from the rating polynomials.

    Capacity [W] fixes the mass flow, power [W] is the electrical input.
    The gas receives the shaft power less mechanical losses.
    """
    spec = config.compressor
    Te_c = sat.evaporating_temperature - T_CELSIUS_OFFSET
    Tc_c = sat.condensing_temperature - T_CELSIUS_OFFSET
    capacity = ahri_polynomial(config.rating_capacity_coefficients, Te_c, Tc_c)
    power = ahri_polynomial(config.rating_power_coefficients, Te_c, Tc_c)
    if capacity <= 0 or power <= 0:
        raise InvalidConfiguration(
            f"Rating polynomials give capacity {capacity:.1f} W and power {power:.1f} W "
            f"at {Te_c:.1f}/{Tc_c:.1f} °C"
        )

    m = capacity / specific_capacity
    shaft = power * spec.motor_efficiency
    indicated = shaft * spec.mechanical_efficiency
    inlet = suction.with_mass_flow(m)
    Pc = sat.condensing_pressure
    outlet = lookup_point(
        provider, "discharge", AMMONIA, "P", Pc, "H", inlet.enthalpy + indicated / m, m
    )
    iso = lookup_point(
        provider, "discharge (isentropic)", AMMONIA, "P", Pc, "S", inlet.entropy, m
    )
    w_s = iso.enthalpy - inlet.enthalpy
    w = indicated / m
    return StageResult(
        name="compressor",
        inlet=inlet,
        outlet=outlet,
        isentropic_outlet=iso,
        mass_flow=m,
        pressure_ratio=sat.pressure_ratio,
        isentropic_efficiency=w_s / w,
        isentropic_work=w_s,
        actual_work=w,
        indicated_power=indicated,
        shaft_power=shaft,
        input_power=power,
    )
