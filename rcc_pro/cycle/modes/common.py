"""Building blocks shared by the cycle solvers.

Saturation resolution, ordering checks, evaporator/condenser outlet
states, compressor mass flow, the single-stage vapour-compression core and
result assembly. Every mode solver composes these; none of them knows about
a particular mode.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any

from rcc_pro.core.errors import InvalidConfiguration, MissingParameter
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.base import StatePoint, lookup_point, mix_streams
from rcc_pro.cycle.components.compressor import Compressor
from rcc_pro.cycle.components.economizer import Economizer
from rcc_pro.cycle.components.heat_exchanger import SuctionLineHeatExchanger
from rcc_pro.cycle.components.valve import ExpansionValve
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult, StageResult
from rcc_pro.cycle.efficiency import (
    CompressorSpec,
    actual_mass_flow,
    isothermal_power,
    rated_efficiency,
    theoretical_volume_flow,
    volumetric_efficiency,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Saturation:
    """Evaporating and condensing saturation conditions (SI)."""

    evaporating_pressure: float
    evaporating_temperature: float
    condensing_pressure: float
    condensing_temperature: float

    @property
    def pressure_ratio(self) -> float:
        return self.condensing_pressure / self.evaporating_pressure


# --- Ordering checks ---


def check_ordering(config: CycleConfiguration) -> None:
    """Reject misordered saturation conditions before any property lookup.

    Only conditions given in the same kind (both temperatures or both
    pressures) can be compared here; mixed inputs are checked again after
    the saturation lookup in :func:`resolve_saturation`.

    Raises:
        InvalidConfiguration: On any ordering violation.
    """
    if config.evaporating_temperature is not None and config.evaporating_pressure is not None:
        raise InvalidConfiguration("Give the evaporating condition as temperature or pressure, not both")
    if config.condensing_temperature is not None and config.condensing_pressure is not None:
        raise InvalidConfiguration("Give the condensing condition as temperature or pressure, not both")

    Te, Tc = config.evaporating_temperature, config.condensing_temperature
    if Te is not None and Tc is not None and Te >= Tc:
        raise InvalidConfiguration(
            f"Evaporating temperature {Te - 273.15:.2f} °C must be below "
            f"condensing temperature {Tc - 273.15:.2f} °C"
        )
    Pe, Pc = config.evaporating_pressure, config.condensing_pressure
    if Pe is not None and Pc is not None and Pe >= Pc:
        raise InvalidConfiguration(
            f"Evaporating pressure {Pe / 1e5:.3f} bar must be below "
            f"condensing pressure {Pc / 1e5:.3f} bar"
        )
    _check_interstage(config, Pe, Pc)


def _check_interstage(config: CycleConfiguration, Pe: float | None, Pc: float | None) -> None:
    levels = []
    if config.economizer_pressures is not None:
        if len(config.economizer_pressures) != 2:
            raise InvalidConfiguration("Exactly two economizer pressures are required")
        p1, p2 = config.economizer_pressures
        if p1 >= p2:
            raise InvalidConfiguration(
                f"Economizer pressures must be strictly increasing, got "
                f"{p1 / 1e5:.3f} bar and {p2 / 1e5:.3f} bar"
            )
        levels.extend([p1, p2])
    if config.intermediate_pressure is not None:
        levels.append(config.intermediate_pressure)

    for p in levels:
        if Pe is not None and p <= Pe:
            raise InvalidConfiguration(
                f"Interstage pressure {p / 1e5:.3f} bar must exceed evaporating "
                f"pressure {Pe / 1e5:.3f} bar"
            )
        if Pc is not None and p >= Pc:
            raise InvalidConfiguration(
                f"Interstage pressure {p / 1e5:.3f} bar must be below condensing "
                f"pressure {Pc / 1e5:.3f} bar"
            )


# --- Saturation and boundary states ---


def resolve_saturation(
    config: CycleConfiguration,
    provider: PropertyProvider,
    mode: CycleMode,
    fluid: str | None = None,
    pressure_factor: float = 1.0,
) -> Saturation:
    """Resolve both saturation conditions to pressure and temperature.

    Evaporating conditions refer to the dew point, condensing conditions to
    the bubble point. ``pressure_factor`` scales the refrigerant's saturation
    pressure (oil dilution); a given pressure is then interpreted as the
    diluted mixture pressure.

    Raises:
        MissingParameter: If a condition is absent.
        InvalidConfiguration: If the resolved pressures are misordered.
    """
    fluid = fluid or config.fluid

    if config.evaporating_temperature is not None:
        Te = config.evaporating_temperature
        Pe = provider.saturation_pressure(fluid, Te, 1.0) * pressure_factor
    elif config.evaporating_pressure is not None:
        Pe = config.evaporating_pressure
        Te = provider.saturation_temperature(fluid, Pe / pressure_factor, 1.0)
    else:
        raise MissingParameter(mode.value, "evaporating_temperature")

    if config.condensing_temperature is not None:
        Tc = config.condensing_temperature
        Pc = provider.saturation_pressure(fluid, Tc, 0.0) * pressure_factor
    elif config.condensing_pressure is not None:
        Pc = config.condensing_pressure
        Tc = provider.saturation_temperature(fluid, Pc / pressure_factor, 0.0)
    else:
        raise MissingParameter(mode.value, "condensing_temperature")

    if Pe >= Pc:
        raise InvalidConfiguration(
            f"Evaporating pressure {Pe / 1e5:.3f} bar must be below "
            f"condensing pressure {Pc / 1e5:.3f} bar"
        )
    _check_interstage(config, Pe, Pc)

    logger.debug("Saturation %s: Pe=%.3f bar, Pc=%.3f bar", fluid, Pe / 1e5, Pc / 1e5)
    return Saturation(Pe, Te, Pc, Tc)


def evaporator_outlet(
    provider: PropertyProvider,
    fluid: str,
    pressure: float,
    saturation_temperature: float,
    superheat: float,
    label: str = "evaporator outlet",
) -> StatePoint:
    """Superheated (or saturated) vapour leaving the evaporator."""
    if superheat > 0:
        return lookup_point(
            provider, label, fluid, "P", pressure, "T", saturation_temperature + superheat
        )
    return lookup_point(provider, label, fluid, "P", pressure, "Q", 1.0)


def condenser_outlet(
    provider: PropertyProvider,
    fluid: str,
    pressure: float,
    subcooling: float,
    label: str = "condenser outlet",
) -> StatePoint:
    """Subcooled (or saturated) liquid leaving the condenser."""
    if subcooling > 0:
        T_bubble = provider.saturation_temperature(fluid, pressure, 0.0)
        return lookup_point(provider, label, fluid, "P", pressure, "T", T_bubble - subcooling)
    return lookup_point(provider, label, fluid, "P", pressure, "Q", 0.0)


# --- Compressor bookkeeping ---


def suction_flow(
    spec: CompressorSpec,
    suction: StatePoint,
    pressure_ratio: float,
    override: float | None = None,
) -> tuple[float, float, str]:
    """Suction mass flow of a compressor.

    Returns:
        ``(mass_flow, volumetric_efficiency, basis)`` where basis is
        ``"override"``, ``"displacement"`` or ``"unit"`` (1 kg/s, results
        are then specific).
    """
    eta_v = volumetric_efficiency(spec, pressure_ratio)
    if override is not None:
        return override, eta_v, "override"
    volume_flow = theoretical_volume_flow(spec)
    if volume_flow is not None:
        return actual_mass_flow(volume_flow, suction.density, eta_v), eta_v, "displacement"
    return 1.0, eta_v, "unit"


def stage_result(compressor: Compressor, inlet: StatePoint, eta_v: float | None = None) -> StageResult:
    """Freeze a computed :class:`Compressor` into a StageResult."""
    res = compressor.result
    chain = compressor.power_chain
    return StageResult(
        name=compressor.name,
        inlet=inlet,
        outlet=res.outlet,
        isentropic_outlet=res.isentropic_outlet,
        mass_flow=inlet.mass_flow,
        pressure_ratio=res.pressure_ratio,
        isentropic_efficiency=res.efficiency,
        isentropic_work=res.isentropic_work,
        actual_work=res.actual_work,
        indicated_power=chain.indicated,
        shaft_power=chain.shaft,
        input_power=chain.input,
        volumetric_efficiency=eta_v,
    )


def fixed_efficiency_spec(spec: CompressorSpec, efficiency: float) -> CompressorSpec:
    """Copy of *spec* with a constant efficiency on its own basis."""
    key = "isothermal_efficiency" if spec.efficiency_type == "isothermal" else "isentropic_efficiency"
    return replace(
        spec,
        efficiency_curve=None,
        curve_domain=None,
        auto_efficiency=False,
        **{key: efficiency},
    )


# --- Single-stage core ---


@dataclass
class SingleStageSolution:
    """Intermediate result of the single-stage walk, before assembly."""

    saturation: Saturation
    evaporator_outlet: StatePoint
    condenser_outlet: StatePoint
    points: list[StatePoint]
    stages: list[StageResult]
    suction_flow: float
    injection_flow: float
    heat_absorbed: float
    heat_rejected: float
    oil_heat: float = 0.0
    warnings: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def total_flow(self) -> float:
        return self.suction_flow + self.injection_flow

    @property
    def input_power(self) -> float:
        return sum(s.input_power for s in self.stages)

    @property
    def shaft_power(self) -> float:
        return sum(s.shaft_power for s in self.stages)

    @property
    def indicated_power(self) -> float:
        return sum(s.indicated_power for s in self.stages)

    @property
    def discharge(self) -> StatePoint:
        return self.stages[-1].outlet

    @property
    def compressor_enthalpy_in(self) -> float:
        """Enthalpy flow [W] entering the compressor (suction + injection)."""
        return self.total_flow * self.discharge.enthalpy - self.indicated_power


def solve_single_stage(
    config: CycleConfiguration,
    provider: PropertyProvider,
    mode: CycleMode,
    fluid: str | None = None,
    saturation: Saturation | None = None,
) -> SingleStageSolution:
    """Walk a single-stage vapour-compression cycle.

    evaporator outlet → [SLHX] → compressor [→ ECO port mixing →] →
    condenser → [economizer] → [SLHX] → expansion valve → evaporator.

    The SLHX takes its liquid after the economizer, so both of its sides
    carry the evaporator flow. The optional ECO port splits the compression
    at the economizer pressure (configured, else √(Pe·Pc)); the machine's
    efficiency is evaluated once at the overall pressure ratio and applied
    to both legs.
    """
    fluid = fluid or config.fluid
    sat = saturation or resolve_saturation(config, provider, mode, fluid)
    Pe, Pc = sat.evaporating_pressure, sat.condensing_pressure
    spec = config.compressor
    warnings: list[str] = []
    details: dict[str, Any] = {}

    p_evap = evaporator_outlet(provider, fluid, Pe, sat.evaporating_temperature, config.superheat)
    p_cond = condenser_outlet(provider, fluid, Pc, config.subcooling)
    suction, liquid = p_evap, p_cond

    eco = None
    if config.economizer_enabled:
        P_eco = config.intermediate_pressure or math.sqrt(Pe * Pc)
        eco = Economizer(
            provider, config.economizer_type, config.economizer_superheat, config.economizer_approach
        )
        # Economizer liquid state does not depend on the flow
        liquid = eco.compute(p_cond, P_eco, outlet_flow=1.0)

    hx_liquid = None
    if config.slhx_effectiveness > 0:
        hx = SuctionLineHeatExchanger(provider, config.slhx_effectiveness)
        hx_liquid = hx.compute(liquid, cold_inlet=p_evap)
        suction = hx.cold_outlet.relabel("compressor suction")
        liquid = hx_liquid
        details["slhx_specific_duty"] = hx.specific_duty

    pr = sat.pressure_ratio
    m, eta_v, basis = suction_flow(spec, suction, pr, config.mass_flow)
    suction = suction.with_mass_flow(m)
    points = [p_evap.with_mass_flow(m)]
    if hx_liquid is not None:
        points.append(suction)
    liquid_points: list[StatePoint] = []
    details["mass_flow_basis"] = basis
    m_inj = 0.0

    if eco is not None:
        eta, warning = rated_efficiency(spec, pr)
        if warning:
            warnings.append(warning)
        leg_spec = fixed_efficiency_spec(spec, eta)

        eco_liquid = eco.compute(p_cond, P_eco, outlet_flow=m)
        eco_res = eco.result
        m_inj = eco_res.injection_flow

        c1 = Compressor(leg_spec, provider, "compressor suction leg")
        port = c1.compute(suction, P_eco, label="economizer port")
        mixed = mix_streams(provider, "port mixture", port, eco_res.vapor_out)
        c2 = Compressor(leg_spec, provider, "compressor port leg")
        discharge = c2.compute(mixed, Pc, label="discharge")
        stages = [stage_result(c1, suction, eta_v), stage_result(c2, mixed)]
        points.extend([port, mixed, discharge])
        liquid_points.extend([eco_liquid, eco_res.vapor_out])
        details["economizer_pressure"] = P_eco
        details["injection_ratio"] = eco_res.injection_ratio
    else:
        comp = Compressor(spec, provider, "compressor")
        discharge = comp.compute(suction, Pc, label="discharge")
        warnings.extend(comp.result.warnings)
        stages = [stage_result(comp, suction, eta_v)]
        points.append(discharge)

    if hx_liquid is not None:
        liquid_points.append(hx_liquid.with_mass_flow(m))

    p_valve = ExpansionValve(provider).compute(liquid.with_mass_flow(m), Pe)
    points.extend([p_cond.with_mass_flow(m + m_inj), *liquid_points, p_valve])

    heat_absorbed = m * (p_evap.enthalpy - p_valve.enthalpy)
    heat_rejected = (m + m_inj) * (discharge.enthalpy - p_cond.enthalpy)

    details.update(
        evaporating_pressure=Pe,
        condensing_pressure=Pc,
        evaporating_temperature=sat.evaporating_temperature,
        condensing_temperature=sat.condensing_temperature,
        pressure_ratio=pr,
        isothermal_power=isothermal_power(m, provider.gas_constant(fluid), suction.temperature, pr),
    )

    return SingleStageSolution(
        saturation=sat,
        evaporator_outlet=p_evap.with_mass_flow(m),
        condenser_outlet=p_cond,
        points=points,
        stages=stages,
        suction_flow=m,
        injection_flow=m_inj,
        heat_absorbed=heat_absorbed,
        heat_rejected=heat_rejected,
        warnings=warnings,
        details=details,
    )


def discharge_energy_balance(
    provider: PropertyProvider,
    fluid: str,
    pressure: float,
    temperature: float,
    shaft_power: float,
    enthalpy_in: float,
    mass_flow: float,
    label: str = "discharge (actual)",
) -> tuple[StatePoint, float, str | None]:
    """Split shaft power between the gas and the oil cooler.

        Q_oil = P_shaft − (ṁ·h2a − H_in)

    with h2a from the measured discharge temperature. A negative oil load is
    not physical: it is clamped to zero and the discharge state recomputed
    from h2a = (H_in + P_shaft)/ṁ.

    Returns:
        ``(discharge_state, oil_heat, warning)``.
    """
    discharge = lookup_point(provider, label, fluid, "P", pressure, "T", temperature, mass_flow)
    oil_heat = shaft_power - (mass_flow * discharge.enthalpy - enthalpy_in)
    if oil_heat >= 0:
        return discharge, oil_heat, None

    h2a = (enthalpy_in + shaft_power) / mass_flow
    discharge = lookup_point(provider, label, fluid, "P", pressure, "H", h2a, mass_flow)
    warning = (
        f"Discharge temperature {temperature - 273.15:.1f} °C implies negative oil-cooler load; "
        f"oil heat set to zero and discharge recomputed as {discharge.temperature - 273.15:.1f} °C"
    )
    logger.warning(warning)
    return discharge, 0.0, warning


def stage_discharge_balance(
    provider: PropertyProvider,
    stage: StageResult,
    temperature: float,
    label: str,
) -> tuple[StatePoint, float, str | None]:
    """:func:`discharge_energy_balance` for one compression stage."""
    return discharge_energy_balance(
        provider,
        stage.inlet.fluid_name,
        stage.outlet.pressure,
        temperature,
        stage.shaft_power,
        stage.mass_flow * stage.inlet.enthalpy,
        stage.mass_flow,
        label=label,
    )


def apply_measured_discharge(
    provider: PropertyProvider, solution: SingleStageSolution, temperature: float
) -> SingleStageSolution:
    """Re-balance a single-stage solution on a measured discharge temperature.

    Both legs of an ECO port form one machine here: the shaft power not
    found in the discharge gas is the oil-cooler duty, and the condenser
    receives the measured discharge state.
    """
    m = solution.total_flow
    discharge, oil_heat, warning = discharge_energy_balance(
        provider,
        solution.discharge.fluid_name,
        solution.discharge.pressure,
        temperature,
        solution.shaft_power,
        solution.compressor_enthalpy_in,
        m,
    )
    points = list(solution.points)
    points.insert(points.index(solution.discharge) + 1, discharge)
    details = dict(solution.details)
    details["discharge_corrected"] = warning is not None
    details["oil_cooler_duties"] = {"compressor": oil_heat}
    return replace(
        solution,
        points=points,
        heat_rejected=m * (discharge.enthalpy - solution.condenser_outlet.enthalpy),
        oil_heat=oil_heat,
        warnings=solution.warnings + ([warning] if warning else []),
        details=details,
    )


# --- Result assembly ---


def build_result(
    mode: CycleMode,
    fluid: str,
    points: list[StatePoint],
    stages: list[StageResult],
    mass_flows: dict[str, float],
    heat_absorbed: float,
    heat_rejected: float,
    oil_heat: float = 0.0,
    warnings: list[str] | None = None,
    details: dict[str, Any] | None = None,
    loops: tuple[CycleResult, ...] = (),
    heating: bool = False,
) -> CycleResult:
    """Assemble the immutable CycleResult from solved quantities.

    COPs are referred to the total electrical input power of all stages.
    """
    total_power = sum(s.input_power for s in stages)
    if total_power <= 0:
        raise InvalidConfiguration("Cycle has no compressor power; check the operating conditions")
    cop_cooling = heat_absorbed / total_power
    cop_heating = (heat_rejected + oil_heat) / total_power
    return CycleResult(
        mode=mode,
        fluid=fluid,
        state_points=tuple(points),
        stages=tuple(stages),
        mass_flows=dict(mass_flows),
        heat_absorbed=heat_absorbed,
        heat_rejected=heat_rejected,
        total_power=total_power,
        cop_cooling=cop_cooling,
        cop_heating=cop_heating,
        cop=cop_heating if heating else cop_cooling,
        oil_heat=oil_heat,
        discharge_temperatures={s.name: s.outlet.temperature for s in stages},
        warnings=tuple(warnings or ()),
        details=dict(details or {}),
        loops=loops,
    )


def result_from_single_stage(
    mode: CycleMode, fluid: str, solution: SingleStageSolution, heating: bool = False
) -> CycleResult:
    """Assemble a single-stage solution."""
    return build_result(
        mode,
        fluid,
        solution.points,
        solution.stages,
        {
            "suction": solution.suction_flow,
            "injection": solution.injection_flow,
            "discharge": solution.total_flow,
        },
        solution.heat_absorbed,
        solution.heat_rejected,
        oil_heat=solution.oil_heat,
        warnings=solution.warnings,
        details=solution.details,
        heating=heating,
    )
