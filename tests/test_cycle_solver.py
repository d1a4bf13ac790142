"""Tests for the refrigeration cycle solvers."""

import math
from dataclasses import replace

import pytest

from rcc_pro.core.errors import (
    InvalidConfiguration,
    MissingParameter,
    UnsupportedFluid,
)
from rcc_pro.core.fluids import PropertyProvider
from rcc_pro.cycle.components.compressor import isentropic_efficiency_from_states
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode
from rcc_pro.cycle.efficiency import CompressorSpec
from rcc_pro.cycle.solver import calculate, check_configuration, required_fields
from rcc_pro.utils.constants import CP_WATER


def _c(t: float) -> float:
    return t + 273.15


def _single_stage(**kwargs) -> CycleConfiguration:
    base = dict(
        fluid="R134a",
        evaporating_temperature=_c(-10.0),
        condensing_temperature=_c(40.0),
        superheat=5.0,
        subcooling=5.0,
        compressor=CompressorSpec(isentropic_efficiency=0.75),
    )
    base.update(kwargs)
    return CycleConfiguration(**base)


def _two_stage(**kwargs) -> CycleConfiguration:
    base = dict(
        fluid="R717",
        evaporating_temperature=_c(-35.0),
        condensing_temperature=_c(35.0),
        compressor=CompressorSpec(isentropic_efficiency=0.75),
        high_stage_compressor=CompressorSpec(isentropic_efficiency=0.75),
    )
    base.update(kwargs)
    return CycleConfiguration(**base)


def _cascade(**kwargs) -> CycleConfiguration:
    base = dict(
        fluid="R134a",
        high_fluid="R717",
        evaporating_temperature=_c(-30.0),
        condensing_temperature=_c(40.0),
        compressor=CompressorSpec(isentropic_efficiency=0.75, displacement=300.0),
        high_stage_compressor=CompressorSpec(isentropic_efficiency=0.75, displacement=100.0),
    )
    base.update(kwargs)
    return CycleConfiguration(**base)


def _heat_pump(**kwargs) -> CycleConfiguration:
    base = dict(
        evaporating_temperature=_c(0.0),
        heat_sink_inlet_temperature=_c(30.0),
        heat_sink_outlet_temperature=_c(50.0),
        compressor=CompressorSpec(isentropic_efficiency=0.75, mechanical_efficiency=0.95),
    )
    base.update(kwargs)
    return CycleConfiguration(**base)


class TestSingleStage:
    def test_reference_scenario(self):
        result = calculate(3, _single_stage())
        assert 3.0 < result.cop < 3.6
        assert result.discharge_temperature > _c(40.0)
        assert result.mode == CycleMode.SINGLE_STAGE

    def test_state_point_order(self):
        result = calculate("3", _single_stage())
        labels = [p.label for p in result.state_points]
        assert labels == ["evaporator outlet", "discharge", "condenser outlet", "evaporator inlet"]

    def test_cop_identity(self):
        result = calculate(3, _single_stage())
        stage = result.stages[0]
        work = stage.mass_flow * stage.actual_work
        assert result.cop == pytest.approx(result.heat_absorbed / work)
        assert result.cop == pytest.approx(result.heat_absorbed / result.total_power)

    def test_energy_balance(self):
        result = calculate(3, _single_stage())
        assert result.heat_rejected == pytest.approx(result.heat_absorbed + result.total_power, rel=1e-6)

    def test_efficiency_round_trip(self):
        provider = PropertyProvider()
        result = calculate(3, _single_stage(), provider)
        stage = result.stages[0]
        eta = isentropic_efficiency_from_states(stage.inlet, stage.outlet, provider)
        assert eta == pytest.approx(0.75, rel=1e-4)

    def test_unit_mass_flow_without_displacement(self):
        result = calculate(3, _single_stage())
        assert result.mass_flows["suction"] == pytest.approx(1.0)
        assert result.details["mass_flow_basis"] == "unit"

    def test_displacement_mass_flow(self):
        spec = CompressorSpec(isentropic_efficiency=0.75, volumetric_efficiency=0.85, displacement=276.0)
        result = calculate(3, _single_stage(compressor=spec))
        suction = result.state("evaporator outlet")
        assert result.mass_flows["suction"] == pytest.approx(276.0 / 3600 * 0.85 * suction.density)
        assert result.details["mass_flow_basis"] == "displacement"

    def test_mass_flow_override(self):
        result = calculate(3, _single_stage(mass_flow=0.5))
        assert result.mass_flows["suction"] == pytest.approx(0.5)
        assert result.details["mass_flow_basis"] == "override"

    def test_pressure_inputs(self):
        by_temp = calculate(3, _single_stage())
        cfg = _single_stage(
            evaporating_temperature=None,
            condensing_temperature=None,
            evaporating_pressure=by_temp.details["evaporating_pressure"],
            condensing_pressure=by_temp.details["condensing_pressure"],
        )
        by_pressure = calculate(3, cfg)
        assert by_pressure.cop == pytest.approx(by_temp.cop, rel=1e-6)

    def test_drive_losses_lower_cop(self):
        lossless = calculate(3, _single_stage())
        spec = CompressorSpec(isentropic_efficiency=0.75, mechanical_efficiency=0.9, motor_efficiency=0.95)
        lossy = calculate(3, _single_stage(compressor=spec))
        assert lossy.cop == pytest.approx(lossless.cop * 0.9 * 0.95)

    def test_auto_efficiency(self):
        result = calculate(3, _single_stage(compressor=CompressorSpec(auto_efficiency=True)))
        pr = result.details["pressure_ratio"]
        assert result.stages[0].isentropic_efficiency == pytest.approx(0.80 - 0.018 * abs(pr - 4.0))

    def test_curve_clamp_warning_in_result(self):
        spec = CompressorSpec(efficiency_curve=(0.7,), curve_domain=(1.0, 2.0))
        result = calculate(3, _single_stage(compressor=spec))
        assert any("clamped" in w for w in result.warnings)

    def test_isothermal_power_reported(self):
        result = calculate(3, _single_stage())
        assert 0 < result.details["isothermal_power"] < result.total_power

    def test_slhx(self):
        result = calculate(3, _single_stage(slhx_effectiveness=0.5))
        evap = result.state("evaporator outlet")
        suction = result.state("compressor suction")
        cond = result.state("condenser outlet")
        liquid = result.state("SLHX liquid outlet")
        assert suction.temperature > evap.temperature
        assert liquid.temperature < cond.temperature
        assert suction.enthalpy - evap.enthalpy == pytest.approx(cond.enthalpy - liquid.enthalpy, rel=1e-4)
        assert result.stages[0].inlet.temperature == pytest.approx(suction.temperature)

    def test_economizer_port(self):
        plain = calculate(3, _single_stage(mass_flow=1.0))
        eco = calculate(3, _single_stage(mass_flow=1.0, economizer_enabled=True))
        flows = eco.mass_flows
        assert flows["injection"] > 0
        assert flows["discharge"] == pytest.approx(flows["suction"] + flows["injection"])
        assert [s.name for s in eco.stages] == ["compressor suction leg", "compressor port leg"]
        assert eco.stages[0].isentropic_efficiency == pytest.approx(eco.stages[1].isentropic_efficiency)
        assert eco.heat_absorbed > plain.heat_absorbed
        port = eco.state("economizer port")
        assert port.pressure == pytest.approx(eco.details["economizer_pressure"])

    def test_ordering_checked_before_lookup(self):
        cfg = _single_stage(fluid="NotARefrigerant", evaporating_temperature=_c(40.0), condensing_temperature=_c(-10.0))
        with pytest.raises(InvalidConfiguration):
            calculate(3, cfg)

    def test_equal_conditions_rejected(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(condensing_temperature=_c(-10.0)))

    def test_both_temperature_and_pressure_rejected(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(evaporating_pressure=2e5))

    def test_mixed_inputs_misordered(self):
        cfg = _single_stage(condensing_temperature=None, condensing_pressure=1.5e5)
        with pytest.raises(InvalidConfiguration):
            calculate(3, cfg)

    def test_unsupported_fluid(self):
        with pytest.raises(UnsupportedFluid):
            calculate(3, _single_stage(fluid="NotARefrigerant"))

    def test_missing_condition(self):
        with pytest.raises(MissingParameter) as exc_info:
            calculate(3, _single_stage(condensing_temperature=None))
        assert exc_info.value.parameter == "condensing_temperature"

    def test_invalid_efficiency(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(compressor=CompressorSpec(isentropic_efficiency=1.5)))

    def test_results_independent(self):
        a = calculate(3, _single_stage())
        b = calculate(3, _single_stage())
        assert a.cop == b.cop
        assert a is not b


class TestOilRefrigeration:
    def test_zero_oil_matches_single_stage(self):
        plain = calculate(3, _single_stage())
        oil = calculate(2, _single_stage(oil_fraction=0.0))
        assert oil.cop == pytest.approx(plain.cop, rel=1e-9)
        assert oil.details["oil_dilution_factor"] == pytest.approx(1.0)

    def test_oil_lowers_evaporating_pressure(self):
        plain = calculate(3, _single_stage())
        oil = calculate(2, _single_stage(oil_fraction=0.05))
        assert oil.details["evaporating_pressure"] < plain.details["evaporating_pressure"]
        assert oil.details["evaporating_pressure_offset"] > 0
        assert oil.details["evaporating_pressure"] + oil.details["evaporating_pressure_offset"] == pytest.approx(
            plain.details["evaporating_pressure"], rel=1e-9
        )

    def test_missing_oil_fraction(self):
        with pytest.raises(MissingParameter) as exc_info:
            calculate(2, _single_stage())
        assert exc_info.value.parameter == "oil_fraction"

    def test_oil_heat_from_friction(self):
        spec = CompressorSpec(isentropic_efficiency=0.75, mechanical_efficiency=0.9)
        result = calculate(2, _single_stage(oil_fraction=0.02, compressor=spec))
        stage = result.stages[0]
        assert result.oil_heat == pytest.approx(stage.shaft_power - stage.indicated_power)
        assert result.cop_heating == pytest.approx(
            (result.heat_rejected + result.oil_heat) / result.total_power
        )

    def test_discharge_energy_balance(self):
        base = calculate(2, _single_stage(oil_fraction=0.02))
        t_measured = base.discharge_temperature - 10.0
        result = calculate(2, _single_stage(oil_fraction=0.02, discharge_temperature=t_measured))
        actual = result.state("discharge (actual)")
        assert actual.temperature == pytest.approx(t_measured)
        assert result.oil_heat > 0
        # Gas plus oil cooler carry the full shaft power
        m = result.mass_flows["discharge"]
        suction = result.state("evaporator outlet")
        gained = m * (actual.enthalpy - suction.enthalpy) + result.oil_heat
        assert gained == pytest.approx(result.stages[0].shaft_power, rel=1e-6)
        assert not result.details["discharge_corrected"]

    def test_discharge_too_hot_clamped(self):
        base = calculate(2, _single_stage(oil_fraction=0.02))
        result = calculate(
            2, _single_stage(oil_fraction=0.02, discharge_temperature=base.discharge_temperature + 30.0)
        )
        assert result.oil_heat == 0.0
        assert result.details["discharge_corrected"]
        assert result.state("discharge (actual)").temperature == pytest.approx(
            base.discharge_temperature, abs=0.05
        )


class TestTwoStageFlash:
    def test_mass_balance(self):
        result = calculate("3ts", _two_stage())
        flows = result.mass_flows
        assert flows["high_stage"] == pytest.approx(flows["low_stage"] + flows["injection"])
        x = result.details["economizer_vapor_fraction"]
        assert flows["injection"] / flows["high_stage"] == pytest.approx(x)

    def test_geometric_mean_without_displacement(self):
        result = calculate("3ts", _two_stage())
        Pe = result.details["evaporating_pressure"]
        Pc = result.details["condensing_pressure"]
        assert result.details["intermediate_pressure"] == pytest.approx((Pe * Pc) ** 0.5)
        assert result.details["intermediate_pressure_source"] == "geometric mean"

    def test_configured_intermediate_pressure(self):
        result = calculate("3ts", _two_stage(intermediate_pressure=3.0e5))
        assert result.details["intermediate_pressure"] == pytest.approx(3.0e5)
        assert result.state("high stage suction").pressure == pytest.approx(3.0e5)

    def test_beats_single_stage(self):
        two = calculate("3ts", _two_stage())
        one = calculate(3, _two_stage())
        assert two.cop > one.cop

    def test_displacement_match(self):
        cfg = _two_stage(
            compressor=CompressorSpec(isentropic_efficiency=0.75, displacement=1872.0),
            high_stage_compressor=CompressorSpec(isentropic_efficiency=0.75, displacement=641.0),
        )
        result = calculate("3ts", cfg)
        assert result.details["intermediate_pressure_source"] == "displacement match"
        hp = result.stages[1]
        swallowed = 641.0 / 3600 * 0.85 * hp.inlet.density
        assert hp.mass_flow == pytest.approx(swallowed, rel=1e-3)

    def test_stage_order(self):
        result = calculate("3ts", _two_stage())
        lp, hp = result.stages
        assert (lp.name, hp.name) == ("low stage", "high stage")
        assert lp.outlet.pressure == pytest.approx(hp.inlet.pressure)
        assert set(result.discharge_temperatures) == {"low stage", "high stage"}

    def test_missing_high_stage(self):
        with pytest.raises(MissingParameter):
            calculate("3ts", _two_stage(high_stage_compressor=None))

    def test_intermediate_outside_range(self):
        with pytest.raises(InvalidConfiguration):
            calculate("3ts", _two_stage(intermediate_pressure=50e5))


class TestTwoStageSubcooler:
    def test_energy_balance(self):
        result = calculate(5, _two_stage())
        cond = result.state("condenser outlet")
        vapour = result.state("economizer vapour")
        m_inj = result.mass_flows["injection"]
        assert result.details["economizer_duty"] == pytest.approx(
            m_inj * (vapour.enthalpy - cond.enthalpy), rel=1e-6
        )
        assert result.mass_flows["high_stage"] == pytest.approx(
            result.mass_flows["low_stage"] + m_inj
        )

    def test_liquid_stays_at_condensing_pressure(self):
        result = calculate(5, _two_stage())
        liquid = result.state("subcooled liquid")
        assert liquid.pressure == pytest.approx(result.details["condensing_pressure"])
        P_int = result.details["intermediate_pressure"]
        T_sat = PropertyProvider().saturation_temperature("R717", P_int)
        assert liquid.temperature == pytest.approx(T_sat + 5.0)


class TestDoubleEconomizer:
    def _config(self, **kwargs):
        return _two_stage(economizer_pressures=(2.0e5, 5.0e5), **kwargs)

    def test_flows(self):
        result = calculate(6, self._config())
        f = result.mass_flows
        assert f["middle_stage"] == pytest.approx(f["low_stage"] + f["lower_injection"])
        assert f["high_stage"] == pytest.approx(f["middle_stage"] + f["upper_injection"])

    def test_pressure_chain(self):
        result = calculate(6, self._config())
        names = [s.name for s in result.stages]
        assert names == ["low stage", "middle stage", "high stage"]
        ratio = 1.0
        for stage in result.stages:
            ratio *= stage.pressure_ratio
        pr = result.details["condensing_pressure"] / result.details["evaporating_pressure"]
        assert ratio == pytest.approx(pr)

    def test_subcooler_variant(self):
        result = calculate(6, self._config(economizer_type="subcooler"))
        assert result.mass_flows["lower_injection"] > 0
        assert result.mass_flows["upper_injection"] > 0

    def test_misordered_pressures(self):
        with pytest.raises(InvalidConfiguration):
            calculate(6, _two_stage(economizer_pressures=(5.0e5, 2.0e5)))

    def test_pressure_above_condensing(self):
        with pytest.raises(InvalidConfiguration):
            calculate(6, _two_stage(economizer_pressures=(2.0e5, 20.0e5)))

    def test_missing_pressures(self):
        with pytest.raises(MissingParameter) as exc_info:
            calculate(6, _two_stage())
        assert exc_info.value.parameter == "economizer_pressures"


class TestCascade:
    def test_balance_closure(self):
        result = calculate(4, _cascade())
        low, high = result.loops
        assert result.details["solve_mode"] == "balance"
        assert abs(result.details["duty_imbalance"]) < 1e-3
        assert low.heat_rejected == pytest.approx(high.heat_absorbed, rel=1e-3)

    def test_sizing_closure(self):
        result = calculate(4, _cascade(cascade_temperature=_c(-5.0)))
        low, high = result.loops
        assert result.details["solve_mode"] == "sizing"
        assert low.heat_rejected == pytest.approx(high.heat_absorbed, rel=1e-9)
        assert result.details["cascade_temperature"] == pytest.approx(_c(-5.0))

    def test_overall_cop(self):
        result = calculate(4, _cascade(cascade_temperature=_c(-5.0)))
        low, high = result.loops
        assert result.total_power == pytest.approx(low.total_power + high.total_power)
        assert result.cop == pytest.approx(low.heat_absorbed / result.total_power)

    def test_labels_prefixed(self):
        result = calculate(4, _cascade(cascade_temperature=_c(-5.0)))
        assert result.state("LT discharge").fluid_name == "R134a"
        assert result.state("HT discharge").fluid_name == "R717"

    def test_cascade_temperature_outside_range(self):
        with pytest.raises(InvalidConfiguration):
            calculate(4, _cascade(cascade_temperature=_c(45.0)))

    def test_needs_cascade_temperature_without_displacement(self):
        cfg = _cascade(high_stage_compressor=CompressorSpec(isentropic_efficiency=0.75))
        with pytest.raises(MissingParameter) as exc_info:
            calculate(4, cfg)
        assert exc_info.value.parameter == "cascade_temperature"

    def test_missing_high_fluid(self):
        with pytest.raises(MissingParameter):
            calculate(4, _cascade(high_fluid=None))


class TestAmmoniaHeatPump:
    def test_condensing_follows_sink(self):
        result = calculate(7, _heat_pump())
        assert result.fluid == "R717"
        assert result.details["condensing_temperature"] == pytest.approx(_c(55.0))

    def test_sink_balance(self):
        result = calculate(7, _heat_pump(desuperheater_temperature=_c(70.0), sink_subcooler_approach=5.0))
        d = result.details
        total = d["desuperheater_duty"] + d["condenser_duty"] + d["subcooler_duty"] + d["oil_cooler_duty"]
        assert d["sink_heat"] == pytest.approx(total)
        assert d["sink_water_flow"] * CP_WATER * 20.0 == pytest.approx(d["sink_heat"])
        assert d["desuperheater_duty"] > 0
        assert d["subcooler_duty"] > 0
        assert result.mass_flows["sink_water"] == pytest.approx(d["sink_water_flow"])

    def test_heating_cop(self):
        result = calculate(7, _heat_pump())
        assert result.cop == pytest.approx(result.cop_heating)
        assert result.cop_heating == pytest.approx(result.cop_cooling + 1.0, rel=1e-6)
        assert result.oil_heat > 0

    def test_sink_subcooler_point(self):
        result = calculate(7, _heat_pump(sink_subcooler_approach=5.0))
        assert result.state("sink subcooler outlet").temperature == pytest.approx(_c(35.0))

    def test_desuperheater_out_of_range_skipped(self):
        result = calculate(7, _heat_pump(desuperheater_temperature=_c(40.0)))
        assert result.details["desuperheater_duty"] == 0.0
        assert any("desuperheater skipped" in w for w in result.warnings)

    def test_other_fluid_ignored(self):
        result = calculate(7, _heat_pump(fluid="R134a"))
        assert result.fluid == "R717"
        assert result.warnings

    def test_sink_outlet_below_inlet(self):
        with pytest.raises(InvalidConfiguration):
            calculate(7, _heat_pump(heat_sink_outlet_temperature=_c(25.0)))

    def test_missing_sink(self):
        with pytest.raises(MissingParameter):
            calculate(7, _heat_pump(heat_sink_inlet_temperature=None))

    def test_useful_superheat(self):
        full = calculate(7, _heat_pump(superheat=10.0))
        part = calculate(7, _heat_pump(superheat=10.0, useful_superheat=2.0))
        assert part.heat_absorbed < full.heat_absorbed
        assert part.details["line_superheat_heat"] > 0

    def test_rating_polynomials(self):
        capacity = [100e3] + [0.0] * 9
        power = [25e3] + [0.0] * 9
        cfg = _heat_pump(rating_capacity_coefficients=tuple(capacity), rating_power_coefficients=tuple(power))
        result = calculate(7, cfg)
        assert result.details["mass_flow_basis"] == "rating"
        assert result.heat_absorbed == pytest.approx(100e3)
        assert result.total_power == pytest.approx(25e3)


MONOTONIC_CASES = [
    (2, lambda tc: _single_stage(oil_fraction=0.03, condensing_temperature=_c(tc))),
    (3, lambda tc: _single_stage(condensing_temperature=_c(tc))),
    ("3ts", lambda tc: _two_stage(evaporating_temperature=_c(-30.0), condensing_temperature=_c(tc))),
    (4, lambda tc: _cascade(cascade_temperature=_c(-5.0), condensing_temperature=_c(tc))),
    (5, lambda tc: _two_stage(evaporating_temperature=_c(-30.0), condensing_temperature=_c(tc))),
    (6, lambda tc: _two_stage(
        evaporating_temperature=_c(-30.0),
        condensing_temperature=_c(tc),
        economizer_pressures=(2.0e5, 5.0e5),
    )),
]


class TestMonotonicity:
    @pytest.mark.parametrize("mode, make", MONOTONIC_CASES)
    def test_cop_falls_with_condensing_temperature(self, mode, make):
        cops = [calculate(mode, make(tc)).cop for tc in (30.0, 35.0, 40.0)]
        assert cops[0] > cops[1] > cops[2]

    def test_heat_pump_cop_falls_with_sink_temperature(self):
        cops = [
            calculate(7, _heat_pump(heat_sink_outlet_temperature=_c(t))).cop
            for t in (40.0, 45.0, 50.0)
        ]
        assert cops[0] > cops[1] > cops[2]


class TestOrchestrator:
    def test_required_fields(self):
        assert ("oil_fraction",) in required_fields(2)
        assert ("heat_sink_outlet_temperature",) in required_fields("ammonia_heat_pump")

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            calculate("9", _single_stage())

    def test_check_configuration_warning(self):
        spec = CompressorSpec(isentropic_efficiency=0.35)
        validation = check_configuration(3, _single_stage(compressor=spec))
        assert validation.is_valid
        assert validation.has_warnings

    def test_validation_warnings_reach_result(self):
        result = calculate(3, _single_stage(compressor=CompressorSpec(isentropic_efficiency=0.35)))
        assert any("unusually low" in w for w in result.warnings)

    def test_negative_superheat(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(superheat=-1.0))

    def test_bad_economizer_type(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(economizer_type="plate"))

    def test_config_is_not_mutated(self):
        cfg = _single_stage()
        before = replace(cfg)
        calculate(3, cfg)
        assert cfg == before


def _closes(result, extra: float = 0.0) -> None:
    """Heat out of the cycle equals heat in plus lossless shaft work."""
    assert result.heat_rejected + result.oil_heat == pytest.approx(
        result.heat_absorbed + result.total_power + extra, rel=1e-6
    )


BALANCE_CASES = [
    (2, lambda: _single_stage(oil_fraction=0.03)),
    (3, lambda: _single_stage()),
    (3, lambda: _single_stage(mass_flow=1.0, economizer_enabled=True, slhx_effectiveness=0.5)),
    (3, lambda: _single_stage(
        mass_flow=1.0, economizer_enabled=True, economizer_type="subcooler", slhx_effectiveness=0.5,
    )),
    ("3ts", lambda: _two_stage()),
    ("3ts", lambda: _two_stage(slhx_effectiveness=0.5)),
    (4, lambda: _cascade(cascade_temperature=_c(-5.0))),
    (4, lambda: _cascade(cascade_temperature=_c(-5.0), high_economizer_enabled=True)),
    (5, lambda: _two_stage()),
    (5, lambda: _two_stage(slhx_effectiveness=0.5)),
    (6, lambda: _two_stage(economizer_pressures=(2.0e5, 5.0e5))),
    (6, lambda: _two_stage(economizer_pressures=(2.0e5, 5.0e5), lower_economizer_enabled=False)),
]


class TestEnergyBalance:
    @pytest.mark.parametrize("mode, make", BALANCE_CASES)
    def test_closes(self, mode, make):
        _closes(calculate(mode, make()))

    def test_cascade_loops_close(self):
        result = calculate(4, _cascade(cascade_temperature=_c(-5.0), high_economizer_enabled=True))
        for loop in result.loops:
            _closes(loop)

    def test_heat_pump_closes_with_line_superheat(self):
        result = calculate(7, _heat_pump(superheat=10.0, useful_superheat=2.0))
        stage = result.stages[0]
        assert result.heat_rejected + result.oil_heat == pytest.approx(
            result.heat_absorbed + stage.shaft_power + result.details["line_superheat_heat"], rel=1e-6
        )

    def test_economizer_slhx_liquid_at_evaporator_flow(self):
        result = calculate(3, _single_stage(mass_flow=1.0, economizer_enabled=True, slhx_effectiveness=0.5))
        liquid = result.state("SLHX liquid outlet")
        assert liquid.mass_flow == pytest.approx(result.mass_flows["suction"])
        suction = result.state("compressor suction")
        evap = result.state("evaporator outlet")
        assert result.details["slhx_specific_duty"] == pytest.approx(suction.enthalpy - evap.enthalpy, rel=1e-6)


REVERSED_CASES = [
    (2, lambda: _single_stage(oil_fraction=0.03, evaporating_temperature=_c(45.0))),
    (3, lambda: _single_stage(evaporating_temperature=_c(45.0))),
    ("3ts", lambda: _two_stage(evaporating_temperature=_c(40.0))),
    (4, lambda: _cascade(evaporating_temperature=_c(45.0), cascade_temperature=_c(-5.0))),
    (5, lambda: _two_stage(evaporating_temperature=_c(40.0))),
    (6, lambda: _two_stage(evaporating_temperature=_c(40.0), economizer_pressures=(2.0e5, 5.0e5))),
    (7, lambda: _heat_pump(evaporating_temperature=_c(60.0))),
]


class TestMisorderedConditions:
    @pytest.mark.parametrize("mode, make", REVERSED_CASES)
    def test_evaporating_above_condensing(self, mode, make):
        with pytest.raises(InvalidConfiguration):
            calculate(mode, make())


class TestMeasuredDischarge:
    @pytest.mark.parametrize("mode", ["3ts", 5])
    def test_two_stage_high_stage(self, mode):
        base = calculate(mode, _two_stage())
        t_measured = base.discharge_temperatures["high stage"] - 5.0
        result = calculate(mode, _two_stage(discharge_temperature=t_measured))
        actual = result.state("high stage discharge (actual)")
        assert actual.temperature == pytest.approx(t_measured)
        duties = result.details["oil_cooler_duties"]
        assert set(duties) == {"high stage"}
        assert result.oil_heat == pytest.approx(duties["high stage"])
        assert result.oil_heat > 0
        _closes(result)

    @pytest.mark.parametrize("mode", ["3ts", 5])
    def test_two_stage_low_stage(self, mode):
        base = calculate(mode, _two_stage())
        t_measured = base.discharge_temperatures["low stage"] - 5.0
        result = calculate(mode, _two_stage(low_stage_discharge_temperature=t_measured))
        actual = result.state("low stage discharge (actual)")
        assert actual.temperature == pytest.approx(t_measured)
        assert result.details["oil_cooler_duties"]["low stage"] > 0
        # The cooled gas is what meets the economizer vapour
        assert result.state("high stage suction").enthalpy < base.state("high stage suction").enthalpy
        _closes(result)

    def test_double_economizer_both_ends(self):
        cfg = _two_stage(economizer_pressures=(2.0e5, 5.0e5))
        base = calculate(6, cfg)
        result = calculate(6, replace(
            cfg,
            low_stage_discharge_temperature=base.discharge_temperatures["low stage"] - 3.0,
            discharge_temperature=base.discharge_temperatures["high stage"] - 3.0,
        ))
        duties = result.details["oil_cooler_duties"]
        assert set(duties) == {"low stage", "high stage"}
        assert result.oil_heat == pytest.approx(sum(duties.values()))
        _closes(result)

    def test_single_stage(self):
        base = calculate(3, _single_stage())
        result = calculate(3, _single_stage(discharge_temperature=base.discharge_temperature - 8.0))
        assert result.details["oil_cooler_duties"]["compressor"] == pytest.approx(result.oil_heat)
        assert result.oil_heat > 0
        assert result.heat_rejected < base.heat_rejected
        _closes(result)

    def test_heat_pump(self):
        base = calculate(7, _heat_pump())
        result = calculate(7, _heat_pump(discharge_temperature=base.discharge_temperature - 10.0))
        actual = result.state("discharge (actual)")
        assert result.oil_heat > base.oil_heat
        d = result.details
        assert d["condenser_duty"] == pytest.approx(
            result.mass_flows["refrigerant"] * (actual.enthalpy - result.state("condenser outlet").enthalpy)
        )
        assert result.cop_heating == pytest.approx(result.cop_cooling + 1.0, rel=1e-6)

    def test_rejected_in_cascade(self):
        with pytest.raises(InvalidConfiguration) as exc_info:
            calculate(4, _cascade(cascade_temperature=_c(-5.0), discharge_temperature=_c(80.0)))
        assert "discharge_temperature" in str(exc_info.value)

    def test_low_stage_rejected_in_single_stage(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(low_stage_discharge_temperature=_c(60.0)))


class TestEconomizerOptions:
    @pytest.mark.parametrize("mode", ["3ts", 5])
    def test_two_stage_slhx(self, mode):
        plain = calculate(mode, _two_stage())
        result = calculate(mode, _two_stage(slhx_effectiveness=0.5))
        suction = result.state("compressor suction")
        evap = result.state("evaporator outlet")
        assert suction.temperature > evap.temperature
        assert result.stages[0].inlet.temperature == pytest.approx(suction.temperature)
        assert result.details["slhx_duty"] == pytest.approx(
            result.mass_flows["low_stage"] * (suction.enthalpy - evap.enthalpy), rel=1e-6
        )
        assert plain.details["slhx_duty"] == 0.0

    def test_cascade_high_economizer(self):
        plain = calculate(4, _cascade(cascade_temperature=_c(-5.0)))
        result = calculate(4, _cascade(cascade_temperature=_c(-5.0), high_economizer_enabled=True))
        high = result.loops[1]
        assert high.mass_flows["injection"] > 0
        assert plain.loops[1].mass_flows["injection"] == 0.0
        assert result.loops[0].mass_flows["injection"] == 0.0
        assert result.heat_absorbed == pytest.approx(plain.heat_absorbed, rel=1e-9)
        assert result.total_power < plain.total_power

    def test_double_economizer_lower_disabled(self):
        result = calculate(6, _two_stage(economizer_pressures=(2.0e5, 5.0e5), lower_economizer_enabled=False))
        f = result.mass_flows
        assert f["lower_injection"] == 0.0
        assert f["middle_stage"] == pytest.approx(f["low_stage"])
        assert f["upper_injection"] > 0
        assert result.details["lower_economizer"] == "disabled"
        assert result.details["lower_injection_ratio"] == 0.0
        labels = [p.label for p in result.state_points]
        assert "lower economizer vapour" not in labels

    def test_double_economizer_both_disabled(self):
        result = calculate(6, _two_stage(
            economizer_pressures=(2.0e5, 5.0e5),
            lower_economizer_enabled=False,
            upper_economizer_enabled=False,
        ))
        f = result.mass_flows
        assert f["high_stage"] == pytest.approx(f["low_stage"])
        _closes(result)

    def test_double_economizer_mixed_types(self):
        result = calculate(6, _two_stage(
            economizer_pressures=(2.0e5, 5.0e5),
            lower_economizer_type="flash",
            upper_economizer_type="subcooler",
        ))
        assert result.details["lower_economizer"] == "flash"
        assert result.details["upper_economizer"] == "subcooler"
        upper_liquid = result.state("upper economizer liquid")
        assert upper_liquid.pressure == pytest.approx(result.details["condensing_pressure"])
        _closes(result)

    def test_bad_lower_economizer_type(self):
        with pytest.raises(InvalidConfiguration):
            calculate(6, _two_stage(economizer_pressures=(2.0e5, 5.0e5), lower_economizer_type="plate"))


class TestAftercooler:
    def test_duty_split(self):
        base = calculate(3, _single_stage())
        target = 0.5 * (_c(40.0) + base.discharge_temperature)
        result = calculate(3, _single_stage(aftercooler_temperature=target))
        d = result.details
        outlet = result.state("aftercooler outlet")
        assert outlet.temperature == pytest.approx(target)
        assert d["aftercooler_duty"] > 0
        assert d["aftercooler_duty"] + d["condenser_duty"] == pytest.approx(result.heat_rejected)
        assert result.heat_rejected == pytest.approx(base.heat_rejected, rel=1e-9)

    def test_above_discharge_skipped(self):
        base = calculate(3, _single_stage())
        result = calculate(3, _single_stage(aftercooler_temperature=base.discharge_temperature + 5.0))
        assert result.details["aftercooler_duty"] == 0.0
        assert result.details["condenser_duty"] == pytest.approx(result.heat_rejected)
        assert any("aftercooler skipped" in w for w in result.warnings)

    def test_below_dew_point(self):
        with pytest.raises(InvalidConfiguration):
            calculate(3, _single_stage(aftercooler_temperature=_c(35.0)))

    def test_after_measured_discharge(self):
        base = calculate(3, _single_stage())
        t_measured = base.discharge_temperature - 5.0
        result = calculate(
            3, _single_stage(
                discharge_temperature=t_measured,
                aftercooler_temperature=0.5 * (_c(40.0) + t_measured),
            )
        )
        labels = [p.label for p in result.state_points]
        assert labels.index("aftercooler outlet") == labels.index("discharge (actual)") + 1
        actual = result.state("discharge (actual)")
        outlet = result.state("aftercooler outlet")
        assert result.details["aftercooler_duty"] == pytest.approx(
            result.mass_flows["discharge"] * (actual.enthalpy - outlet.enthalpy)
        )


class TestIsothermalBasis:
    def test_single_stage(self):
        provider = PropertyProvider()
        spec = CompressorSpec(efficiency_type="isothermal", isothermal_efficiency=0.7)
        result = calculate(3, _single_stage(compressor=spec), provider)
        stage = result.stages[0]
        R = provider.gas_constant("R134a")
        expected = R * stage.inlet.temperature * math.log(stage.pressure_ratio) / 0.7
        assert stage.actual_work == pytest.approx(expected, rel=1e-9)
        assert stage.isentropic_efficiency == pytest.approx(stage.isentropic_work / stage.actual_work)
        assert 0 < stage.isentropic_efficiency < 1
        _closes(result)

    def test_economizer_legs_keep_basis(self):
        spec = CompressorSpec(efficiency_type="isothermal", isothermal_efficiency=0.7)
        result = calculate(3, _single_stage(compressor=spec, mass_flow=1.0, economizer_enabled=True))
        _closes(result)


class TestResultImmutability:
    def test_mappings_read_only(self):
        result = calculate(3, _single_stage())
        with pytest.raises(TypeError):
            result.details["cop"] = 1.0
        with pytest.raises(TypeError):
            result.mass_flows["suction"] = 2.0
        with pytest.raises(TypeError):
            result.discharge_temperatures["compressor"] = 0.0

    def test_to_dict_plain(self):
        result = calculate(4, _cascade(cascade_temperature=_c(-5.0)))
        data = result.to_dict()
        assert isinstance(data["details"], dict)
        assert isinstance(data["mass_flows"], dict)
        assert isinstance(data["loops"][0]["details"], dict)
        data["details"]["extra"] = 1
        assert "extra" not in result.details


class TestPositiveParameters:
    def test_oil_molar_mass(self):
        with pytest.raises(InvalidConfiguration):
            calculate(2, _single_stage(oil_fraction=0.03, oil_molar_mass=0.0))

    def test_sink_subcooler_approach(self):
        with pytest.raises(InvalidConfiguration):
            calculate(7, _heat_pump(sink_subcooler_approach=-2.0))

    def test_zero_sink_subcooler_approach(self):
        with pytest.raises(InvalidConfiguration):
            calculate(7, _heat_pump(sink_subcooler_approach=0.0))
