"""CLI commands for refrigeration cycle calculations."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

import click
import numpy as np
from rich.console import Console
from rich.table import Table

from rcc_pro.core.compressors import find_displacement
from rcc_pro.core.config import load_configuration_json, save_configuration_json, save_result_json
from rcc_pro.core.errors import CalculationError
from rcc_pro.cycle.definition import CycleConfiguration, CycleMode, CycleResult
from rcc_pro.cycle.efficiency import CompressorSpec
from rcc_pro.cycle.solver import calculate
from rcc_pro.utils.constants import AMMONIA
from rcc_pro.utils.units import (
    enthalpy_from_si,
    entropy_from_si,
    power_from_si,
    pressure_from_si,
    pressure_to_si,
    temperature_from_si,
    temperature_to_si,
)

MODE_CHOICES = ["2", "3", "3ts", "4", "5", "6", "7"]
ECO_TYPES = ["flash", "subcooler"]

# Refrigerant when --fluid is not given; the heat pump always runs on ammonia
DEFAULT_FLUID = "R134a"

# Drive friction recovered in the oil cooler of the heat pump
HEAT_PUMP_MECHANICAL_EFFICIENCY = 0.95


def _degc(value: float | None) -> float | None:
    return None if value is None else temperature_to_si(value, "degC")


def _bar(value: float | None) -> float | None:
    return None if value is None else pressure_to_si(value, "bar")


def _displacement(console: Console, displacement: float | None, model: str | None) -> float | None:
    if model is None:
        return displacement
    found = find_displacement(model)
    if found is None:
        console.print(f"[red]Error:[/red] Compressor model '{model}' not in catalogue.")
        raise SystemExit(1)
    return found


def config_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the cycle configuration options shared by several commands."""
    options = [
        click.option("--mode", type=click.Choice(MODE_CHOICES), default="3", show_default=True, help="Cycle mode."),
        click.option("--fluid", default=None, help=f"Refrigerant (CoolProp name) [default: {DEFAULT_FLUID}, mode 7: {AMMONIA}]."),
        click.option("--te", type=float, default=None, help="Evaporating temperature [°C]."),
        click.option("--pe", type=float, default=None, help="Evaporating pressure [bar]."),
        click.option("--superheat", type=float, default=5.0, show_default=True, help="Superheat [K]."),
        click.option("--subcooling", type=float, default=5.0, show_default=True, help="Subcooling [K]."),
        click.option("--eta-s", type=float, default=0.75, show_default=True, help="Isentropic efficiency."),
        click.option("--eta-iso", type=float, default=0.70, show_default=True, help="Isothermal efficiency."),
        click.option(
            "--eff-type", type=click.Choice(["isentropic", "isothermal"]), default="isentropic",
            show_default=True, help="Reference process of the compressor efficiency.",
        ),
        click.option("--eta-v", type=float, default=0.85, show_default=True, help="Volumetric efficiency."),
        click.option("--auto-eff", is_flag=True, default=False, help="Empirical pressure-ratio efficiencies."),
        click.option("--displacement", type=float, default=None, help="Displacement [m³/h]."),
        click.option("--model", default=None, help="Compressor model from the catalogue."),
        click.option("--mech-eff", type=float, default=None, help="Mechanical efficiency."),
        click.option("--motor-eff", type=float, default=1.0, show_default=True, help="Motor efficiency."),
        click.option(
            "--basis", type=click.Choice(["shaft", "input"]), default="shaft", show_default=True,
            help="Whether the efficiency includes drive losses.",
        ),
        click.option("--mass-flow", type=float, default=None, help="Suction mass flow override [kg/s]."),
        click.option("--hp-eta-s", type=float, default=None, help="High-stage isentropic efficiency."),
        click.option("--hp-displacement", type=float, default=None, help="High-stage displacement [m³/h]."),
        click.option("--hp-model", default=None, help="High-stage compressor model from the catalogue."),
        click.option("--p-int", type=float, default=None, help="Intermediate pressure [bar]."),
        click.option("--eco-pressures", type=(float, float), default=None, help="Mode 6 economizer pressures [bar]."),
        click.option(
            "--eco-type", type=click.Choice(ECO_TYPES), default="flash", show_default=True,
            help="Economizer construction.",
        ),
        click.option("--lower-eco-type", type=click.Choice(ECO_TYPES), default=None, help="Mode 6 lower economizer construction."),
        click.option("--upper-eco-type", type=click.Choice(ECO_TYPES), default=None, help="Mode 6 upper economizer construction."),
        click.option("--no-lower-eco", is_flag=True, default=False, help="Mode 6: bypass the lower economizer."),
        click.option("--no-upper-eco", is_flag=True, default=False, help="Mode 6: bypass the upper economizer."),
        click.option("--economizer", is_flag=True, default=False, help="Use the compressor ECO port."),
        click.option("--slhx", type=float, default=0.0, show_default=True, help="SLHX effectiveness."),
        click.option("--oil-fraction", type=float, default=None, help="Oil mass fraction (mode 2)."),
        click.option("--t-discharge", type=float, default=None, help="Measured discharge temperature [°C]."),
        click.option(
            "--low-t-discharge", type=float, default=None,
            help="Measured low-stage discharge temperature [°C] (modes 3ts, 5, 6).",
        ),
        click.option("--aftercooler", type=float, default=None, help="Aftercooler outlet temperature [°C] (mode 3)."),
        click.option("--high-fluid", default=None, help="High-loop refrigerant (mode 4)."),
        click.option("--t-cascade", type=float, default=None, help="Cascade temperature [°C] (mode 4)."),
        click.option("--high-economizer", is_flag=True, default=False, help="ECO port on the high loop (mode 4)."),
        click.option(
            "--high-eco-type", type=click.Choice(ECO_TYPES), default="flash", show_default=True,
            help="High-loop economizer construction (mode 4).",
        ),
        click.option("--cascade-approach", type=float, default=5.0, show_default=True, help="Cascade approach [K]."),
        click.option("--sink-in", type=float, default=None, help="Heat-sink water inlet [°C] (mode 7)."),
        click.option("--sink-out", type=float, default=None, help="Heat-sink water outlet [°C] (mode 7)."),
        click.option("--desuperheater", type=float, default=None, help="Desuperheater outlet [°C] (mode 7)."),
        click.option("--sink-subcooler", type=float, default=None, help="Sink subcooler approach [K] (mode 7)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _fluid(mode: CycleMode, fluid: str | None) -> str:
    if fluid:
        return fluid
    return AMMONIA if mode == CycleMode.AMMONIA_HEAT_PUMP else DEFAULT_FLUID


def build_configuration(console: Console, tc: float | None, pc: float | None, **opts: Any) -> CycleConfiguration:
    """Translate CLI options (engineering units) into a CycleConfiguration."""
    mode = CycleMode.parse(opts["mode"])
    mech_eff = opts["mech_eff"]
    if mech_eff is None:
        mech_eff = HEAT_PUMP_MECHANICAL_EFFICIENCY if mode == CycleMode.AMMONIA_HEAT_PUMP else 1.0

    fluid = _fluid(mode, opts["fluid"])

    compressor = CompressorSpec(
        isentropic_efficiency=opts["eta_s"],
        isothermal_efficiency=opts["eta_iso"],
        efficiency_type=opts["eff_type"],
        volumetric_efficiency=opts["eta_v"],
        auto_efficiency=opts["auto_eff"],
        displacement=_displacement(console, opts["displacement"], opts["model"]),
        mechanical_efficiency=mech_eff,
        motor_efficiency=opts["motor_eff"],
        efficiency_basis=opts["basis"],
    )
    high_stage = None
    if mode in (
        CycleMode.TWO_STAGE_FLASH,
        CycleMode.CASCADE,
        CycleMode.TWO_STAGE_SUBCOOLER,
        CycleMode.TWO_STAGE_DOUBLE_ECONOMIZER,
    ):
        high_stage = replace(
            compressor,
            isentropic_efficiency=opts["hp_eta_s"] or opts["eta_s"],
            displacement=_displacement(console, opts["hp_displacement"], opts["hp_model"]),
        )

    eco_pressures = opts["eco_pressures"]
    return CycleConfiguration(
        fluid=fluid,
        evaporating_temperature=_degc(opts["te"]),
        evaporating_pressure=_bar(opts["pe"]),
        condensing_temperature=_degc(tc),
        condensing_pressure=_bar(pc),
        superheat=opts["superheat"],
        subcooling=opts["subcooling"],
        compressor=compressor,
        high_stage_compressor=high_stage,
        mass_flow=opts["mass_flow"],
        intermediate_pressure=_bar(opts["p_int"]),
        economizer_pressures=tuple(_bar(p) for p in eco_pressures) if eco_pressures else None,
        economizer_type=opts["eco_type"],
        economizer_enabled=opts["economizer"],
        lower_economizer_enabled=not opts["no_lower_eco"],
        upper_economizer_enabled=not opts["no_upper_eco"],
        lower_economizer_type=opts["lower_eco_type"],
        upper_economizer_type=opts["upper_eco_type"],
        slhx_effectiveness=opts["slhx"],
        oil_fraction=opts["oil_fraction"],
        discharge_temperature=_degc(opts["t_discharge"]),
        low_stage_discharge_temperature=_degc(opts["low_t_discharge"]),
        aftercooler_temperature=_degc(opts["aftercooler"]),
        high_fluid=opts["high_fluid"],
        cascade_temperature=_degc(opts["t_cascade"]),
        cascade_approach=opts["cascade_approach"],
        high_economizer_enabled=opts["high_economizer"],
        high_economizer_type=opts["high_eco_type"],
        heat_sink_inlet_temperature=_degc(opts["sink_in"]),
        heat_sink_outlet_temperature=_degc(opts["sink_out"]),
        desuperheater_temperature=_degc(opts["desuperheater"]),
        sink_subcooler_approach=opts["sink_subcooler"],
    )


def _run(console: Console, mode: CycleMode | str, config: CycleConfiguration) -> CycleResult:
    try:
        return calculate(mode, config)
    except CalculationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)


def print_result(console: Console, result: CycleResult) -> None:
    """Render the state-point table and performance summary."""
    console.print(f"\n[bold]RCC Pro — {result.mode.value.replace('_', ' ').title()} ({result.fluid})[/bold]\n")

    states = Table(title="State Points")
    states.add_column("#", style="dim", justify="right")
    states.add_column("Point", style="cyan")
    states.add_column("P [bar]", justify="right")
    states.add_column("T [°C]", justify="right")
    states.add_column("h [kJ/kg]", justify="right")
    states.add_column("s [kJ/kg·K]", justify="right")
    states.add_column("x", justify="right")
    states.add_column("ṁ [kg/s]", justify="right")
    for i, p in enumerate(result.state_points, start=1):
        states.add_row(
            str(i),
            p.label,
            f"{pressure_from_si(p.pressure):.3f}",
            f"{temperature_from_si(p.temperature):.2f}",
            f"{enthalpy_from_si(p.enthalpy):.2f}",
            f"{entropy_from_si(p.entropy):.4f}",
            f"{p.quality:.3f}" if p.is_two_phase else "—",
            f"{p.mass_flow:.4f}" if p.mass_flow else "—",
        )
    console.print(states)

    perf = Table(title="Performance")
    perf.add_column("Parameter", style="cyan")
    perf.add_column("Value", style="green", justify="right")
    perf.add_column("Unit", style="dim")
    perf.add_row("Cooling capacity", f"{power_from_si(result.heat_absorbed):.2f}", "kW")
    perf.add_row("Heat rejected", f"{power_from_si(result.heat_rejected):.2f}", "kW")
    if result.oil_heat:
        perf.add_row("Oil cooler heat", f"{power_from_si(result.oil_heat):.2f}", "kW")
    for name, duty in result.details.get("oil_cooler_duties", {}).items():
        perf.add_row(f"Oil cooler ({name})", f"{power_from_si(duty):.2f}", "kW")
    if "aftercooler_duty" in result.details:
        perf.add_row("Aftercooler duty", f"{power_from_si(result.details['aftercooler_duty']):.2f}", "kW")
        perf.add_row("Condenser duty", f"{power_from_si(result.details['condenser_duty']):.2f}", "kW")
    perf.add_row("Input power", f"{power_from_si(result.total_power):.2f}", "kW")
    perf.add_row("COP (cooling)", f"{result.cop_cooling:.3f}", "—")
    perf.add_row("COP (heating)", f"{result.cop_heating:.3f}", "—")
    for stage in result.stages:
        perf.add_row(
            f"{stage.name} discharge",
            f"{temperature_from_si(stage.outlet.temperature):.1f}",
            "°C",
        )
        perf.add_row(f"{stage.name} η_s", f"{stage.isentropic_efficiency:.3f}", "—")
    for name, flow in result.mass_flows.items():
        perf.add_row(f"Mass flow ({name})", f"{flow:.4f}", "kg/s")
    console.print(perf)

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@click.group("cycle")
@click.pass_context
def cycle(ctx: click.Context) -> None:
    """Refrigeration cycle calculations."""
    pass


@cycle.command("calculate")
@config_options
@click.option("--tc", type=float, default=None, help="Condensing temperature [°C].")
@click.option("--pc", type=float, default=None, help="Condensing pressure [bar].")
@click.option("--save-config", type=click.Path(), default=None, help="Save the configuration (JSON).")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file (JSON).")
@click.pass_context
def calculate_cmd(
    ctx: click.Context,
    tc: float | None,
    pc: float | None,
    save_config: str | None,
    output: str | None,
    **opts: Any,
) -> None:
    """Calculate one cycle from command-line options."""
    console: Console = ctx.obj.get("console", Console())
    config = build_configuration(console, tc, pc, **opts)

    if save_config:
        save_configuration_json(config, save_config, mode=opts["mode"])
        console.print(f"[dim]Configuration saved to {save_config}[/dim]")

    result = _run(console, opts["mode"], config)
    print_result(console, result)

    if output:
        save_result_json(result, output, config=config)
        console.print(f"\n[dim]Saved to {output}[/dim]")


@cycle.command("run")
@click.argument("path", type=click.Path(exists=True))
@click.option("--mode", type=click.Choice(MODE_CHOICES), default=None, help="Override the saved mode.")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file (JSON).")
@click.pass_context
def run_cmd(ctx: click.Context, path: str, mode: str | None, output: str | None) -> None:
    """Run a saved configuration file."""
    console: Console = ctx.obj.get("console", Console())
    saved = load_configuration_json(path)
    run_mode = mode or saved.mode
    if run_mode is None:
        console.print("[red]Error:[/red] Configuration file has no mode; pass --mode.")
        raise SystemExit(1)

    result = _run(console, run_mode, saved.configuration)
    print_result(console, result)

    if output:
        save_result_json(result, output, config=saved.configuration, meta=saved.meta)
        console.print(f"\n[dim]Saved to {output}[/dim]")


@cycle.command("sweep")
@config_options
@click.option("--tc-min", type=float, default=30.0, show_default=True, help="Lowest condensing temperature [°C].")
@click.option("--tc-max", type=float, default=50.0, show_default=True, help="Highest condensing temperature [°C].")
@click.option("--step", type=float, default=5.0, show_default=True, help="Temperature step [K].")
@click.pass_context
def sweep_cmd(ctx: click.Context, tc_min: float, tc_max: float, step: float, **opts: Any) -> None:
    """Sweep the condensing temperature and tabulate COP.

    In heat-pump mode the sweep runs over the heat-sink outlet temperature.
    """
    console: Console = ctx.obj.get("console", Console())
    if step <= 0 or tc_max < tc_min:
        console.print("[red]Error:[/red] Need --step > 0 and --tc-max >= --tc-min.")
        raise SystemExit(1)
    heat_pump = CycleMode.parse(opts["mode"]) == CycleMode.AMMONIA_HEAT_PUMP
    fluid = _fluid(CycleMode.parse(opts["mode"]), opts["fluid"])

    table = Table(title=f"Condensing Sweep ({fluid})")
    table.add_column("Sink out [°C]" if heat_pump else "T_c [°C]", style="cyan", justify="right")
    table.add_column("P_c [bar]", justify="right")
    table.add_column("COP", style="green", justify="right")
    table.add_column("Power [kW]", justify="right")
    table.add_column("T_dis [°C]", justify="right")

    for t in np.arange(tc_min, tc_max + 0.5 * step, step):
        t = float(t)
        if heat_pump:
            config = build_configuration(console, None, None, **{**opts, "sink_out": t})
        else:
            config = build_configuration(console, t, None, **opts)
        result = _run(console, opts["mode"], config)
        table.add_row(
            f"{t:.1f}",
            f"{pressure_from_si(result.details['condensing_pressure']):.3f}",
            f"{result.cop:.3f}",
            f"{power_from_si(result.total_power):.2f}",
            f"{temperature_from_si(result.discharge_temperature):.1f}",
        )

    console.print(table)
