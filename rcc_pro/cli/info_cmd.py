"""CLI command for inspecting configuration files and listing refrigerants/compressors."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from rcc_pro.core.compressors import get_displacement, list_brands, list_models, list_series
from rcc_pro.core.config import load_configuration_json
from rcc_pro.core.fluids import get_fluid_info, list_fluids


@click.group("info")
@click.pass_context
def info(ctx: click.Context) -> None:
    """Inspect configuration files, refrigerants, and compressors."""
    pass


@info.command("config")
@click.argument("path", type=click.Path(exists=True))
@click.pass_context
def info_config(ctx: click.Context, path: str) -> None:
    """Display summary of a configuration file."""
    console: Console = ctx.obj.get("console", Console())
    saved = load_configuration_json(path)

    tree = Tree(f"[bold]{saved.meta.name}[/bold]")
    meta = tree.add("[cyan]Metadata[/cyan]")
    meta.add(f"Author: {saved.meta.author or '—'}")
    meta.add(f"Version: {saved.meta.version}")
    meta.add(f"Modified: {saved.meta.modified or '—'}")
    meta.add(f"Mode: {saved.mode.value if saved.mode else '—'}")

    cfg = tree.add("[cyan]Configuration[/cyan]")
    for k, v in saved.configuration.to_dict().items():
        if v is None or isinstance(v, dict):
            continue
        cfg.add(f"{k}: {v}")

    spec = tree.add("[cyan]Compressor[/cyan]")
    for k, v in saved.configuration.compressor.to_dict().items():
        if v is not None:
            spec.add(f"{k}: {v}")

    console.print(tree)


@info.command("fluids")
@click.pass_context
def info_fluids(ctx: click.Context) -> None:
    """List catalogued refrigerants."""
    console: Console = ctx.obj.get("console", Console())
    table = Table(title="Available Refrigerants")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Safety", style="green")
    table.add_column("GWP (AR4)", justify="right")
    table.add_column("CoolProp Name", style="dim")

    for name in list_fluids():
        fluid = get_fluid_info(name)
        table.add_row(
            name,
            fluid.get("type", "—"),
            fluid.get("safety_class", "—"),
            str(fluid.get("gwp_ar4", "—")),
            fluid.get("coolprop_name", "—"),
        )
    console.print(table)


@info.command("compressors")
@click.option("--brand", default=None, help="Only list this brand.")
@click.pass_context
def info_compressors(ctx: click.Context, brand: str | None) -> None:
    """List catalogued compressor models and displacements."""
    console: Console = ctx.obj.get("console", Console())
    brands = list_brands()
    if brand is not None:
        try:
            list_series(brand)
        except KeyError as e:
            console.print(f"[red]Error:[/red] {e.args[0]}")
            raise SystemExit(1)
        brands = [b for b in brands if b.lower() == brand.lower()]

    table = Table(title="Compressor Catalogue")
    table.add_column("Brand", style="cyan")
    table.add_column("Series", style="yellow")
    table.add_column("Model", style="green")
    table.add_column("Displacement [m³/h]", justify="right")

    for b in brands:
        for series in list_series(b):
            for model in list_models(b, series):
                table.add_row(b, series, model, f"{get_displacement(b, series, model):.0f}")
    console.print(table)
