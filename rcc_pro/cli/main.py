"""RCC Pro command-line interface.

Entry point for the ``rcc`` CLI tool.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from rcc_pro import __app_name__, __version__

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name=__app_name__)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show solver log messages.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """RCC Pro: Refrigeration Compressor Cycle calculator.

    Thermodynamic performance of single-stage, two-stage, cascade and
    heat-pump compressor cycles.
    """
    ctx.ensure_object(dict)
    ctx.obj["console"] = console
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


# Import and register sub-command groups
from rcc_pro.cli.cycle_cmd import cycle  # noqa: E402
from rcc_pro.cli.info_cmd import info  # noqa: E402

cli.add_command(cycle)
cli.add_command(info)


def main() -> None:
    """Convenience wrapper for entry-point scripts."""
    cli()
