"""RCC Pro command-line interface package.

Supports ``python -m rcc_pro.cli`` as an alternative to the ``rcc`` entry point.
"""

from rcc_pro.cli.main import cli, main

__all__ = ["cli", "main"]
