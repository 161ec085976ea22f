"""CLI module for Gifed commands.

This module re-exports all command functions so the console entry point and
tests can import them from one place.
"""

from pathlib import Path

import click

from .. import __version__
from ..io import setup_logging
from .info_cmd import info
from .retime_cmd import retime


@click.group()
@click.version_option(version=__version__, prog_name="gifed")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Also write logs to a timestamped file in this directory",
)
def main(verbose: bool, log_dir: Path | None) -> None:
    """🎞️ Gifed: load, edit and save animated GIFs."""
    setup_logging(log_dir, "DEBUG" if verbose else "WARNING")


main.add_command(info)
main.add_command(retime)

__all__ = [
    "info",
    "main",
    "retime",
]
