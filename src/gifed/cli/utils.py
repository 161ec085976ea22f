"""Shared utilities for CLI commands."""

import sys
from pathlib import Path

import click

from ..error_handling import GifedError


def handle_gifed_error(command_name: str, error: GifedError) -> None:
    """Report a Gifed error with consistent formatting and exit."""
    click.echo(f"❌ {command_name} failed: {error}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)


def display_common_header(title: str) -> None:
    """Display a common header for CLI commands."""
    click.echo(f"🎞️  {title}")


def display_path_info(label: str, path: Path, emoji: str = "📁") -> None:
    """Display path information with consistent formatting."""
    click.echo(f"{emoji} {label}: {path}")


def format_loop_count(loop_count: int) -> str:
    """Render a loop count for humans."""
    return "infinite" if loop_count == 0 else str(loop_count)
