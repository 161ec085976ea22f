"""Info command for describing an animated GIF's frame structure."""

from pathlib import Path

import click

from ..animation import AnimatedGif
from ..error_handling import GifedError
from .utils import (
    display_common_header,
    display_path_info,
    format_loop_count,
    handle_gifed_error,
    handle_keyboard_interrupt,
)


@click.command()
@click.argument("gif", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(gif: Path) -> None:
    """Show frame count, size, loop count and per-frame delays of GIF."""
    try:
        with AnimatedGif.load(gif) as animation:
            display_common_header("Animated GIF")
            display_path_info("File", gif)

            click.echo(f"🖼️  Frames: {animation.frame_count}")
            if animation.frame_count:
                width, height = animation[0].size
                click.echo(f"📐 Size: {width}x{height}")
            click.echo(f"🔁 Loop count: {format_loop_count(animation.loop_count)}")
            click.echo(f"⏱️  Duration: {animation.duration.total_seconds():.2f}s")

            click.echo("\n📊 Delays (1/100 s):")
            for index, frame in enumerate(animation):
                click.echo(f"   • #{index}: {frame.delay}")

    except GifedError as e:
        handle_gifed_error("Info", e)
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Info")
