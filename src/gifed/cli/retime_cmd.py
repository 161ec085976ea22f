"""Retime command for rewriting the delays and looping of an animated GIF."""

from pathlib import Path

import click

from ..animation import AnimatedGif
from ..error_handling import GifedError
from .utils import (
    display_path_info,
    format_loop_count,
    handle_gifed_error,
    handle_keyboard_interrupt,
)


@click.command()
@click.argument("gif", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Where to write the rewritten GIF",
)
@click.option(
    "--delay",
    "-d",
    type=click.IntRange(min=0),
    default=None,
    help="Delay for every frame, in hundredths of a second",
)
@click.option(
    "--loop",
    "-l",
    "loop_count",
    type=click.IntRange(min=0, max=0xFFFF),
    default=None,
    help="Loop count (0 = loop forever)",
)
@click.option(
    "--drop-every",
    type=click.IntRange(min=2),
    default=None,
    help="Remove every Nth frame (the Nth, 2Nth, ...)",
)
def retime(
    gif: Path,
    output: Path,
    delay: int | None,
    loop_count: int | None,
    drop_every: int | None,
) -> None:
    """Rewrite frame delays and loop count of GIF and save it to OUTPUT."""
    try:
        with AnimatedGif.load(gif) as animation:
            if drop_every is not None:
                positions = {id(frame): i for i, frame in enumerate(animation, start=1)}
                dropped = animation.remove_all_frames(
                    lambda frame: positions[id(frame)] % drop_every == 0
                )
                click.echo(f"✂️  Dropped {dropped} frame(s)")

            if delay is not None:
                for frame in animation:
                    frame.delay = delay

            if loop_count is not None:
                animation.loop_count = loop_count

            animation.save(output)

            click.echo(
                f"✅ Wrote {animation.frame_count} frame(s), "
                f"loop count {format_loop_count(animation.loop_count)}"
            )
            display_path_info("Output", output)

    except GifedError as e:
        handle_gifed_error("Retime", e)
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Retime")
