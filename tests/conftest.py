from pathlib import Path

import pytest
from PIL import Image

# ---------------------------------------------------------------------------
# GIF fixtures are generated on the fly so the repo stays slim
# ---------------------------------------------------------------------------

PALETTE = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
    (0, 255, 255),
    (255, 0, 255),
]


def solid_frames(count: int, size: tuple[int, int] = (12, 8), mode: str = "RGB") -> list[Image.Image]:
    """Return *count* solid frames, each a distinct colour from PALETTE."""
    frames = []
    for i in range(count):
        color = PALETTE[i % len(PALETTE)]
        if mode == "RGBA":
            color = (*color, 255)
        frames.append(Image.new(mode, size, color))
    return frames


def write_gif(
    path: Path,
    delays: list[int],
    loop: int | None = 0,
    size: tuple[int, int] = (12, 8),
) -> Path:
    """Write a GIF with one solid frame per delay (delays in 1/100 s)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frames = solid_frames(len(delays), size)
    params = {
        "save_all": True,
        "append_images": frames[1:],
        "duration": [delay * 10 for delay in delays] if len(delays) > 1 else delays[0] * 10,
    }
    if loop is not None:
        params["loop"] = loop
    frames[0].save(path, format="GIF", **params)
    return path


@pytest.fixture
def make_gif(tmp_path):
    """Factory fixture writing GIFs into tmp_path."""

    def _make(name: str = "anim.gif", delays=(10, 20, 30), loop: int | None = 0, size=(12, 8)) -> Path:
        return write_gif(tmp_path / name, list(delays), loop=loop, size=size)

    return _make


@pytest.fixture
def animated_gif(make_gif) -> Path:
    """Three-frame GIF with delays 10/20/30 that loops forever."""
    return make_gif()
