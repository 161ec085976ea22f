"""A single timed frame of an animated GIF."""

from __future__ import annotations

from typing import Any

import numpy as np
from PIL import Image

from .error_handling import DimensionMismatchError, InvalidArgumentError
from .metadata import MAX_DELAY


def _validate_delay(delay: int) -> int:
    if isinstance(delay, bool) or not isinstance(delay, int):
        raise InvalidArgumentError(f"Frame delay must be an int, got {type(delay).__name__}")
    if not 0 <= delay <= MAX_DELAY:
        raise InvalidArgumentError(
            f"Frame delay must be between 0 and {MAX_DELAY}, got {delay}"
        )
    return delay


class GifFrame:
    """One frame of an animation: an owned pixel buffer and a display delay.

    The delay is in hundredths of a second. A delay of 0 means "no delay
    specified"; most viewers advance such frames immediately.

    Once created, the frame's width and height are fixed. Replacing the image
    copies the new buffer in and rejects any size change.
    """

    def __init__(self, image: Image.Image, delay: int = 0) -> None:
        self._image: Image.Image | None = None

        if image is None:
            raise InvalidArgumentError("Frame image must not be None")
        if image.width == 0 or image.height == 0:
            raise InvalidArgumentError(
                f"Frame image must not be empty, got size {image.size}"
            )

        self._delay = _validate_delay(delay)
        self._image = image

    @classmethod
    def from_array(cls, array: Any, delay: int = 0) -> GifFrame:
        """Build a frame from an (H, W) or (H, W, C) uint8 array."""
        pixels = np.asarray(array)
        if pixels.size == 0:
            raise InvalidArgumentError("Frame array must not be empty")
        return cls(Image.fromarray(pixels.astype(np.uint8, copy=False)), delay)

    @property
    def image(self) -> Image.Image | None:
        """The frame's pixel buffer (``None`` once closed)."""
        return self._image

    @image.setter
    def image(self, value: Image.Image) -> None:
        self.set_image(value)

    def set_image(self, image: Image.Image) -> None:
        """Replace the pixel buffer with a copy of *image*.

        Raises:
            InvalidArgumentError: If image is None or the frame is closed
            DimensionMismatchError: If image differs in width or height
        """
        if image is None:
            raise InvalidArgumentError("Frame image must not be None")
        if self._image is None:
            raise InvalidArgumentError("Cannot replace the image of a closed frame")

        if image.size != self._image.size:
            raise DimensionMismatchError(
                f"New image dimensions {image.size} do not match "
                f"frame dimensions {self._image.size}"
            )

        previous = self._image
        self._image = image.copy()
        previous.close()

    @property
    def delay(self) -> int:
        return self._delay

    @delay.setter
    def delay(self, value: int) -> None:
        self._delay = _validate_delay(value)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def size(self) -> tuple[int, int]:
        if self._image is None:
            raise InvalidArgumentError("Frame has been closed")
        return self._image.size

    @property
    def closed(self) -> bool:
        return getattr(self, "_image", None) is None

    def to_array(self) -> np.ndarray:
        """Return a copy of the pixels as a numpy array."""
        if self._image is None:
            raise InvalidArgumentError("Frame has been closed")
        return np.array(self._image)

    def close(self) -> None:
        """Release the pixel buffer. Safe to call more than once."""
        image = getattr(self, "_image", None)
        if image is not None:
            self._image = None
            image.close()

    def __enter__(self) -> GifFrame:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        if self.closed:
            return f"GifFrame(closed, delay={self._delay})"
        return f"GifFrame(size={self.size}, delay={self._delay})"
