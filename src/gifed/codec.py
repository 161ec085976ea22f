"""Host imaging codec boundary for Gifed.

The pixel work of a GIF (LZW decode/encode, palettes, disposal) belongs to a
host imaging library. This module pins down the small surface the animation
container needs from it:

- opening a source and counting its frames along the time dimension,
- reading tagged property items (frame delays, loop count),
- moving the active-frame cursor and rendering the active frame,
- a write session that takes a first ``MultiFrame`` save, then
  ``FrameDimensionTime`` appends in display order, then one ``Flush``.

``PillowGifCodec`` implements it on top of Pillow. The codec is always passed
in explicitly or built from :class:`~gifed.config.CodecConfig`; there is no
implicit process-wide encoder lookup.

The container accepts delays up to 0xFFFFFFFF, but a GIF graphic control
block stores the delay in 16 bits. The Pillow session rejects any delay above
``MAX_GIF_DELAY`` with ``InvalidArgumentError`` before writing a byte.
"""

from __future__ import annotations

import logging
import struct
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import IO, Any

from PIL import GifImagePlugin, Image

from .config import DEFAULT_CODEC_CONFIG, CodecConfig
from .error_handling import (
    EncoderProtocolError,
    InvalidArgumentError,
    UnsupportedEncoderError,
)
from .metadata import (
    PropertyItem,
    PropertyTag,
    decode_delays,
    decode_loop_count,
    encode_delays,
    encode_loop_count,
)

logger = logging.getLogger(__name__)

#: Largest delay, in hundredths of a second, a graphic control block can hold
MAX_GIF_DELAY = 0xFFFF

GIF_TRAILER = b";"


class EncoderValue(IntEnum):
    """Write-mode flags of the multi-frame save protocol."""

    MultiFrame = 18
    LastFrame = 19
    Flush = 20
    FrameDimensionTime = 21


class EncoderSession(ABC):
    """One multi-frame write to a single destination stream."""

    @abstractmethod
    def save(
        self, image: Image.Image, items: list[PropertyItem], mode: EncoderValue
    ) -> None:
        """Write the first frame together with the container metadata."""

    @abstractmethod
    def save_add(
        self, image: Image.Image | None = None, mode: EncoderValue = EncoderValue.Flush
    ) -> None:
        """Append a frame (``FrameDimensionTime``) or finalise (``Flush``)."""


class HostCodec(ABC):
    """Capabilities the animation container requires from an imaging library.

    Sub-classes should stay cheap to construct; nothing is decoded until
    :meth:`open` is called.
    """

    #: Short name used by :class:`~gifed.config.CodecConfig`
    NAME: str = "host-codec"

    @classmethod
    @abstractmethod
    def available(cls) -> bool:  # pragma: no cover – concrete impl
        """Return ``True`` iff the backend can write GIF containers."""

    @abstractmethod
    def open(self, source: Any) -> Any:
        """Open a path or readable binary stream; the handle must support ``close()``."""

    @abstractmethod
    def frame_count(self, image: Any) -> int:
        """Number of frames along the time dimension."""

    @abstractmethod
    def get_metadata_block(self, image: Any, tag: int) -> PropertyItem:
        """Return the property item for *tag*; raise ``KeyError`` if absent."""

    @abstractmethod
    def select_active_frame(self, image: Any, index: int) -> None:
        """Move the handle's active-frame cursor to *index*."""

    @abstractmethod
    def render_active_frame(self, image: Any) -> Image.Image:
        """Return the active frame as a new, independent RGBA image."""

    @abstractmethod
    def begin_save(self, stream: IO[bytes]) -> EncoderSession:
        """Start a multi-frame write to *stream*."""


class PillowEncoderSession(EncoderSession):
    """Stream a GIF to *stream* one protocol call at a time.

    The ``MultiFrame`` write emits the header, the NETSCAPE2.0 looping block
    and the first frame; each ``FrameDimensionTime`` append emits one image
    block; ``Flush`` writes the trailer. Frames are encoded with Pillow's
    ``GifImagePlugin.getheader``/``getdata`` helpers, so identical neighbours
    stay separate frames.
    """

    def __init__(self, stream: IO[bytes], optimize: bool = False) -> None:
        self._stream = stream
        self._optimize = optimize
        self._started = False
        self._delays: list[int] = []
        self._written = 0
        self._finished = False

    def save(
        self, image: Image.Image, items: list[PropertyItem], mode: EncoderValue
    ) -> None:
        self._ensure_open()
        if mode != EncoderValue.MultiFrame:
            raise EncoderProtocolError(
                f"First write must use MultiFrame, got {getattr(mode, 'name', mode)}"
            )
        if self._started:
            raise EncoderProtocolError("First frame has already been written")
        if image is None:
            raise EncoderProtocolError("First write requires an image")

        by_tag = {int(item.id): item for item in items}
        try:
            delays = decode_delays(by_tag[PropertyTag.FrameDelay])
            loop_count = decode_loop_count(by_tag[PropertyTag.LoopCount])
        except KeyError as e:
            raise EncoderProtocolError(f"First write is missing property item {e}") from e

        for index, delay in enumerate(delays):
            if delay > MAX_GIF_DELAY:
                raise InvalidArgumentError(
                    f"Frame {index} delay {delay} exceeds the GIF limit of {MAX_GIF_DELAY}"
                )
        if not delays:
            raise EncoderProtocolError("Delay block covers no frames")

        frame = _to_palette(image)
        try:
            # The version marker forces GIF89a, which the extension blocks need
            frame.info["version"] = b"89a"
            header, _ = GifImagePlugin.getheader(frame, info={"optimize": self._optimize})
            self._stream.write(b"".join(header))
            self._stream.write(_looping_block(loop_count))
            self._stream.write(b"".join(_image_block(frame, delays[0], local_palette=False)))
        finally:
            frame.close()

        self._started = True
        self._delays = delays
        self._written = 1
        logger.debug(f"Started GIF with {len(delays)} frame(s), loop count {loop_count}")

    def save_add(
        self, image: Image.Image | None = None, mode: EncoderValue = EncoderValue.Flush
    ) -> None:
        self._ensure_open()
        if not self._started:
            raise EncoderProtocolError("Frames can only be appended after the first write")

        if mode == EncoderValue.Flush:
            if image is not None:
                raise EncoderProtocolError("Flush must not carry an image")
            self._flush()
            self._finished = True
            return

        if mode != EncoderValue.FrameDimensionTime:
            raise EncoderProtocolError(
                f"Appends must use FrameDimensionTime, got {getattr(mode, 'name', mode)}"
            )
        if image is None:
            raise EncoderProtocolError("FrameDimensionTime append requires an image")
        if self._written >= len(self._delays):
            raise EncoderProtocolError(
                f"Delay block covers {len(self._delays)} frames, "
                f"{self._written + 1} were written"
            )

        frame = _to_palette(image)
        try:
            delay = self._delays[self._written]
            self._stream.write(b"".join(_image_block(frame, delay, local_palette=True)))
        finally:
            frame.close()
        self._written += 1

    def _ensure_open(self) -> None:
        if self._finished:
            raise EncoderProtocolError("Session has already been flushed")

    def _flush(self) -> None:
        if self._written != len(self._delays):
            raise EncoderProtocolError(
                f"Delay block covers {len(self._delays)} frames, {self._written} were written"
            )
        self._stream.write(GIF_TRAILER)
        logger.debug(f"Flushed GIF after {self._written} frame(s)")


def _to_palette(image: Image.Image) -> Image.Image:
    return image.convert("RGB").convert("P", palette=Image.Palette.ADAPTIVE)


def _looping_block(loop_count: int) -> bytes:
    return b"!\xff\x0bNETSCAPE2.0" + struct.pack("<BBHB", 3, 1, loop_count, 0)


def _image_block(frame: Image.Image, delay: int, local_palette: bool) -> list[bytes]:
    # Pillow takes milliseconds; disposal 1 keeps a control block on every frame
    return GifImagePlugin.getdata(
        frame,
        duration=delay * 10,
        disposal=1,
        include_color_table=local_palette,
    )


class PillowGifCodec(HostCodec):
    """Pillow-backed codec.

    Pillow does not surface raw property items, so they are rebuilt from what
    it does expose: each frame's ``info["duration"]`` (milliseconds) becomes a
    FrameDelay entry and frame 0's ``info["loop"]`` becomes the LoopCount item.
    A file without a NETSCAPE looping extension has no LoopCount item.
    """

    NAME = "pillow"

    def __init__(self, optimize: bool = False) -> None:
        self.optimize = optimize

    @classmethod
    def available(cls) -> bool:
        Image.init()
        return "GIF" in Image.SAVE

    def open(self, source: Any) -> Image.Image:
        return Image.open(source)

    def frame_count(self, image: Image.Image) -> int:
        return getattr(image, "n_frames", 1)

    def get_metadata_block(self, image: Image.Image, tag: int) -> PropertyItem:
        return self._read_property_items(image)[int(tag)]

    def select_active_frame(self, image: Image.Image, index: int) -> None:
        image.seek(index)

    def render_active_frame(self, image: Image.Image) -> Image.Image:
        return image.convert("RGBA")

    def begin_save(self, stream: IO[bytes]) -> PillowEncoderSession:
        return PillowEncoderSession(stream, optimize=self.optimize)

    def _read_property_items(self, image: Image.Image) -> dict[int, PropertyItem]:
        if image.format != "GIF":
            return {}

        items: dict[int, PropertyItem] = {}
        position = image.tell()
        try:
            image.seek(0)
            loop_count = image.info.get("loop")
            if loop_count is not None:
                items[PropertyTag.LoopCount] = encode_loop_count(int(loop_count))

            delays = []
            for index in range(self.frame_count(image)):
                image.seek(index)
                # Frames without a graphic control extension have no duration
                duration = image.info.get("duration", 0) or 0
                delays.append(int(round(duration / 10)))
            items[PropertyTag.FrameDelay] = encode_delays(delays)
        finally:
            image.seek(position)

        return items


_CODECS: dict[str, type[HostCodec]] = {
    PillowGifCodec.NAME: PillowGifCodec,
}


def resolve_codec(
    codec: HostCodec | None = None, config: CodecConfig | None = None
) -> HostCodec:
    """Return *codec* or build the one named by *config*.

    Raises:
        UnsupportedEncoderError: If the configured backend is unknown or
            cannot write GIFs on this platform
    """
    if codec is not None:
        return codec

    config = config or DEFAULT_CODEC_CONFIG
    codec_cls = _CODECS.get(config.ENCODER)
    if codec_cls is None:
        raise UnsupportedEncoderError(
            f"Unknown encoder '{config.ENCODER}'. Available: {', '.join(sorted(_CODECS))}"
        )

    if not codec_cls.available():
        raise UnsupportedEncoderError(
            f"Encoder '{config.ENCODER}' has no GIF writer on this platform"
        )

    return codec_cls(optimize=config.OPTIMIZE)
