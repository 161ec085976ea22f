"""Loading, editing and saving animated GIFs as ordered frame sequences."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator
from datetime import timedelta
from pathlib import Path
from typing import IO, Any, Union

from PIL import Image

from .codec import EncoderValue, HostCodec, resolve_codec
from .config import DEFAULT_LOAD_CONFIG, DELAY_SHORTFALL_STRICT, LoadConfig
from .error_handling import (
    EmptyAnimationError,
    GifIOError,
    InvalidArgumentError,
    NotAnimatedError,
    error_context,
    log_warning_with_context,
)
from .frame import GifFrame
from .io import exclusive_output
from .metadata import (
    MAX_LOOP_COUNT,
    PropertyTag,
    decode_delays,
    decode_loop_count,
    encode_delays,
    encode_loop_count,
)

logger = logging.getLogger(__name__)

Source = Union[str, os.PathLike, IO[bytes]]


def _is_path(value: Any) -> bool:
    return isinstance(value, (str, os.PathLike))


def _describe(value: Any) -> str:
    return str(value) if _is_path(value) else type(value).__name__


class AnimatedGif:
    """An ordered, mutable sequence of :class:`GifFrame` plus a loop count.

    Insertion order is display order. A loop count of 0 loops forever; any
    other value is an explicit repeat count. An empty animation is a valid
    working state, but at least one frame is needed to save.

    The animation owns its frames: frames that are removed or replaced are
    closed, and closing the animation closes every frame. It is not safe to
    mutate one animation from several threads at once.
    """

    def __init__(self, loop_count: int = 0) -> None:
        self._frames: list[GifFrame] = []
        self.loop_count = loop_count

    # ------------------------------------------------------------------
    # Sequence access
    # ------------------------------------------------------------------
    @property
    def loop_count(self) -> int:
        """How many times the animation plays before stopping (0 for indefinite)."""
        return self._loop_count

    @loop_count.setter
    def loop_count(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgumentError(
                f"Loop count must be an int, got {type(value).__name__}"
            )
        if not 0 <= value <= MAX_LOOP_COUNT:
            raise InvalidArgumentError(
                f"Loop count must be between 0 and {MAX_LOOP_COUNT}, got {value}"
            )
        self._loop_count = value

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> list[GifFrame]:
        """A shallow copy of the frame list, in display order."""
        return list(self._frames)

    @property
    def delays(self) -> list[int]:
        return [frame.delay for frame in self._frames]

    @property
    def duration(self) -> timedelta:
        """Total play time of one pass through the animation."""
        return timedelta(milliseconds=sum(self.delays) * 10)

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[GifFrame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> GifFrame:
        return self._frames[index]

    def __setitem__(self, index: int, frame: GifFrame) -> None:
        frame = self._require_frame(frame)
        previous = self._frames[index]
        self._frames[index] = frame
        if previous is not frame:
            previous.close()

    def __repr__(self) -> str:
        return f"AnimatedGif(frames={len(self._frames)}, loop_count={self._loop_count})"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def add_frame(self, frame: GifFrame | Image.Image, delay: int | None = None) -> GifFrame:
        """Append a frame, or build one from an image and a delay.

        Args:
            frame: A GifFrame, or a PIL image to wrap
            delay: Delay in hundredths of a second when *frame* is an image

        Returns:
            The frame that was appended
        """
        if isinstance(frame, GifFrame):
            if delay is not None:
                raise InvalidArgumentError("delay is only accepted together with an image")
        elif isinstance(frame, Image.Image):
            frame = GifFrame(frame, 0 if delay is None else delay)
        else:
            frame = self._require_frame(frame)

        self._frames.append(frame)
        return frame

    def add_frames(self, *frames: GifFrame | Iterable[GifFrame]) -> None:
        """Append several frames, given individually or as one iterable.

        A ``None`` member raises after the frames before it have been added.
        """
        if len(frames) == 1 and not isinstance(frames[0], GifFrame):
            if frames[0] is None:
                raise InvalidArgumentError("frames must not be None")
            batch: Iterable[Any] = frames[0]
        else:
            batch = frames

        for frame in batch:
            if frame is None:
                raise InvalidArgumentError("Collection cannot contain None frames")
            self._frames.append(self._require_frame(frame))

    def remove_frame(self, target: int | GifFrame) -> bool:
        """Remove and close a frame, by index or by identity.

        Returns:
            True if a frame was removed. Removing a frame that is not part of
            the animation returns False; an out-of-range index raises
            IndexError.
        """
        if isinstance(target, GifFrame):
            for index, frame in enumerate(self._frames):
                if frame is target:
                    del self._frames[index]
                    frame.close()
                    return True
            return False

        frame = self._frames.pop(target)
        frame.close()
        return True

    def remove_frames(self, index: int, count: int) -> None:
        """Remove and close *count* frames starting at *index*."""
        if index < 0 or count < 0 or index + count > len(self._frames):
            raise InvalidArgumentError(
                f"Range index={index}, count={count} is outside "
                f"an animation of {len(self._frames)} frames"
            )

        removed = self._frames[index : index + count]
        del self._frames[index : index + count]
        for frame in removed:
            frame.close()

    def remove_all_frames(self, predicate: Callable[[GifFrame], bool] | None = None) -> int:
        """Remove and close every frame matching *predicate* (all frames if None).

        Remaining frames keep their relative order.

        Returns:
            Number of frames removed
        """
        removed: list[GifFrame] = []
        kept: list[GifFrame] = []
        for frame in self._frames:
            if predicate is None or predicate(frame):
                removed.append(frame)
            else:
                kept.append(frame)
        self._frames = kept

        for frame in removed:
            frame.close()
        return len(removed)

    def close(self) -> None:
        """Close every frame and empty the animation."""
        self.remove_all_frames()

    def __enter__(self) -> AnimatedGif:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @staticmethod
    def _require_frame(frame: Any) -> GifFrame:
        if frame is None:
            raise InvalidArgumentError("Frame must not be None")
        if not isinstance(frame, GifFrame):
            raise InvalidArgumentError(
                f"Expected a GifFrame, got {type(frame).__name__}"
            )
        return frame

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    @classmethod
    def load(
        cls,
        source: Source,
        codec: HostCodec | None = None,
        config: LoadConfig | None = None,
    ) -> AnimatedGif:
        """Load an animated GIF from a path or a readable binary stream.

        Args:
            source: File path or readable binary stream
            codec: Host codec to decode with; the configured default if None
            config: Frame materialisation settings

        Returns:
            A new animation holding one frame per GIF frame

        Raises:
            NotAnimatedError: If the source lacks frame-delay or loop-count
                metadata, or reports no frames
            GifIOError: If the source cannot be read or decoded
        """
        codec = resolve_codec(codec)
        config = config or DEFAULT_LOAD_CONFIG

        with error_context(
            "load animated GIF", GifIOError, context={"source": _describe(source)}, logger=logger
        ):
            if _is_path(source):
                source = Path(source)

            image = codec.open(source)
            try:
                return cls._load_frames(codec, image, config)
            finally:
                image.close()

    @classmethod
    def _load_frames(cls, codec: HostCodec, image: Any, config: LoadConfig) -> AnimatedGif:
        frame_count = codec.frame_count(image)

        try:
            delay_item = codec.get_metadata_block(image, PropertyTag.FrameDelay)
            loop_item = codec.get_metadata_block(image, PropertyTag.LoopCount)
        except KeyError as e:
            raise NotAnimatedError(f"Image is not an animated GIF (missing {e})") from e

        if frame_count <= 0:
            raise NotAnimatedError(f"Image is not an animated GIF (frame count {frame_count})")

        loop_count = decode_loop_count(loop_item)
        delays = decode_delays(delay_item)

        if len(delays) < frame_count:
            if config.DELAY_SHORTFALL_POLICY == DELAY_SHORTFALL_STRICT:
                raise NotAnimatedError(
                    f"Frame delay block covers {len(delays)} of {frame_count} frames"
                )
            log_warning_with_context(
                "Frame delay block is shorter than the frame count; dropping trailing frames",
                context={"frames": frame_count, "delays": len(delays)},
                logger=logger,
            )

        size = image.size
        frames: list[GifFrame] = []
        try:
            for index, delay in zip(range(frame_count), delays):
                codec.select_active_frame(image, index)
                frames.append(GifFrame(cls._materialize(codec, image, size, config), delay))
        except BaseException:
            for frame in frames:
                frame.close()
            raise

        logger.debug(f"Loaded {len(frames)} frame(s), loop count {loop_count}")

        animation = cls(loop_count)
        animation._frames = frames
        return animation

    @staticmethod
    def _materialize(
        codec: HostCodec, image: Any, size: tuple[int, int], config: LoadConfig
    ) -> Image.Image:
        # Frames may not cover the whole canvas, so start from a cleared one
        canvas = Image.new("RGBA", size, config.BACKGROUND_COLOR)
        layer = codec.render_active_frame(image)
        try:
            overlay = layer.convert("RGBA").crop((0, 0, *size))
        finally:
            layer.close()
        canvas.alpha_composite(overlay)
        overlay.close()

        if config.FRAME_MODE == "RGBA":
            return canvas

        converted = canvas.convert(config.FRAME_MODE)
        canvas.close()
        return converted

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------
    def save(self, target: Source, codec: HostCodec | None = None) -> None:
        """Save the animation to a path or a writable binary stream.

        A path is created or truncated and held under an exclusive lock while
        writing. A failed save leaves a partial, invalid destination behind.

        Raises:
            EmptyAnimationError: If the animation has no frames; nothing is
                written in that case
            UnsupportedEncoderError: If no GIF encoder is available
            GifIOError: If writing fails
        """
        if not self._frames:
            raise EmptyAnimationError("Image has no frames")

        codec = resolve_codec(codec)

        with error_context(
            "save animated GIF", GifIOError, context={"target": _describe(target)}, logger=logger
        ):
            if _is_path(target):
                with exclusive_output(Path(target)) as stream:
                    self._write(codec, stream)
            else:
                self._write(codec, target)

    def _write(self, codec: HostCodec, stream: IO[bytes]) -> None:
        items = [encode_delays(self.delays), encode_loop_count(self._loop_count)]

        session = codec.begin_save(stream)
        base = self._frames[0].image.copy()
        try:
            session.save(base, items, EncoderValue.MultiFrame)
            for frame in self._frames[1:]:
                session.save_add(frame.image, EncoderValue.FrameDimensionTime)
            session.save_add(None, EncoderValue.Flush)
        finally:
            base.close()

        stream.flush()
        logger.debug(
            f"Saved {len(self._frames)} frame(s), loop count {self._loop_count}"
        )
