"""Property items that carry animation timing inside a GIF container.

A GIF's animation structure is exposed as numbered property items whose
payloads are packed little-endian integer arrays:

- ``FrameDelay`` (0x5100): one unsigned 32-bit delay per frame, in
  hundredths of a second.
- ``LoopCount`` (0x5101): one unsigned 16-bit repeat count, 0 meaning loop
  forever.

Delay payloads are split into 4-byte chunks. A trailing chunk shorter than
4 bytes is decoded from the bytes present rather than zero-padded, which
tolerates slightly malformed blocks found in the wild. The resulting value
is not a real delay; a warning is logged whenever this leniency applies.
"""

import logging
import struct
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TypeVar

from .error_handling import (
    InvalidArgumentError,
    NotAnimatedError,
    log_warning_with_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DELAY_SIZE = 4
LOOP_COUNT_SIZE = 2
MAX_DELAY = 0xFFFFFFFF
MAX_LOOP_COUNT = 0xFFFF


class PropertyTag(IntEnum):
    """Numeric identifiers of the animation property items."""

    FrameDelay = 0x5100
    LoopCount = 0x5101


class PropertyItemType(IntEnum):
    """Payload encodings a property item can declare."""

    ByteArray = 1
    ASCII = 2
    UInt16Array = 3
    UInt32Array = 4
    UInt32PairArray = 5
    UntypedArray = 6
    Int32Array = 7
    Int32PairArray = 10


@dataclass
class PropertyItem:
    """One tagged metadata block attached to an image."""

    id: int
    type: int
    value: bytes
    length: int = field(default=-1)

    def __post_init__(self) -> None:
        self.value = bytes(self.value)
        if self.length < 0:
            self.length = len(self.value)


def in_chunks_of(iterable: Iterable[T], size: int) -> Iterator[list[T]]:
    """Split an iterable into lists of ``size`` items.

    The final chunk holds whatever is left and may be shorter; it is never
    padded.

    Args:
        iterable: Source items
        size: Number of items per chunk

    Yields:
        Consecutive chunks in source order

    Raises:
        InvalidArgumentError: If iterable is None or size is less than 1
    """
    if iterable is None:
        raise InvalidArgumentError("iterable must not be None")

    if size < 1:
        raise InvalidArgumentError(
            f"Chunk size must be a positive integer greater than zero, got {size}"
        )

    chunk: list[T] = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) == size:
            yield chunk
            chunk = []

    if chunk:
        yield chunk


def encode_delays(delays: Iterable[int]) -> PropertyItem:
    """Pack frame delays (hundredths of a second) into a FrameDelay item."""
    values = list(delays)
    for delay in values:
        if not 0 <= delay <= MAX_DELAY:
            raise InvalidArgumentError(
                f"Frame delay must be between 0 and {MAX_DELAY}, got {delay}"
            )

    payload = struct.pack(f"<{len(values)}I", *values)
    return PropertyItem(
        id=PropertyTag.FrameDelay,
        type=PropertyItemType.UInt32Array,
        value=payload,
    )


def decode_delays(item: PropertyItem) -> list[int]:
    """Unpack a FrameDelay item into per-frame delays.

    Args:
        item: FrameDelay property item

    Returns:
        Delays in hundredths of a second, in frame order
    """
    delays = []
    for chunk in in_chunks_of(item.value, DELAY_SIZE):
        if len(chunk) < DELAY_SIZE:
            log_warning_with_context(
                "Frame delay block ends with a truncated chunk; "
                "decoding the trailing delay from the bytes present",
                context={"block_bytes": len(item.value), "chunk_bytes": len(chunk)},
                logger=logger,
            )
        delays.append(int.from_bytes(bytes(chunk), "little"))
    return delays


def encode_loop_count(loop_count: int) -> PropertyItem:
    """Pack a loop count into a LoopCount item."""
    if not 0 <= loop_count <= MAX_LOOP_COUNT:
        raise InvalidArgumentError(
            f"Loop count must be between 0 and {MAX_LOOP_COUNT}, got {loop_count}"
        )

    return PropertyItem(
        id=PropertyTag.LoopCount,
        type=PropertyItemType.UInt16Array,
        value=struct.pack("<H", loop_count),
    )


def decode_loop_count(item: PropertyItem) -> int:
    """Unpack a LoopCount item.

    Raises:
        NotAnimatedError: If the payload is too short to hold a loop count
    """
    if len(item.value) < LOOP_COUNT_SIZE:
        raise NotAnimatedError(
            f"Loop count block holds {len(item.value)} bytes, expected {LOOP_COUNT_SIZE}"
        )

    (loop_count,) = struct.unpack_from("<H", item.value, 0)
    return loop_count
