"""Gifed - load, edit and save animated GIFs."""

__version__: str = "0.1.0"

# Public re-exports for convenience ---------------------------------------------------

from .animation import AnimatedGif
from .codec import EncoderSession, EncoderValue, HostCodec, PillowGifCodec, resolve_codec
from .config import CodecConfig, LoadConfig
from .error_handling import (
    DimensionMismatchError,
    EmptyAnimationError,
    EncoderProtocolError,
    GifedError,
    GifIOError,
    InvalidArgumentError,
    NotAnimatedError,
    UnsupportedEncoderError,
)
from .frame import GifFrame
from .metadata import PropertyItem, PropertyItemType, PropertyTag, in_chunks_of

__all__ = [
    "AnimatedGif",
    "CodecConfig",
    "DimensionMismatchError",
    "EmptyAnimationError",
    "EncoderProtocolError",
    "EncoderSession",
    "EncoderValue",
    "GifFrame",
    "GifIOError",
    "GifedError",
    "HostCodec",
    "InvalidArgumentError",
    "LoadConfig",
    "NotAnimatedError",
    "PillowGifCodec",
    "PropertyItem",
    "PropertyItemType",
    "PropertyTag",
    "UnsupportedEncoderError",
    "in_chunks_of",
    "resolve_codec",
]
