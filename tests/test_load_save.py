"""Tests for loading and saving animations through a host codec."""

import io
import logging
import struct

import pytest
from PIL import Image

from fakes import FakeCodec, RecordingStream, delay_item, loop_item
from gifed.animation import AnimatedGif
from gifed.codec import EncoderValue
from gifed.config import LoadConfig
from gifed.error_handling import (
    EmptyAnimationError,
    GifIOError,
    InvalidArgumentError,
    NotAnimatedError,
)
from gifed.frame import GifFrame
from gifed.metadata import PropertyTag

DELAYS_10_20_30 = bytes.fromhex("0A000000" "14000000" "1E000000")


def _rgba_frames(count, size=(4, 3)):
    return [Image.new("RGBA", size, (40 * (i + 1), 0, 0, 255)) for i in range(count)]


def _animation(delays, loop_count=0, size=(4, 3)):
    anim = AnimatedGif(loop_count)
    for i, delay in enumerate(delays):
        anim.add_frame(Image.new("RGB", size, (0, 30 * (i + 1), 0)), delay)
    return anim


class TestLoadWithFakeCodec:
    """Tests for AnimatedGif.load metadata handling."""

    @pytest.mark.fast
    def test_delays_and_loop_count_decoded(self):
        """Test three delay words and a loop word become frames and loop count."""
        codec = FakeCodec(
            frames=_rgba_frames(3),
            items=[delay_item(DELAYS_10_20_30), loop_item(b"\x05\x00")],
        )

        anim = AnimatedGif.load("anything.gif", codec=codec)

        assert anim.delays == [10, 20, 30]
        assert anim.loop_count == 5
        assert codec.selected == [0, 1, 2]
        assert codec.handles[0].closed

    @pytest.mark.fast
    def test_frames_are_independent_full_canvas_buffers(self):
        """Test every frame gets its own buffer sized to the canvas."""
        source = _rgba_frames(2, size=(6, 5))
        codec = FakeCodec(
            frames=source,
            items=[delay_item(struct.pack("<2I", 1, 2)), loop_item(b"\x00\x00")],
        )

        anim = AnimatedGif.load("anything.gif", codec=codec)

        assert [frame.size for frame in anim] == [(6, 5), (6, 5)]
        assert anim[0].image is not source[0]
        assert anim[0].image.getpixel((0, 0)) == (40, 0, 0, 255)
        assert anim[1].image.getpixel((0, 0)) == (80, 0, 0, 255)

    @pytest.mark.fast
    def test_sparse_frame_composited_on_background(self):
        """Test transparent pixels show the configured background colour."""
        sparse = Image.new("RGBA", (3, 3), (0, 0, 0, 0))
        sparse.putpixel((0, 0), (255, 0, 0, 255))
        items = [delay_item(struct.pack("<I", 7)), loop_item(b"\x00\x00")]

        default = AnimatedGif.load("a.gif", codec=FakeCodec(frames=[sparse], items=items))
        white = AnimatedGif.load(
            "a.gif",
            codec=FakeCodec(frames=[sparse], items=items),
            config=LoadConfig(BACKGROUND_COLOR=(255, 255, 255, 255)),
        )

        assert default[0].image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert default[0].image.getpixel((2, 2)) == (0, 0, 0, 255)
        assert white[0].image.getpixel((2, 2)) == (255, 255, 255, 255)

    @pytest.mark.fast
    def test_frame_mode_config(self):
        """Test frames can be materialised in RGB mode."""
        codec = FakeCodec(
            frames=_rgba_frames(1),
            items=[delay_item(struct.pack("<I", 3)), loop_item(b"\x00\x00")],
        )

        anim = AnimatedGif.load("a.gif", codec=codec, config=LoadConfig(FRAME_MODE="RGB"))

        assert anim[0].image.mode == "RGB"
        assert anim[0].image.getpixel((0, 0)) == (40, 0, 0)

    @pytest.mark.fast
    def test_missing_loop_count_block(self):
        """Test a source without a loop count block is not animated."""
        codec = FakeCodec(frames=_rgba_frames(3), items=[delay_item(DELAYS_10_20_30)])

        with pytest.raises(NotAnimatedError, match="not an animated GIF"):
            AnimatedGif.load("a.gif", codec=codec)
        assert codec.handles[0].closed

    @pytest.mark.fast
    def test_missing_delay_block(self):
        """Test a source without a delay block is not animated."""
        codec = FakeCodec(frames=_rgba_frames(3), items=[loop_item(b"\x00\x00")])

        with pytest.raises(NotAnimatedError):
            AnimatedGif.load("a.gif", codec=codec)

    @pytest.mark.fast
    def test_zero_frame_count(self):
        """Test a source reporting no frames is not animated."""
        codec = FakeCodec(
            frames=_rgba_frames(1),
            items=[delay_item(b""), loop_item(b"\x00\x00")],
            frame_count=0,
        )

        with pytest.raises(NotAnimatedError):
            AnimatedGif.load("a.gif", codec=codec)

    @pytest.mark.fast
    def test_short_delay_block_truncates_by_default(self, caplog):
        """Test frames without a delay are dropped and a warning is logged."""
        codec = FakeCodec(
            frames=_rgba_frames(3),
            items=[delay_item(struct.pack("<2I", 4, 8)), loop_item(b"\x00\x00")],
        )

        with caplog.at_level(logging.WARNING, logger="gifed.animation"):
            anim = AnimatedGif.load("a.gif", codec=codec)

        assert anim.delays == [4, 8]
        assert codec.selected == [0, 1]
        assert "dropping trailing frames" in caplog.text

    @pytest.mark.fast
    def test_short_delay_block_strict_policy(self):
        """Test the strict policy refuses a delay block shorter than the frame count."""
        codec = FakeCodec(
            frames=_rgba_frames(3),
            items=[delay_item(struct.pack("<2I", 4, 8)), loop_item(b"\x00\x00")],
        )

        with pytest.raises(NotAnimatedError, match="covers 2 of 3"):
            AnimatedGif.load("a.gif", codec=codec, config=LoadConfig(DELAY_SHORTFALL_POLICY="strict"))

    @pytest.mark.fast
    def test_extra_delays_ignored(self):
        """Test delays beyond the frame count are ignored."""
        codec = FakeCodec(
            frames=_rgba_frames(2),
            items=[delay_item(DELAYS_10_20_30), loop_item(b"\x00\x00")],
        )

        assert AnimatedGif.load("a.gif", codec=codec).delays == [10, 20]

    @pytest.mark.fast
    def test_decoder_failure_releases_handle(self):
        """Test a failure partway through is wrapped and the source is released."""
        codec = FakeCodec(
            frames=_rgba_frames(3),
            items=[delay_item(DELAYS_10_20_30), loop_item(b"\x00\x00")],
            fail_at=2,
        )

        with pytest.raises(GifIOError, match="corrupt image data") as excinfo:
            AnimatedGif.load("a.gif", codec=codec)

        assert isinstance(excinfo.value.cause, RuntimeError)
        assert codec.handles[0].closed


class TestSaveWithFakeCodec:
    """Tests for the multi-frame write protocol driven by AnimatedGif.save."""

    @pytest.mark.fast
    def test_write_protocol_order(self):
        """Test first write, appends in display order, then a bare flush."""
        anim = _animation([10, 20, 30], loop_count=4)
        codec = FakeCodec()
        stream = RecordingStream()

        anim.save(stream, codec=codec)

        session = codec.sessions[0]
        assert [call[:2] for call in session.calls] == [
            ("save", EncoderValue.MultiFrame),
            ("save_add", EncoderValue.FrameDimensionTime),
            ("save_add", EncoderValue.FrameDimensionTime),
            ("save_add", EncoderValue.Flush),
        ]
        assert session.images[1] is anim[1].image
        assert session.images[2] is anim[2].image
        assert session.images[3] is None
        assert stream.flushes >= 1

    @pytest.mark.fast
    def test_first_write_uses_a_copy_with_both_blocks(self):
        """Test the base image is a clone carrying the delay and loop blocks."""
        anim = _animation([10, 20, 30], loop_count=4)
        codec = FakeCodec()

        anim.save(io.BytesIO(), codec=codec)

        _, _, items = codec.sessions[0].calls[0]
        assert codec.sessions[0].images[0] is not anim[0].image
        assert items == [
            (PropertyTag.FrameDelay, DELAYS_10_20_30),
            (PropertyTag.LoopCount, b"\x04\x00"),
        ]

    @pytest.mark.fast
    def test_single_frame(self):
        """Test one frame means one write and one flush."""
        codec = FakeCodec()
        _animation([7]).save(io.BytesIO(), codec=codec)

        assert [call[:2] for call in codec.sessions[0].calls] == [
            ("save", EncoderValue.MultiFrame),
            ("save_add", EncoderValue.Flush),
        ]

    @pytest.mark.fast
    def test_empty_animation_writes_nothing(self):
        """Test saving no frames fails before touching the stream."""
        codec = FakeCodec()
        stream = RecordingStream()

        with pytest.raises(EmptyAnimationError):
            AnimatedGif().save(stream, codec=codec)

        assert stream.getvalue() == b""
        assert codec.sessions == []

    @pytest.mark.fast
    def test_empty_animation_does_not_create_file(self, tmp_path):
        """Test a failed empty save leaves no file behind."""
        target = tmp_path / "out.gif"

        with pytest.raises(EmptyAnimationError):
            AnimatedGif().save(target, codec=FakeCodec())

        assert not target.exists()

    @pytest.mark.fast
    def test_failure_midway_aborts(self):
        """Test an encoder failure aborts the save without a flush call."""
        codec = FakeCodec(fail_on_append=1)

        with pytest.raises(GifIOError, match="out of memory"):
            _animation([1, 2, 3]).save(io.BytesIO(), codec=codec)

        assert ("save_add", EncoderValue.Flush) not in codec.sessions[0].calls

    @pytest.mark.fast
    def test_save_to_path_truncates(self, tmp_path):
        """Test saving to a path replaces existing content."""
        target = tmp_path / "out.gif"
        target.write_bytes(b"x" * 100)

        _animation([1, 2]).save(target, codec=FakeCodec())

        assert target.read_bytes() == b"GIF89a;"


@pytest.mark.integration
class TestPillowRoundTrip:
    """Round trips through real GIF files written and read by Pillow."""

    def test_round_trip_via_stream(self):
        """Test frame count, delays and loop count survive save then load."""
        anim = AnimatedGif(loop_count=3)
        for i, delay in enumerate([10, 25, 40, 5]):
            color = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)][i]
            anim.add_frame(Image.new("RGB", (16, 10), color), delay)

        buffer = io.BytesIO()
        anim.save(buffer)
        buffer.seek(0)
        loaded = AnimatedGif.load(buffer)

        assert loaded.frame_count == 4
        assert loaded.delays == [10, 25, 40, 5]
        assert loaded.loop_count == 3
        assert loaded[0].size == (16, 10)
        assert loaded[0].image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert loaded[2].image.getpixel((5, 5)) == (0, 0, 255, 255)

    def test_round_trip_via_path(self, tmp_path):
        """Test saving to and loading from a file path."""
        target = tmp_path / "nested" / "out.gif"
        _animation([12, 34], loop_count=0).save(target)

        loaded = AnimatedGif.load(target)

        assert loaded.delays == [12, 34]
        assert loaded.loop_count == 0

    def test_single_frame_round_trip(self, tmp_path):
        """Test a one-frame animation keeps its delay and loop count."""
        target = tmp_path / "one.gif"
        _animation([42], loop_count=7).save(target)

        loaded = AnimatedGif.load(str(target))

        assert loaded.delays == [42]
        assert loaded.loop_count == 7

    def test_held_frames_stay_separate(self):
        """Test identical neighbouring frames keep their own delays."""
        anim = AnimatedGif(loop_count=0)
        for delay in [10, 20, 30]:
            anim.add_frame(Image.new("RGB", (8, 8), (255, 0, 0)), delay)

        buffer = io.BytesIO()
        anim.save(buffer)
        buffer.seek(0)
        loaded = AnimatedGif.load(buffer)

        assert (loaded.frame_count, loaded.delays) == (3, [10, 20, 30])
        assert all(frame.image.getpixel((4, 4)) == (255, 0, 0, 255) for frame in loaded)

    def test_zero_delay_round_trip(self):
        """Test a frame without a delay is written and read back as 0."""
        buffer = io.BytesIO()
        _animation([0, 15]).save(buffer)
        buffer.seek(0)

        assert AnimatedGif.load(buffer).delays == [0, 15]

    def test_delay_beyond_gif_limit(self):
        """Test a delay that does not fit the 16-bit field is rejected up front."""
        buffer = io.BytesIO()

        with pytest.raises(InvalidArgumentError, match="Frame 0 delay 70000 exceeds the GIF limit of 65535"):
            _animation([70000, 1]).save(buffer)

        assert buffer.getvalue() == b""

    def test_load_fixture(self, animated_gif):
        """Test a GIF written directly with Pillow loads as expected."""
        anim = AnimatedGif.load(animated_gif)

        assert anim.delays == [10, 20, 30]
        assert anim.loop_count == 0
        assert all(frame.size == (12, 8) for frame in anim)
        assert anim[1].image.getpixel((0, 0)) == (0, 255, 0, 255)

    def test_gif_without_loop_extension(self, make_gif):
        """Test a GIF lacking a looping extension is not animated."""
        path = make_gif("noloop.gif", loop=None)

        with pytest.raises(NotAnimatedError):
            AnimatedGif.load(path)

    def test_png_is_not_animated(self, tmp_path):
        """Test a still PNG has no animation metadata."""
        path = tmp_path / "still.png"
        Image.new("RGB", (4, 4)).save(path)

        with pytest.raises(NotAnimatedError):
            AnimatedGif.load(path)

    def test_garbage_bytes(self):
        """Test undecodable data surfaces as an I/O failure."""
        with pytest.raises(GifIOError):
            AnimatedGif.load(io.BytesIO(b"definitely not an image"))

    def test_missing_file(self, tmp_path):
        """Test a missing path is an I/O failure that is also an OSError."""
        with pytest.raises(OSError) as excinfo:
            AnimatedGif.load(tmp_path / "missing.gif")
        assert isinstance(excinfo.value, GifIOError)

    def test_edit_and_resave(self, make_gif, tmp_path):
        """Test loading, trimming, retiming and saving produces the edited animation."""
        source = make_gif("src.gif", delays=(10, 20, 30, 40, 50), loop=2)
        anim = AnimatedGif.load(source)

        anim.remove_frames(1, 2)
        anim[0].delay = 99
        anim.loop_count = 1
        anim.save(tmp_path / "edited.gif")

        edited = AnimatedGif.load(tmp_path / "edited.gif")
        assert edited.delays == [99, 40, 50]
        assert edited.loop_count == 1
        assert isinstance(edited[0], GifFrame)
