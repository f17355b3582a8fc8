"""
Tests for the GIF bitstream decoder.

Tests cover:
- Logical screen, loop count and frame metadata
- Patch construction (transparency, local tables, interlacing)
- Malformed frames and malformed files
- Compatibility with GIFs written by Pillow
"""

import io
import logging
import unittest

import numpy as np
import pytest
from PIL import Image, ImageDraw

from GR_Libs.errors import DecodeError
from GR_Libs.FrameLib.compositor import extract_gif_frames
from GR_Libs.GifCodecLib.gif_decoder import decode_gif
from GR_Libs.GifCodecLib.gif_models import DisposalMethod, FrameRect

import gif_fixtures
from gif_fixtures import BLUE, CLEAR, FrameSpec, GREEN, build_gif, solid


class TestDecodeStructure(unittest.TestCase):
    """Test decoded screen and frame metadata."""

    def setUp(self):
        self.gif = decode_gif(gif_fixtures.scenario_three_frame_gif())

    def test_logical_screen(self):
        self.assertEqual((self.gif.width, self.gif.height), (10, 10))
        self.assertEqual(len(self.gif.global_color_table), 8)
        self.assertEqual(self.gif.loop_count, 0)

    def test_frames(self):
        self.assertEqual(self.gif.frame_count, 3)
        self.assertEqual(self.gif.frames[1].rect, FrameRect(4, 4, 2, 2))
        self.assertEqual(
            [f.disposal for f in self.gif.frames],
            [DisposalMethod.UNSPECIFIED, DisposalMethod.RESTORE_TO_BACKGROUND, DisposalMethod.LEAVE_IN_PLACE],
        )
        self.assertEqual([f.delay for f in self.gif.frames], [10, 10, 10])

    def test_patch_colors(self):
        frame = self.gif.frames[2]
        self.assertEqual(frame.patch.shape, (2, 2, 4))
        self.assertTrue(np.all(frame.patch == BLUE))
        self.assertEqual(frame.index_data, bytes([3, 3, 3, 3]))

    def test_patch_is_read_only(self):
        with self.assertRaises(ValueError):
            self.gif.frames[0].patch[0, 0] = 0


class TestDecodeFeatures(unittest.TestCase):
    """Test transparency, local color tables, interlacing and odd values."""

    def setUp(self):
        self.gif = decode_gif(gif_fixtures.mixed_disposal_gif())

    def test_transparent_index_becomes_clear_pixel(self):
        frame = self.gif.frames[1]
        self.assertEqual(frame.transparent_index, 0)
        self.assertEqual(tuple(frame.patch[1, 1]), CLEAR)
        self.assertEqual(tuple(frame.patch[0, 0]), (255, 255, 0, 255))

    def test_local_color_table(self):
        frame = self.gif.frames[3]
        self.assertEqual(tuple(frame.patch[0, 0]), (40, 50, 60, 255))

    def test_interlaced_rows_are_reordered(self):
        frame = self.gif.frames[4]
        self.assertTrue(frame.interlaced)
        self.assertEqual(list(frame.index_data[12:15]), [1, 2, 3])
        self.assertEqual(list(frame.index_data[3:6]), [6, 5, 6])

    def test_zero_delay_kept_verbatim(self):
        self.assertEqual(self.gif.frames[2].delay, 0)

    def test_reserved_disposal_is_unspecified(self):
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 1), disposal=5)])
        self.assertEqual(decode_gif(data).frames[0].disposal, DisposalMethod.UNSPECIFIED)

    def test_gif87a_without_loop(self):
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 2))], version=b"87a", loop=None)
        gif = decode_gif(data)
        self.assertIsNone(gif.loop_count)
        self.assertTrue(np.all(gif.frames[0].patch == GREEN))


class TestDecodeErrors:
    """Malformed input."""

    def test_bad_header(self):
        with pytest.raises(DecodeError):
            decode_gif(b"PNG89a" + bytes(20))

    def test_empty_input(self):
        with pytest.raises(DecodeError):
            decode_gif(b"")

    def test_not_bytes(self):
        with pytest.raises(TypeError):
            decode_gif("GIF89a")

    def test_truncated_image_data(self, scenario_gif):
        with pytest.raises(DecodeError):
            decode_gif(scenario_gif[:-8])

    def test_zero_screen_size(self):
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 1))])
        with pytest.raises(DecodeError):
            decode_gif(data[:6] + b"\x00\x00" + data[8:])

    def test_unknown_block_type(self):
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 1))], trailer=False)
        with pytest.raises(DecodeError):
            decode_gif(data + b"\x99")

    def test_missing_trailer_is_tolerated(self, caplog):
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 1))], trailer=False)
        with caplog.at_level(logging.WARNING):
            gif = decode_gif(data)
        assert gif.frame_count == 1
        assert "trailer" in caplog.text

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_gif(b"GIF00a")

    def test_bad_lzw_frame_is_kept_empty(self):
        # clear (8) then undefined 15 in 4-bit codes
        broken = FrameSpec(solid(2, 2, 1), lzw_data=bytes([8 | (15 << 4)]))
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 1)), broken, FrameSpec(solid(4, 4, 2))])
        gif = decode_gif(data)
        assert gif.frame_count == 3
        assert gif.frames[1].is_empty
        assert not gif.frames[2].is_empty

    def test_no_decodable_frame(self):
        broken = FrameSpec(solid(2, 2, 1), lzw_data=bytes([8 | (15 << 4)]))
        with pytest.raises(DecodeError):
            decode_gif(build_gif(4, 4, [broken]))

    def test_frame_without_color_table_is_empty(self):
        data = build_gif(4, 4, [FrameSpec(solid(4, 4, 1))], palette=None)
        with pytest.raises(DecodeError):
            decode_gif(data)


class TestPillowWrittenGif:
    """GIFs written by Pillow decode to the frames that were saved."""

    def test_frames_match_source_images(self):
        palette = [value for color in gif_fixtures.PALETTE for value in color]
        images = []
        for step in range(4):
            image = Image.new("P", (16, 12), 1)
            image.putpalette(palette)
            ImageDraw.Draw(image).rectangle((step * 3, 2, step * 3 + 4, 8), fill=2 + step)
            images.append(image)

        buffer = io.BytesIO()
        images[0].save(
            buffer,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=120,
            loop=0,
            disposal=1,
        )
        gif = decode_gif(buffer.getvalue())

        result = extract_gif_frames(buffer.getvalue())

        assert (gif.width, gif.height) == (16, 12)
        assert len(result.extracted_frames) == 4
        assert [frame.delay for frame in gif.frames] == [12, 12, 12, 12]
        assert gif.loop_count == 0
        for composite, image in zip(result.extracted_frames, images):
            expected = np.array(image.convert("RGB"))
            assert np.array_equal(composite[..., :3], expected)
            assert np.all(composite[..., 3] == 255)
