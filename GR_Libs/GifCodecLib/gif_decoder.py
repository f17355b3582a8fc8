"""
GIF Bitstream Decoder.

Parses a GIF87a/GIF89a byte buffer into a logical screen description, the
optional global color table and an ordered list of frames. Each frame keeps
its raw palette indices together with an RGBA patch built from the active
color table, its placement rectangle and the graphic control metadata
(disposal, delay, transparency) that preceded it.

Example:
    >>> from pathlib import Path
    >>> gif = decode_gif(Path("animation.gif").read_bytes())
    >>> gif.width, gif.height, gif.frame_count
    (320, 240, 12)
    >>> gif.frames[1].disposal
    <DisposalMethod.RESTORE_TO_BACKGROUND: 2>
"""

import logging
import struct
from typing import Dict, List, Optional, Tuple

import numpy as np

from GR_Libs.constants import (
    BLOCK_EXTENSION,
    BLOCK_IMAGE,
    BLOCK_TRAILER,
    EXT_APPLICATION,
    EXT_GRAPHIC_CONTROL,
    GIF_SIGNATURE,
    GIF_VERSIONS,
    INTERLACE_PASSES,
    LOOP_APPLICATION_IDS,
    RGBA_CHANNELS,
)
from GR_Libs.errors import DecodeError, LzwError
from GR_Libs.GifCodecLib.gif_models import (
    DecodedGif,
    DisposalMethod,
    Frame,
    FrameRect,
    RgbColor,
)
from GR_Libs.GifCodecLib.lzw import lzw_decode

logger = logging.getLogger(__name__)


class _Reader:
    """Bounds-checked cursor over the input buffer."""

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def read(self, length: int, what: str) -> bytes:
        end = self.pos + length
        if end > len(self.data):
            raise DecodeError(f"unexpected end of data while reading {what} at offset {self.pos}")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def read_byte(self, what: str) -> int:
        return self.read(1, what)[0]

    def read_subblocks(self, what: str) -> bytes:
        chunks = []
        size = self.read_byte(what)
        while size:
            chunks.append(self.read(size, what))
            size = self.read_byte(what)
        return b"".join(chunks)


def _read_color_table(reader: _Reader, size_bits: int, what: str) -> List[RgbColor]:
    count = 1 << (size_bits + 1)
    raw = reader.read(count * 3, what)
    return [(raw[i], raw[i + 1], raw[i + 2]) for i in range(0, len(raw), 3)]


def _deinterlace(index_data: bytes, width: int, height: int) -> bytes:
    rows = [index_data[i * width:(i + 1) * width] for i in range(height)]
    ordered: List[Optional[bytes]] = [None] * height
    source_row = 0
    for start, step in INTERLACE_PASSES:
        for target_row in range(start, height, step):
            ordered[target_row] = rows[source_row]
            source_row += 1
    return b"".join(ordered)


def build_patch(
    index_data: bytes,
    width: int,
    height: int,
    color_table: List[RgbColor],
    transparent_index: Optional[int],
) -> np.ndarray:
    """
    Convert palette indices into an RGBA patch.

    Indices past the end of the color table render as opaque black; the
    transparent index renders as (0, 0, 0, 0).

    Returns:
        uint8 array of shape (height, width, 4)
    """
    lookup = np.zeros((256, RGBA_CHANNELS), dtype=np.uint8)
    lookup[:, 3] = 255
    if color_table:
        lookup[:len(color_table), :3] = np.asarray(color_table, dtype=np.uint8)
    if transparent_index is not None:
        lookup[transparent_index] = 0

    indices = np.frombuffer(index_data, dtype=np.uint8).reshape(height, width)
    return lookup[indices]


def _parse_graphic_control(block: bytes) -> Dict[str, object]:
    if len(block) < 4:
        raise DecodeError("graphic control extension is too short")
    packed, delay, transparent_index = struct.unpack("<BHB", block[:4])
    return {
        "disposal": DisposalMethod.from_code((packed >> 2) & 0b111),
        "delay": delay,
        "transparent_index": transparent_index if packed & 0b1 else None,
    }


def _parse_loop_count(payload: bytes) -> Optional[int]:
    # sub-block 1 of the looping extension: 0x01 followed by a u16 loop count
    if len(payload) >= 3 and payload[0] == 0x01:
        return struct.unpack("<H", payload[1:3])[0]
    return None


def _read_extension(reader: _Reader, gif: DecodedGif) -> Optional[Dict[str, object]]:
    label = reader.read_byte("extension label")

    if label == EXT_GRAPHIC_CONTROL:
        return _parse_graphic_control(reader.read_subblocks("graphic control extension"))

    if label == EXT_APPLICATION:
        header_size = reader.read_byte("application extension")
        identifier = reader.read(header_size, "application identifier")
        payload = reader.read_subblocks("application extension data")
        if identifier in LOOP_APPLICATION_IDS:
            gif.loop_count = _parse_loop_count(payload)
            logger.debug(f"Loop count from {identifier!r}: {gif.loop_count}")
        return None

    # comment, plain text and unknown extensions only need skipping
    reader.read_subblocks(f"extension 0x{label:02X}")
    return None


def _read_image(
    reader: _Reader,
    gif: DecodedGif,
    control: Optional[Dict[str, object]],
    frame_number: int,
) -> Frame:
    left, top, width, height, packed = struct.unpack("<4HB", reader.read(9, "image descriptor"))
    rect = FrameRect(width, height, left, top)
    interlaced = bool(packed & 0b01000000)

    local_table = None
    if packed & 0b10000000:
        local_table = _read_color_table(reader, packed & 0b111, "local color table")

    min_code_size = reader.read_byte("LZW minimum code size")
    lzw_data = reader.read_subblocks("image data")

    control = control or {}
    disposal = control.get("disposal", DisposalMethod.UNSPECIFIED)
    delay = int(control.get("delay", 0))
    transparent_index = control.get("transparent_index")
    color_table = local_table if local_table is not None else gif.global_color_table

    def malformed(reason: str) -> Frame:
        logger.warning(f"Frame {frame_number} is malformed ({reason}); keeping it with an empty patch")
        return Frame(
            index_data=b"",
            patch=np.zeros((0, 0, RGBA_CHANNELS), dtype=np.uint8),
            rect=rect,
            disposal=disposal,
            delay=delay,
            transparent_index=transparent_index,
            interlaced=interlaced,
        )

    if rect.area == 0:
        return malformed("zero-sized image rectangle")
    if color_table is None:
        return malformed("no color table")

    try:
        index_data = lzw_decode(lzw_data, min_code_size, rect.area)
    except LzwError as e:
        return malformed(str(e))

    if interlaced:
        index_data = _deinterlace(index_data, width, height)

    patch = build_patch(index_data, width, height, color_table, transparent_index)
    logger.debug(
        f"Decoded frame {frame_number}: {width}x{height} at ({left}, {top}), "
        f"disposal={int(disposal)}, delay={delay}"
    )
    return Frame(
        index_data=index_data,
        patch=patch,
        rect=rect,
        disposal=disposal,
        delay=delay,
        transparent_index=transparent_index,
        interlaced=interlaced,
        color_table=tuple(color_table),
    )


def decode_gif(data: bytes) -> DecodedGif:
    """
    Decode a GIF byte buffer.

    Args:
        data: Complete GIF file contents

    Returns:
        DecodedGif with every image block in file order. Frames that could
        not be decoded are kept with an empty patch.

    Raises:
        TypeError: If data is not bytes-like
        DecodeError: If the header is invalid, a block is truncated, or no
                     frame decodes to a non-empty patch
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Expected bytes, got {type(data)}")

    reader = _Reader(bytes(data))
    signature = reader.read(3, "signature")
    version = reader.read(3, "version")
    if signature != GIF_SIGNATURE or version not in GIF_VERSIONS:
        raise DecodeError(f"not a GIF file (header {signature + version!r})")

    width, height, packed, background_index, _aspect = struct.unpack(
        "<2H3B", reader.read(7, "logical screen descriptor")
    )
    if width == 0 or height == 0:
        raise DecodeError(f"invalid logical screen size {width}x{height}")

    gif = DecodedGif(width=width, height=height, background_index=background_index)
    if packed & 0b10000000:
        gif.global_color_table = _read_color_table(reader, packed & 0b111, "global color table")

    control: Optional[Dict[str, object]] = None
    while True:
        if reader.at_end:
            if not gif.frames:
                raise DecodeError("unexpected end of data before the first image")
            logger.warning("GIF has no trailer; treating end of data as end of stream")
            break

        block_type = reader.read_byte("block type")
        if block_type == BLOCK_TRAILER:
            break
        if block_type == BLOCK_EXTENSION:
            extension_control = _read_extension(reader, gif)
            if extension_control is not None:
                control = extension_control
        elif block_type == BLOCK_IMAGE:
            gif.frames.append(_read_image(reader, gif, control, len(gif.frames)))
            control = None
        else:
            raise DecodeError(f"unknown block type 0x{block_type:02X} at offset {reader.pos - 1}")

    if not any(not frame.is_empty for frame in gif.frames):
        raise DecodeError("no frame decoded to a non-empty patch")

    logger.debug(f"Decoded GIF {width}x{height} with {len(gif.frames)} frame(s)")
    return gif
