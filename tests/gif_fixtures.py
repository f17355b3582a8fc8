"""
Synthetic GIF builder for tests.

Writes GIF byte streams block by block so tests control every field the
decoder reads: rectangles, disposal codes, delays, transparency, local
color tables and interlacing.
"""

import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from GR_Libs.GifCodecLib.lzw import lzw_encode

RgbColor = Tuple[int, int, int]

PALETTE = [
    (0, 0, 0),        # 0 black
    (255, 0, 0),      # 1 red
    (0, 255, 0),      # 2 green
    (0, 0, 255),      # 3 blue
    (255, 255, 0),    # 4 yellow
    (255, 255, 255),  # 5 white
    (128, 128, 128),  # 6 gray
    (0, 255, 255),    # 7 cyan
]

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
YELLOW = (255, 255, 0, 255)
CLEAR = (0, 0, 0, 0)


@dataclass
class FrameSpec:
    indices: np.ndarray
    left: int = 0
    top: int = 0
    disposal: int = 0
    delay: int = 10
    transparent_index: Optional[int] = None
    local_palette: Optional[Sequence[RgbColor]] = None
    interlaced: bool = False
    lzw_data: Optional[bytes] = None


def solid(width: int, height: int, index: int) -> np.ndarray:
    return np.full((height, width), index, dtype=np.uint8)


def _table_bits(palette: Sequence[RgbColor]) -> int:
    return max(1, (len(palette) - 1).bit_length())


def _table_bytes(palette: Sequence[RgbColor]) -> bytes:
    bits = _table_bits(palette)
    padded = list(palette) + [(0, 0, 0)] * ((1 << bits) - len(palette))
    return b"".join(bytes(color) for color in padded)


def _subblocks(data: bytes) -> bytes:
    out = bytearray()
    for start in range(0, len(data), 255):
        chunk = data[start:start + 255]
        out.append(len(chunk))
        out += chunk
    out.append(0)
    return bytes(out)


def _interlace_rows(indices: np.ndarray) -> np.ndarray:
    height = indices.shape[0]
    order: List[int] = []
    for start, step in ((0, 8), (4, 8), (2, 4), (1, 2)):
        order.extend(range(start, height, step))
    return indices[order]


def encode_frame(frame_spec: FrameSpec, global_palette: Optional[Sequence[RgbColor]]) -> bytes:
    height, width = frame_spec.indices.shape
    out = bytearray()

    packed = (frame_spec.disposal & 0b111) << 2
    if frame_spec.transparent_index is not None:
        packed |= 1
    out += bytes((0x21, 0xF9, 4, packed)) + struct.pack("<H", frame_spec.delay)
    out += bytes((frame_spec.transparent_index or 0, 0))

    descriptor = 0
    palette = global_palette
    if frame_spec.local_palette is not None:
        palette = frame_spec.local_palette
        descriptor |= 0x80 | (_table_bits(palette) - 1)
    if frame_spec.interlaced:
        descriptor |= 0x40
    out += struct.pack("<B4HB", 0x2C, frame_spec.left, frame_spec.top, width, height, descriptor)
    if frame_spec.local_palette is not None:
        out += _table_bytes(frame_spec.local_palette)

    min_code_size = max(2, _table_bits(palette or PALETTE))
    rows = _interlace_rows(frame_spec.indices) if frame_spec.interlaced else frame_spec.indices
    data = frame_spec.lzw_data
    if data is None:
        data = lzw_encode(np.ascontiguousarray(rows, dtype=np.uint8).tobytes(), min_code_size)
    out.append(min_code_size)
    out += _subblocks(data)
    return bytes(out)


def build_gif(
    width: int,
    height: int,
    frames: Sequence[FrameSpec],
    palette: Optional[Sequence[RgbColor]] = PALETTE,
    loop: Optional[int] = 0,
    version: bytes = b"89a",
    trailer: bool = True,
) -> bytes:
    """Assemble a complete GIF from frame specs."""
    out = bytearray(b"GIF" + version)
    packed = 0
    if palette is not None:
        packed = 0x80 | 0x70 | (_table_bits(palette) - 1)
    out += struct.pack("<2H3B", width, height, packed, 0, 0)
    if palette is not None:
        out += _table_bytes(palette)
    if loop is not None:
        out += bytes((0x21, 0xFF, 11)) + b"NETSCAPE2.0" + bytes((3, 1)) + struct.pack("<H", loop) + b"\x00"
    for frame_spec in frames:
        out += encode_frame(frame_spec, palette)
    if trailer:
        out.append(0x3B)
    return bytes(out)


def scenario_three_frame_gif() -> bytes:
    """10x10: red full frame, green 4x4 at (2,2) restore-to-background, blue 2x2 at (0,0) leave."""
    return build_gif(10, 10, [
        FrameSpec(solid(10, 10, 1), disposal=0),
        FrameSpec(solid(4, 4, 2), left=2, top=2, disposal=2),
        FrameSpec(solid(2, 2, 3), left=0, top=0, disposal=1),
    ])


def restore_previous_gif() -> bytes:
    """6x6: red base, green 2x2 at (1,1) restore-to-previous, blue 2x2 at (3,3) with one transparent pixel."""
    blue = solid(2, 2, 3)
    blue[0, 0] = 7
    return build_gif(6, 6, [
        FrameSpec(solid(6, 6, 1), disposal=1),
        FrameSpec(solid(2, 2, 2), left=1, top=1, disposal=3),
        FrameSpec(blue, left=3, top=3, disposal=0, transparent_index=7),
    ])


def mixed_disposal_gif() -> bytes:
    """8x8 with every disposal method, transparency, a local palette and interlacing."""
    base = np.arange(64, dtype=np.uint8).reshape(8, 8) % 7
    overlay = solid(4, 3, 4)
    overlay[1, 1] = 0
    striped = np.array([[5, 6, 5], [6, 5, 6], [5, 5, 5], [6, 6, 6], [1, 2, 3]], dtype=np.uint8)
    return build_gif(8, 8, [
        FrameSpec(base, disposal=1, delay=5),
        FrameSpec(overlay, left=2, top=1, disposal=3, delay=7, transparent_index=0),
        FrameSpec(solid(3, 3, 2), left=5, top=5, disposal=2, delay=0),
        FrameSpec(
            solid(2, 2, 1),
            left=0,
            top=6,
            disposal=0,
            delay=12,
            local_palette=[(10, 20, 30), (40, 50, 60)],
        ),
        FrameSpec(striped, left=4, top=0, disposal=1, delay=3, interlaced=True),
    ])
