"""
GIF data models for Gif Retouch.

This module defines the decoded representation of an animated GIF.

Classes:
    DisposalMethod: Per-frame disposal instruction from the graphic control extension
    FrameRect: Sub-rectangle a frame occupies within the logical screen
    Frame: One decoded image block (immutable)
    DecodedGif: Logical screen, color table and ordered frames
    OutputFrame: Frame-local pixels and metadata handed to the encoder

Type Aliases:
    RgbColor: A tuple of 3 integers (0-255)
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple

import numpy as np

RgbColor = Tuple[int, int, int]


class DisposalMethod(IntEnum):
    UNSPECIFIED = 0
    LEAVE_IN_PLACE = 1
    RESTORE_TO_BACKGROUND = 2
    RESTORE_TO_PREVIOUS = 3

    @classmethod
    def from_code(cls, code: int) -> "DisposalMethod":
        """Map a raw 3-bit disposal code; reserved codes 4-7 act as unspecified."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNSPECIFIED


@dataclass(frozen=True)
class FrameRect:
    width: int
    height: int
    left: int
    top: int

    @property
    def area(self) -> int:
        return self.width * self.height

    def clip(self, canvas_width: int, canvas_height: int) -> Optional["FrameRect"]:
        """Return the part of this rectangle inside the canvas, or None."""
        left = max(0, self.left)
        top = max(0, self.top)
        right = min(canvas_width, self.left + self.width)
        bottom = min(canvas_height, self.top + self.height)
        if right <= left or bottom <= top:
            return None
        return FrameRect(right - left, bottom - top, left, top)


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class Frame:
    """One decoded image block.

    Attributes:
        index_data: Palette indices, one byte per pixel, row-major (de-interlaced)
        patch: RGBA pixels (height, width, 4); transparent index -> (0, 0, 0, 0)
        rect: Placement within the logical screen
        disposal: Disposal method requested by the graphic control extension
        delay: Delay in hundredths of a second, verbatim from the file
        transparent_index: Transparent palette index, or None
        interlaced: Whether the image data was stored interlaced
        color_table: The color table that was active for this frame
    """
    index_data: bytes
    patch: np.ndarray
    rect: FrameRect
    disposal: DisposalMethod = DisposalMethod.UNSPECIFIED
    delay: int = 0
    transparent_index: Optional[int] = None
    interlaced: bool = False
    color_table: Optional[Tuple[RgbColor, ...]] = None

    def __post_init__(self) -> None:
        _readonly(self.patch)

    @property
    def is_empty(self) -> bool:
        return self.patch.size == 0


@dataclass
class DecodedGif:
    width: int
    height: int
    global_color_table: Optional[List[RgbColor]] = None
    background_index: int = 0
    loop_count: Optional[int] = None
    frames: List[Frame] = field(default_factory=list)

    @property
    def frame_count(self) -> int:
        return len(self.frames)


@dataclass(frozen=True)
class OutputFrame:
    """A frame ready for encoding: frame-local RGBA pixels plus original metadata.

    Attributes:
        pixels: RGBA pixels (rect.height, rect.width, 4)
        rect: Placement within the logical screen
        disposal: Disposal method to write
        delay: Delay in hundredths of a second
        transparent_index: Transparent index of the source frame, or None
    """
    pixels: np.ndarray
    rect: FrameRect
    disposal: DisposalMethod = DisposalMethod.UNSPECIFIED
    delay: int = 0
    transparent_index: Optional[int] = None

    def __post_init__(self) -> None:
        expected = (self.rect.height, self.rect.width, 4)
        if self.pixels.shape != expected:
            raise ValueError(f"pixels shape {self.pixels.shape} does not match rect {expected}")
