"""
Frame and canvas data models for Gif Retouch.

Classes:
    CanvasState: The running RGBA canvas plus the single restore-to-previous snapshot
    OriginalFrameRecord: Per-frame data kept from decode for re-assembly
    OriginalGifData: Logical screen plus the ordered frame records
    ExtractionResult: Composited frames paired with their original records

Type Aliases:
    CompositedFrame: Full-canvas RGBA uint8 array (height, width, 4)

Functions:
    check_frame_alignment: Enforce len(frames) == len(records)
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

import numpy as np

from GR_Libs.constants import RGBA_CHANNELS
from GR_Libs.errors import PreconditionError
from GR_Libs.GifCodecLib.gif_models import DisposalMethod, Frame, FrameRect, RgbColor

CompositedFrame = np.ndarray


@dataclass(frozen=True)
class CanvasState:
    """Immutable compositor state; every step returns a new instance."""
    canvas: np.ndarray
    snapshot: Optional[np.ndarray] = None

    @classmethod
    def blank(cls, width: int, height: int) -> "CanvasState":
        return cls(canvas=np.zeros((height, width, RGBA_CHANNELS), dtype=np.uint8))

    @property
    def width(self) -> int:
        return self.canvas.shape[1]

    @property
    def height(self) -> int:
        return self.canvas.shape[0]

    def with_canvas(self, canvas: np.ndarray) -> "CanvasState":
        return replace(self, canvas=canvas)

    def with_snapshot(self, snapshot: Optional[np.ndarray]) -> "CanvasState":
        return replace(self, snapshot=snapshot)


@dataclass(frozen=True)
class OriginalFrameRecord:
    patch: np.ndarray
    rect: FrameRect
    disposal: DisposalMethod = DisposalMethod.UNSPECIFIED
    delay: int = 0
    transparent_index: Optional[int] = None

    @classmethod
    def from_frame(cls, frame: Frame) -> "OriginalFrameRecord":
        patch = np.array(frame.patch, dtype=np.uint8, copy=True)
        patch.setflags(write=False)
        return cls(
            patch=patch,
            rect=frame.rect,
            disposal=frame.disposal,
            delay=frame.delay,
            transparent_index=frame.transparent_index,
        )


@dataclass
class OriginalGifData:
    width: int
    height: int
    frames: List[OriginalFrameRecord] = field(default_factory=list)
    global_color_table: Optional[List[RgbColor]] = None
    loop_count: Optional[int] = None

    @property
    def frame_count(self) -> int:
        return len(self.frames)


@dataclass
class ExtractionResult:
    extracted_frames: List[CompositedFrame]
    original_gif_data: OriginalGifData

    def __post_init__(self) -> None:
        check_frame_alignment(self.extracted_frames, self.original_gif_data)


def check_frame_alignment(
    frames: Sequence[CompositedFrame],
    original_gif_data: Optional[OriginalGifData],
) -> None:
    """
    Verify that composited frames and original records line up one to one.

    Raises:
        PreconditionError: If the original data is missing, there are no
                           frames, or the counts differ
    """
    if original_gif_data is None:
        raise PreconditionError("no original GIF data; extract frames first")
    if not frames:
        raise PreconditionError("no composited frames")
    if len(frames) != original_gif_data.frame_count:
        raise PreconditionError(
            f"frame count mismatch: {len(frames)} composited frame(s) "
            f"vs {original_gif_data.frame_count} original record(s)"
        )
