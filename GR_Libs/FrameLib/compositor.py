"""
Disposal-Aware Compositor.

Walks decoded frames in order over a single logical-screen canvas and records
what is visible after each frame is drawn. Each step is a pure function over
an explicit CanvasState so that the re-assembler can replay exactly the same
disposal logic.

Per frame i:
    1. i == 0: start from a fully transparent canvas
    2. otherwise apply the disposal of frame i-1
       - leave in place / unspecified: nothing
       - restore to background: clear frame i-1's rectangle to transparent
       - restore to previous: restore the whole canvas from the snapshot
    3. if frame i is restore-to-previous, snapshot the canvas before drawing
    4. draw frame i's patch into its rectangle
    5. resample to the target size when it differs from the logical screen
    6. append a copy of the canvas

Only one snapshot is kept at a time (the most recent save point).

Example:
    >>> result = extract_gif_frames(gif_bytes)
    >>> len(result.extracted_frames) == result.original_gif_data.frame_count
    True
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from GR_Libs.errors import ExtractionError
from GR_Libs.GifCodecLib.gif_decoder import decode_gif
from GR_Libs.GifCodecLib.gif_models import DisposalMethod, Frame, FrameRect
from GR_Libs.FrameLib.frame_models import (
    CanvasState,
    CompositedFrame,
    ExtractionResult,
    OriginalFrameRecord,
    OriginalGifData,
)

logger = logging.getLogger(__name__)


def blank_canvas(width: int, height: int) -> CanvasState:
    """Create a fully transparent canvas state with no snapshot."""
    if width <= 0 or height <= 0:
        raise ValueError(f"canvas size must be > 0, got {width}x{height}")
    return CanvasState.blank(width, height)


def apply_disposal(state: CanvasState, previous: OriginalFrameRecord) -> CanvasState:
    """Apply the disposal method of the previously drawn frame."""
    if previous.disposal == DisposalMethod.RESTORE_TO_BACKGROUND:
        clipped = previous.rect.clip(state.width, state.height)
        if clipped is None:
            return state
        canvas = state.canvas.copy()
        canvas[clipped.top:clipped.top + clipped.height, clipped.left:clipped.left + clipped.width] = 0
        return state.with_canvas(canvas)

    if previous.disposal == DisposalMethod.RESTORE_TO_PREVIOUS:
        if state.snapshot is None:
            return state
        return state.with_canvas(state.snapshot.copy())

    return state


def prepare_canvas(
    state: CanvasState,
    index: int,
    records: Sequence[OriginalFrameRecord],
) -> CanvasState:
    """
    Bring the canvas to the state frame ``index`` is drawn onto.

    Covers steps 1-3: initial clear, disposal of the previous frame, and the
    restore-to-previous snapshot taken before the current frame draws.
    """
    if index == 0:
        state = blank_canvas(state.width, state.height)
    else:
        state = apply_disposal(state, records[index - 1])

    if records[index].disposal == DisposalMethod.RESTORE_TO_PREVIOUS:
        state = state.with_snapshot(state.canvas.copy())
    return state


def draw_patch(state: CanvasState, rect: FrameRect, patch: np.ndarray) -> CanvasState:
    """
    Copy a frame patch into its rectangle.

    Pixels with non-zero alpha replace the canvas pixel; fully transparent
    pixels (the GIF transparency index) leave the canvas as it was. The
    rectangle is clipped to the canvas.
    """
    clipped = rect.clip(state.width, state.height)
    if clipped is None:
        return state

    source = patch[
        clipped.top - rect.top:clipped.top - rect.top + clipped.height,
        clipped.left - rect.left:clipped.left - rect.left + clipped.width,
    ]
    canvas = state.canvas.copy()
    region = canvas[clipped.top:clipped.top + clipped.height, clipped.left:clipped.left + clipped.width]
    visible = source[..., 3] > 0
    region[visible] = source[visible]
    return state.with_canvas(canvas)


def resample_canvas(canvas: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resize an RGBA buffer to (width, height) with nearest-neighbour sampling."""
    width, height = size
    if canvas.shape[1] == width and canvas.shape[0] == height:
        return canvas.copy()
    image = Image.fromarray(np.ascontiguousarray(canvas), "RGBA")
    return np.array(image.resize((width, height), Image.Resampling.NEAREST), dtype=np.uint8)


def records_from_frames(frames: Sequence[Frame]) -> List[OriginalFrameRecord]:
    """
    Keep the frames that can be composited, in order.

    Frames with an empty or inconsistent patch are skipped with a warning.
    """
    records: List[OriginalFrameRecord] = []
    for number, frame in enumerate(frames):
        expected = (frame.rect.height, frame.rect.width, 4)
        if frame.is_empty:
            logger.warning(f"Skipping frame {number} due to missing patch data")
            continue
        if frame.patch.shape != expected:
            logger.warning(f"Skipping frame {number}: patch shape {frame.patch.shape} != {expected}")
            continue
        records.append(OriginalFrameRecord.from_frame(frame))
    return records


def composite_frames(
    records: Sequence[OriginalFrameRecord],
    width: int,
    height: int,
    target_size: Optional[Tuple[int, int]] = None,
) -> List[CompositedFrame]:
    """
    Composite every record onto a running canvas.

    Args:
        records: Frames to draw, in temporal order
        width: Logical screen width
        height: Logical screen height
        target_size: Optional (width, height) of the produced frames

    Returns:
        One full-canvas RGBA copy per record
    """
    state = blank_canvas(width, height)
    resize_to = target_size if target_size and tuple(target_size) != (width, height) else None

    composited: List[CompositedFrame] = []
    for index, record in enumerate(records):
        state = prepare_canvas(state, index, records)
        state = draw_patch(state, record.rect, record.patch)
        if resize_to is not None:
            composited.append(resample_canvas(state.canvas, resize_to))
        else:
            composited.append(state.canvas.copy())
    return composited


def extract_gif_frames(
    data: bytes,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
) -> ExtractionResult:
    """
    Decode a GIF and composite every surviving frame.

    Args:
        data: GIF file contents
        target_width: Width of the composited frames (default: logical width)
        target_height: Height of the composited frames (default: logical height)

    Returns:
        ExtractionResult with aligned composited frames and original records

    Raises:
        DecodeError: If the GIF cannot be decoded
        ExtractionError: If no frame survives
        ValueError: If a target dimension is not positive
    """
    if (target_width is not None and target_width <= 0) or (target_height is not None and target_height <= 0):
        raise ValueError(f"target size must be > 0, got {target_width}x{target_height}")

    gif = decode_gif(data)
    records = records_from_frames(gif.frames)
    if not records:
        raise ExtractionError("No valid frames could be extracted from the GIF")

    target_size = (target_width or gif.width, target_height or gif.height)
    frames = composite_frames(records, gif.width, gif.height, target_size)
    if not frames:
        raise ExtractionError("No valid frames could be extracted from the GIF")

    logger.info(
        f"Extracted {len(frames)} frame(s) from {gif.width}x{gif.height} GIF "
        f"({len(gif.frames) - len(records)} skipped)"
    )
    return ExtractionResult(
        extracted_frames=frames,
        original_gif_data=OriginalGifData(
            width=gif.width,
            height=gif.height,
            frames=records,
            global_color_table=gif.global_color_table,
            loop_count=gif.loop_count,
        ),
    )
