"""
Frame Re-assembler.

Pulls edits made on full-canvas composited frames back into the frame-local
rectangles of the source GIF, so the re-encoded file keeps the original
frame count, rectangles, delays and disposal methods.

For each frame the compositor's canvas preparation is replayed on a canvas
built from the frames already produced. The original rectangle is then cut
out of the edited composite. Pixels that were transparent in the original
patch, and that the edit left equal to the pre-draw canvas, stay
transparent; this keeps the frame-delta structure of the source and makes
an unedited round trip reproduce the original patches exactly.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from GR_Libs.errors import PreconditionError
from GR_Libs.GifCodecLib.gif_encoder import GifEncoder, encode_gif
from GR_Libs.GifCodecLib.gif_models import OutputFrame
from GR_Libs.FrameLib.compositor import blank_canvas, draw_patch, prepare_canvas, resample_canvas
from GR_Libs.FrameLib.frame_models import (
    CompositedFrame,
    OriginalFrameRecord,
    OriginalGifData,
    check_frame_alignment,
)

logger = logging.getLogger(__name__)


def _to_logical_size(frame: CompositedFrame, width: int, height: int) -> np.ndarray:
    if frame.ndim != 3 or frame.shape[2] != 4:
        raise PreconditionError(f"edited frame must be RGBA (h, w, 4), got shape {frame.shape}")
    if frame.shape[:2] == (height, width):
        return frame
    logger.debug(f"Resampling edited frame {frame.shape[1]}x{frame.shape[0]} back to {width}x{height}")
    return resample_canvas(frame, (width, height))


def extract_region(
    edited: np.ndarray,
    before: np.ndarray,
    record: OriginalFrameRecord,
) -> np.ndarray:
    """
    Cut a record's rectangle out of an edited composite.

    Args:
        edited: Edited full canvas (logical size)
        before: Canvas the frame is drawn onto (after disposal of the previous frame),
                rebuilt from the output frames produced so far
        record: Original frame record

    Returns:
        Frame-local RGBA pixels (rect.height, rect.width, 4). Parts of the
        rectangle outside the logical screen keep the original patch pixels.
    """
    rect = record.rect
    pixels = np.array(record.patch, dtype=np.uint8, copy=True)
    clipped = rect.clip(before.shape[1], before.shape[0])
    if clipped is None:
        return pixels

    canvas_rows = slice(clipped.top, clipped.top + clipped.height)
    canvas_cols = slice(clipped.left, clipped.left + clipped.width)
    patch_rows = slice(clipped.top - rect.top, clipped.top - rect.top + clipped.height)
    patch_cols = slice(clipped.left - rect.left, clipped.left - rect.left + clipped.width)

    edited_region = edited[canvas_rows, canvas_cols]
    original_region = pixels[patch_rows, patch_cols]
    # before is rebuilt from the edited output frames, not the pristine ones
    untouched_hole = (original_region[..., 3] == 0) & np.all(
        edited_region == before[canvas_rows, canvas_cols], axis=-1
    )
    pixels[patch_rows, patch_cols] = np.where(untouched_hole[..., None], original_region, edited_region)
    return pixels


def reassemble_frames(
    edited_frames: Sequence[CompositedFrame],
    original_gif_data: Optional[OriginalGifData],
) -> List[OutputFrame]:
    """
    Turn edited composited frames into encoder-ready output frames.

    Args:
        edited_frames: Edited composites, aligned with the original records
        original_gif_data: Records from the extraction that produced the frames

    Returns:
        One OutputFrame per record with original rect/delay/disposal/transparency

    Raises:
        PreconditionError: If the original data is missing, there are no
                           frames, the counts differ, or a frame is not RGBA
    """
    check_frame_alignment(edited_frames, original_gif_data)

    width, height = original_gif_data.width, original_gif_data.height
    records = original_gif_data.frames
    state = blank_canvas(width, height)

    output: List[OutputFrame] = []
    for index, record in enumerate(records):
        state = prepare_canvas(state, index, records)
        edited = _to_logical_size(np.asarray(edited_frames[index]), width, height)
        pixels = extract_region(edited, state.canvas, record)
        state = draw_patch(state, record.rect, pixels)
        output.append(
            OutputFrame(
                pixels=pixels,
                rect=record.rect,
                disposal=record.disposal,
                delay=record.delay,
                transparent_index=record.transparent_index,
            )
        )

    logger.debug(f"Re-assembled {len(output)} frame(s) at {width}x{height}")
    return output


def reconstruct_gif(
    edited_frames: Sequence[CompositedFrame],
    original_gif_data: Optional[OriginalGifData],
    gif_settings: Optional[Any] = None,
    on_encoder: Optional[Callable[[GifEncoder], None]] = None,
) -> bytes:
    """
    Re-assemble edited frames and encode them into GIF bytes.

    Args:
        edited_frames: Edited composites
        original_gif_data: Records from the matching extraction
        gif_settings: GifSettings (quality, dither, repeat); defaults when None
        on_encoder: Passed to encode_gif; receives the encoder before it renders

    Raises:
        PreconditionError: See reassemble_frames
        EncodeAbort: If the encoder aborted
    """
    output_frames = reassemble_frames(edited_frames, original_gif_data)
    return encode_gif(
        output_frames,
        original_gif_data.width,
        original_gif_data.height,
        gif_settings,
        on_encoder=on_encoder,
    )
