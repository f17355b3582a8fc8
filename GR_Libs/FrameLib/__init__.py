"""
FrameLib - Disposal-aware compositing and re-assembly

This module turns decoded GIF frames into full-canvas composites and
turns edited composites back into frame-local output frames.
"""

from GR_Libs.FrameLib.frame_models import (
    CanvasState,
    CompositedFrame,
    ExtractionResult,
    OriginalFrameRecord,
    OriginalGifData,
    check_frame_alignment,
)
from GR_Libs.FrameLib.compositor import (
    apply_disposal,
    blank_canvas,
    composite_frames,
    draw_patch,
    extract_gif_frames,
    prepare_canvas,
    records_from_frames,
    resample_canvas,
)
from GR_Libs.FrameLib.reassembler import extract_region, reassemble_frames, reconstruct_gif

__all__ = [
    "CanvasState",
    "CompositedFrame",
    "ExtractionResult",
    "OriginalFrameRecord",
    "OriginalGifData",
    "check_frame_alignment",
    "apply_disposal",
    "blank_canvas",
    "composite_frames",
    "draw_patch",
    "extract_gif_frames",
    "prepare_canvas",
    "records_from_frames",
    "resample_canvas",
    "extract_region",
    "reassemble_frames",
    "reconstruct_gif",
]
