"""
ImageEditingLib - Mask painting and masked pixel transforms

This module provides the mask engine, the three blur transforms and
the transform registry for Gif Retouch.
"""

from GR_Libs.ImageEditingLib.image_models import (
    BlurType,
    Point,
    RgbaColor,
    ViewportRect,
    validate_intensity,
)
from GR_Libs.ImageEditingLib.mask_engine import (
    MaskBuffer,
    render_mask_overlay,
    viewport_to_canvas,
)
from GR_Libs.ImageEditingLib.transform_registry import (
    TransformRegistry,
    get_default_registry,
    register_default_transforms,
)
from GR_Libs.ImageEditingLib.pixel_transforms import (
    apply_masked_transform,
    block_average,
    block_size_for,
    block_snap,
    neighborhood_average,
    preview_frame,
    process_all_frames,
)

__all__ = [
    "BlurType",
    "Point",
    "RgbaColor",
    "ViewportRect",
    "validate_intensity",
    "MaskBuffer",
    "render_mask_overlay",
    "viewport_to_canvas",
    "TransformRegistry",
    "get_default_registry",
    "register_default_transforms",
    "apply_masked_transform",
    "block_average",
    "block_size_for",
    "block_snap",
    "neighborhood_average",
    "preview_frame",
    "process_all_frames",
]
