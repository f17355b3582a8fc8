"""
Pixel Transform Operations.

Provides the three masked transforms selectable by blur type:
- gaussian: neighborhood average over radius intensity // 2, edge-clamped
- pixelated: block snap, every pixel takes its block's top-left value
- mosaic: block average, every pixel takes its block's mean

All transforms work per RGBA channel on uint8 frames and round means down.
Preview and commit share ``apply_masked_transform``; preview runs on a
scratch copy, commit rewrites the canonical frame in place.

Example:
    >>> preview = apply_masked_transform(frame, mask, "mosaic", 10)
    >>> process_all_frames(frames, mask, settings)  # commit, in place
"""

import logging
from typing import Any, List, Optional, Sequence

import numpy as np
from scipy import ndimage

from GR_Libs.constants import RGBA_CHANNELS
from GR_Libs.errors import PreconditionError
from GR_Libs.ImageEditingLib.image_models import BlurType, validate_intensity
from GR_Libs.ImageEditingLib.mask_engine import MaskBuffer
from GR_Libs.ImageEditingLib.transform_registry import TransformRegistry, get_default_registry

logger = logging.getLogger(__name__)


def _check_frame(frame: Any) -> None:
    if not isinstance(frame, np.ndarray):
        raise TypeError(f"Expected numpy array, got {type(frame)}")
    if frame.ndim != 3 or frame.shape[2] != RGBA_CHANNELS:
        raise ValueError(f"frame must be RGBA (h, w, 4), got shape {frame.shape}")


def block_size_for(intensity: int) -> int:
    return max(1, intensity // 2)


# ============================================================================
# Transforms
# ============================================================================

def neighborhood_average(frame: np.ndarray, intensity: int) -> np.ndarray:
    """
    Average each channel over a square neighborhood.

    The neighborhood has radius ``intensity // 2``; samples beyond the image
    edge repeat the nearest edge pixel, so any radius is safe at any pixel.

    Args:
        frame: RGBA uint8 array (h, w, 4)
        intensity: Blur intensity (1-50)

    Returns:
        New uint8 array of the same shape

    Raises:
        ValueError: If intensity is out of range or frame is not RGBA
        TypeError: If frame is not an array or intensity not an int
    """
    _check_frame(frame)
    radius = validate_intensity(intensity) // 2
    if radius == 0:
        return frame.copy()

    size = 2 * radius + 1
    weights = np.ones(size, dtype=np.int64)
    sums = frame.astype(np.int64)
    for axis in (0, 1):
        sums = ndimage.correlate1d(sums, weights, axis=axis, mode="nearest")
    return (sums // (size * size)).astype(np.uint8)


def block_snap(frame: np.ndarray, intensity: int) -> np.ndarray:
    """Fill every block of side ``max(1, intensity // 2)`` with its top-left pixel."""
    _check_frame(frame)
    block = block_size_for(validate_intensity(intensity))
    if block == 1:
        return frame.copy()

    height, width = frame.shape[:2]
    rows = (np.arange(height) // block) * block
    cols = (np.arange(width) // block) * block
    return frame[rows[:, None], cols[None, :]]


def block_average(frame: np.ndarray, intensity: int) -> np.ndarray:
    """Fill every block with the floor of its mean; edge blocks are clipped."""
    _check_frame(frame)
    block = block_size_for(validate_intensity(intensity))
    if block == 1:
        return frame.copy()

    height, width = frame.shape[:2]
    row_starts = np.arange(0, height, block)
    col_starts = np.arange(0, width, block)
    row_counts = np.diff(np.append(row_starts, height))
    col_counts = np.diff(np.append(col_starts, width))

    sums = np.add.reduceat(frame.astype(np.int64), row_starts, axis=0)
    sums = np.add.reduceat(sums, col_starts, axis=1)
    means = sums // (row_counts[:, None, None] * col_counts[None, :, None])

    expanded = np.repeat(np.repeat(means, row_counts, axis=0), col_counts, axis=1)
    return expanded.astype(np.uint8)


# ============================================================================
# Masked application
# ============================================================================

def apply_masked_transform(
    frame: np.ndarray,
    mask: Optional[MaskBuffer],
    blur_type: Any,
    intensity: int,
    *,
    in_place: bool = False,
    mask_alpha: Optional[np.ndarray] = None,
    registry: Optional[TransformRegistry] = None,
) -> np.ndarray:
    """
    Replace masked pixels with the transformed value.

    Pixels with mask alpha > 0 take the output of the selected transform;
    all other pixels pass through unchanged.

    Args:
        frame: RGBA uint8 frame (h, w, 4)
        mask: Mask at frame size (ignored when mask_alpha is given)
        blur_type: BlurType or its name
        intensity: Blur intensity (1-50)
        in_place: Write into ``frame`` instead of a scratch copy
        mask_alpha: Pre-read mask alpha (h, w), shared across a batch
        registry: Transform registry (default: global registry)

    Returns:
        The scratch copy, or ``frame`` itself when in_place

    Raises:
        PreconditionError: If no mask is given or its size differs from the frame
        ValueError: If blur_type is unknown or intensity out of range
    """
    _check_frame(frame)
    blur_type = BlurType.parse(blur_type)
    intensity = validate_intensity(intensity)

    if mask_alpha is None:
        if mask is None:
            raise PreconditionError("a mask or mask_alpha is required")
        mask_alpha = mask.alpha()
    if mask_alpha.shape != frame.shape[:2]:
        raise PreconditionError(
            f"mask size {mask_alpha.shape[1]}x{mask_alpha.shape[0]} does not match "
            f"frame {frame.shape[1]}x{frame.shape[0]}"
        )

    target = frame if in_place else frame.copy()
    selected = mask_alpha > 0
    if not selected.any():
        return target

    if registry is None:
        registry = get_default_registry()
    transform = registry.get_transform(blur_type)
    transformed = transform(frame, intensity)
    target[selected] = transformed[selected]
    return target


def preview_frame(
    frame: np.ndarray,
    mask: MaskBuffer,
    settings: Any,
    registry: Optional[TransformRegistry] = None,
) -> np.ndarray:
    """Transform a scratch copy of one frame with the given BlurSettings."""
    return apply_masked_transform(
        frame, mask, settings.blur_type, settings.intensity, registry=registry
    )


def process_all_frames(
    frames: Sequence[np.ndarray],
    mask: MaskBuffer,
    settings: Any,
    in_place: bool = True,
    registry: Optional[TransformRegistry] = None,
) -> List[np.ndarray]:
    """
    Apply the masked transform to every frame.

    The mask alpha is read once and shared by all frames.

    Args:
        frames: Composited frames
        mask: Mask at frame size
        settings: BlurSettings (blur_type, intensity)
        in_place: Rewrite the given frames instead of returning copies
        registry: Transform registry (default: global registry)

    Returns:
        The processed frames, in order
    """
    mask_alpha = mask.alpha()
    if not mask_alpha.any():
        logger.debug("Mask is empty; nothing to process")
        return list(frames) if in_place else [frame.copy() for frame in frames]

    processed = [
        apply_masked_transform(
            frame,
            None,
            settings.blur_type,
            settings.intensity,
            in_place=in_place,
            mask_alpha=mask_alpha,
            registry=registry,
        )
        for frame in frames
    ]
    logger.debug(f"Applied {BlurType.parse(settings.blur_type).value} to {len(processed)} frame(s)")
    return processed
