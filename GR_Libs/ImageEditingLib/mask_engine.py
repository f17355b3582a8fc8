"""
Mask Engine.

A persistent per-pixel mask marking which regions of every frame a transform
applies to. The mask is an RGBA buffer at composite size; a pixel is masked
when its alpha is non-zero. Painting composites brush circles "over" the
existing mask (channel-wise maximum), so strokes only ever add coverage;
``clear()`` is the only way to remove it.

Coordinates are canvas pixel coordinates. Pointer positions reported in a
scaled display must be converted with ``viewport_to_canvas`` first.

Example:
    >>> mask = MaskBuffer(320, 240)
    >>> added = mask.paint((100, 80), radius=10)
    >>> mask.paint_stroke([(10, 10), (200, 10)], radius=5)
    >>> preview = render_mask_overlay(frame, mask)
"""

import math
from typing import Iterable, Sequence, Tuple

import numpy as np
from PIL import Image

from GR_Libs.constants import (
    MASK_OVERLAY_COLOR,
    MASK_OVERLAY_OPACITY,
    MASK_PAINT_COLOR,
    RGBA_CHANNELS,
)
from GR_Libs.errors import PreconditionError
from GR_Libs.ImageEditingLib.image_models import Point, RgbaColor, ViewportRect


class MaskBuffer:
    """
    RGBA mask buffer with circular brush painting.

    Attributes:
        width: Mask width in pixels
        height: Mask height in pixels
    """

    def __init__(self, width: int, height: int, color: RgbaColor = MASK_PAINT_COLOR):
        if width <= 0 or height <= 0:
            raise ValueError(f"mask size must be > 0, got {width}x{height}")
        if len(color) != RGBA_CHANNELS or color[3] == 0:
            raise ValueError(f"paint color must be RGBA with non-zero alpha, got {color}")

        self.width = int(width)
        self.height = int(height)
        self._color = np.array(color, dtype=np.uint8)
        self._pixels = np.zeros((self.height, self.width, RGBA_CHANNELS), dtype=np.uint8)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def pixels(self) -> np.ndarray:
        """Read-only view of the RGBA buffer."""
        view = self._pixels.view()
        view.setflags(write=False)
        return view

    def alpha(self) -> np.ndarray:
        """Snapshot of the alpha channel (height, width)."""
        return self._pixels[..., 3].copy()

    def masked_count(self) -> int:
        return int(np.count_nonzero(self._pixels[..., 3]))

    def coverage(self) -> float:
        """Fraction of pixels that are masked (0.0-1.0)."""
        return self.masked_count() / float(self.width * self.height)

    def is_empty(self) -> bool:
        return not self._pixels[..., 3].any()

    def paint(self, point: Point, radius: float) -> int:
        """
        Add a filled circle to the mask.

        A pixel is covered when its centre lies within ``radius`` of
        ``point``. Circles entirely outside the canvas and non-positive
        radii leave the mask unchanged.

        Args:
            point: (x, y) in canvas pixel coordinates
            radius: Brush radius in pixels

        Returns:
            Number of pixels that became masked
        """
        x, y = float(point[0]), float(point[1])
        radius = float(radius)
        if not (radius > 0) or not (math.isfinite(x) and math.isfinite(y)):
            return 0

        x0 = max(0, int(math.floor(x - radius)))
        x1 = min(self.width, int(math.ceil(x + radius)) + 1)
        y0 = max(0, int(math.floor(y - radius)))
        y1 = min(self.height, int(math.ceil(y + radius)) + 1)
        if x0 >= x1 or y0 >= y1:
            return 0

        dx = np.arange(x0, x1, dtype=np.float64) + 0.5 - x
        dy = np.arange(y0, y1, dtype=np.float64) + 0.5 - y
        inside = dy[:, None] ** 2 + dx[None, :] ** 2 <= radius * radius
        if not inside.any():
            return 0

        region = self._pixels[y0:y1, x0:x1]
        newly_masked = int(np.count_nonzero(inside & (region[..., 3] == 0)))
        region[inside] = np.maximum(region[inside], self._color)
        return newly_masked

    def paint_stroke(self, points: Iterable[Point], radius: float) -> int:
        """
        Paint circles along a pointer path.

        Consecutive points are joined by circles spaced at most half the
        radius apart so fast pointer moves leave no gaps.

        Returns:
            Number of pixels that became masked
        """
        path = [(float(p[0]), float(p[1])) for p in points]
        if not path or not (radius > 0):
            return 0

        spacing = max(radius / 2.0, 0.5)
        total = self.paint(path[0], radius)
        for (ax, ay), (bx, by) in zip(path, path[1:]):
            steps = max(1, int(math.ceil(math.hypot(bx - ax, by - ay) / spacing)))
            for step in range(1, steps + 1):
                t = step / steps
                total += self.paint((ax + (bx - ax) * t, ay + (by - ay) * t), radius)
        return total

    def clear(self) -> None:
        self._pixels.fill(0)

    def copy(self) -> "MaskBuffer":
        clone = MaskBuffer(self.width, self.height, tuple(int(c) for c in self._color))
        clone._pixels[...] = self._pixels
        return clone

    def to_image(self) -> Image.Image:
        return Image.fromarray(self._pixels.copy(), "RGBA")


def viewport_to_canvas(
    point: Point,
    rendered_rect: ViewportRect,
    canvas_size: Tuple[int, int],
) -> Tuple[float, float]:
    """
    Convert a pointer position in display space to canvas pixel space.

    Args:
        point: (x, y) pointer position in viewport coordinates
        rendered_rect: (left, top, width, height) of the displayed canvas
        canvas_size: (width, height) of the canvas in pixels

    Returns:
        (x, y) in canvas pixel coordinates

    Raises:
        ValueError: If the rendered size is not positive
    """
    left, top, rendered_width, rendered_height = rendered_rect
    if rendered_width <= 0 or rendered_height <= 0:
        raise ValueError(f"rendered size must be > 0, got {rendered_width}x{rendered_height}")

    scale_x = canvas_size[0] / float(rendered_width)
    scale_y = canvas_size[1] / float(rendered_height)
    return (point[0] - left) * scale_x, (point[1] - top) * scale_y


def render_mask_overlay(
    frame: np.ndarray,
    mask: MaskBuffer,
    color: Sequence[int] = MASK_OVERLAY_COLOR,
    opacity: float = MASK_OVERLAY_OPACITY,
) -> Image.Image:
    """
    Draw the mask tinted on top of a frame for display.

    Args:
        frame: RGBA frame (height, width, 4)
        mask: Mask at the same size
        color: RGB tint
        opacity: Tint opacity (0.0-1.0), scaled by the mask alpha

    Returns:
        PIL Image (RGBA)

    Raises:
        PreconditionError: If the mask and frame sizes differ
        ValueError: If opacity is outside [0, 1]
    """
    if not (0.0 <= opacity <= 1.0):
        raise ValueError(f"opacity must be 0.0-1.0, got {opacity}")
    if frame.shape[:2] != (mask.height, mask.width):
        raise PreconditionError(
            f"mask size {mask.width}x{mask.height} does not match frame "
            f"{frame.shape[1]}x{frame.shape[0]}"
        )

    tint = np.zeros((mask.height, mask.width, RGBA_CHANNELS), dtype=np.uint8)
    tint[..., :3] = np.array(color[:3], dtype=np.uint8)
    tint[..., 3] = (mask.pixels[..., 3].astype(np.float32) * opacity).astype(np.uint8)

    base = Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8), "RGBA")
    return Image.alpha_composite(base, Image.fromarray(tint, "RGBA"))
