"""
Image editing data models for Gif Retouch.

This module defines the value types shared by the mask engine and the
pixel transforms.

Classes:
    BlurType: The three selectable masked transforms

Functions:
    validate_intensity: Check a blur intensity is an integer in [1, 50]

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
    Point: (x, y) in canvas or viewport coordinates
    ViewportRect: (left, top, width, height) of the rendered canvas element
"""

import numbers
from enum import Enum
from typing import Any, Tuple

from GR_Libs.constants import MAX_BLUR_INTENSITY, MIN_BLUR_INTENSITY

RgbaColor = Tuple[int, int, int, int]
Point = Tuple[float, float]
ViewportRect = Tuple[float, float, float, float]


class BlurType(str, Enum):
    GAUSSIAN = "gaussian"
    PIXELATED = "pixelated"
    MOSAIC = "mosaic"

    @classmethod
    def parse(cls, value: Any) -> "BlurType":
        """
        Resolve a blur type from an enum member or its name.

        Raises:
            ValueError: If the value names no blur type
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        for member in cls:
            if member.value == name:
                return member
        valid = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown blur_type: {value}. Valid types: {valid}")


def validate_intensity(intensity: Any) -> int:
    """
    Validate a blur intensity.

    Raises:
        TypeError: If intensity is not an integer
        ValueError: If intensity is outside [1, 50]
    """
    if isinstance(intensity, bool) or not isinstance(intensity, numbers.Integral):
        raise TypeError(f"intensity must be an int, got {type(intensity)}")
    if not (MIN_BLUR_INTENSITY <= intensity <= MAX_BLUR_INTENSITY):
        raise ValueError(
            f"intensity must be {MIN_BLUR_INTENSITY}-{MAX_BLUR_INTENSITY}, got {intensity}"
        )
    return int(intensity)
