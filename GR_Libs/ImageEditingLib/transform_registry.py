"""
Transform Registry.

Maps blur type names to the pixel transform that implements them, so
``apply_masked_transform`` can dispatch on the user's blur type.

Classes:
    TransformRegistry: Blur type name -> transform function

Functions:
    get_default_registry: Shared registry holding the built-in transforms
    register_default_transforms: Register gaussian, pixelated and mosaic
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging

import numpy as np

logger = logging.getLogger(__name__)

# (frame, intensity) -> transformed frame
TransformFunction = Callable[[np.ndarray, int], np.ndarray]


def _key(blur_type: Any) -> str:
    if isinstance(blur_type, Enum):
        blur_type = blur_type.value
    return str(blur_type).strip().lower()


class TransformRegistry:
    """
    Lookup table for pixel transforms.

    Example:
        >>> registry = TransformRegistry()
        >>> registry.register("mosaic", block_average)
        >>> registry.get_transform(BlurType.MOSAIC)(frame, 10)
    """

    def __init__(self):
        self._transforms: Dict[str, TransformFunction] = {}

    def register(self, blur_type: Any, transform: TransformFunction) -> None:
        """
        Bind a transform to a blur type.

        Raises:
            ValueError: If blur_type is empty or transform is not callable
            RuntimeError: If blur_type already has a transform
        """
        name = _key(blur_type)
        if not name:
            raise ValueError("blur_type cannot be empty")
        if not callable(transform):
            raise ValueError(f"transform must be callable, got {type(transform)}")
        if name in self._transforms:
            raise RuntimeError(f"Blur type '{name}' already has a transform")

        self._transforms[name] = transform
        logger.debug(f"Registered transform for blur type: {name}")

    def get_transform(self, blur_type: Any) -> TransformFunction:
        """
        Raises:
            KeyError: If blur_type has no transform; the message lists the known types
        """
        name = _key(blur_type)
        try:
            return self._transforms[name]
        except KeyError:
            raise KeyError(
                f"No transform registered for blur type '{name}'. "
                f"Available types: {', '.join(self.list_blur_types())}"
            ) from None

    def list_blur_types(self) -> List[str]:
        return sorted(self._transforms)


_default_registry: Optional[TransformRegistry] = None


def get_default_registry() -> TransformRegistry:
    """Return the shared registry, creating it with the built-in transforms on first use."""
    global _default_registry

    if _default_registry is None:
        _default_registry = TransformRegistry()
        register_default_transforms(_default_registry)

    return _default_registry


def register_default_transforms(registry: TransformRegistry) -> None:
    # imported here: pixel_transforms imports this module
    from GR_Libs.ImageEditingLib.image_models import BlurType
    from GR_Libs.ImageEditingLib.pixel_transforms import (
        block_average,
        block_snap,
        neighborhood_average,
    )

    registry.register(BlurType.GAUSSIAN, neighborhood_average)
    registry.register(BlurType.PIXELATED, block_snap)
    registry.register(BlurType.MOSAIC, block_average)
    logger.info(f"Registered default transforms: {', '.join(registry.list_blur_types())}")
