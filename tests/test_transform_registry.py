"""
Tests for the Transform Registry.

Tests cover:
- Registration and lookup by name or BlurType
- Error handling
- The shared default registry
"""

import unittest

import numpy as np
import pytest

from GR_Libs.ImageEditingLib.image_models import BlurType
from GR_Libs.ImageEditingLib.pixel_transforms import block_average, block_snap, neighborhood_average
from GR_Libs.ImageEditingLib.transform_registry import (
    TransformRegistry,
    get_default_registry,
    register_default_transforms,
)


def invert(frame, intensity):
    return 255 - frame


class TestTransformRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = TransformRegistry()

    def test_starts_empty(self):
        self.assertEqual(self.registry.list_blur_types(), [])

    def test_register_and_lookup(self):
        self.registry.register("invert", invert)
        transform = self.registry.get_transform("invert")
        self.assertTrue(np.all(transform(np.zeros((2, 2, 4), dtype=np.uint8), 5) == 255))

    def test_names_are_case_insensitive(self):
        self.registry.register("Invert", invert)
        self.assertIs(self.registry.get_transform(" INVERT "), invert)

    def test_register_enum_member(self):
        self.registry.register(BlurType.MOSAIC, block_average)
        self.assertIs(self.registry.get_transform("mosaic"), block_average)

    def test_list_blur_types_sorted(self):
        for name in ("zeta", "alpha", "mid"):
            self.registry.register(name, invert)
        self.assertEqual(self.registry.list_blur_types(), ["alpha", "mid", "zeta"])


class TestRegistryErrors:

    @pytest.fixture
    def registry(self):
        registry = TransformRegistry()
        registry.register("invert", invert)
        return registry

    def test_empty_name(self, registry):
        with pytest.raises(ValueError):
            registry.register("  ", invert)

    def test_non_callable(self, registry):
        with pytest.raises(ValueError):
            registry.register("sepia", "not callable")

    def test_duplicate(self, registry):
        with pytest.raises(RuntimeError):
            registry.register("INVERT", invert)

    def test_missing_lists_available(self, registry):
        with pytest.raises(KeyError, match="invert"):
            registry.get_transform("sepia")


class TestDefaultRegistry(unittest.TestCase):

    def test_singleton(self):
        self.assertIs(get_default_registry(), get_default_registry())

    def test_built_in_transforms(self):
        registry = get_default_registry()
        self.assertEqual(registry.list_blur_types(), ["gaussian", "mosaic", "pixelated"])
        self.assertIs(registry.get_transform(BlurType.GAUSSIAN), neighborhood_average)
        self.assertIs(registry.get_transform("pixelated"), block_snap)
        self.assertIs(registry.get_transform("mosaic"), block_average)

    def test_register_default_transforms_on_fresh_registry(self):
        registry = TransformRegistry()
        register_default_transforms(registry)
        self.assertEqual(len(registry.list_blur_types()), 3)
