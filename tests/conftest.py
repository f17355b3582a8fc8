"""
Pytest configuration and shared fixtures for Gif Retouch tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import numpy as np
import pytest

import gif_fixtures


@pytest.fixture
def temp_settings_dir(tmp_path):
    """
    Provide a temporary directory for settings files.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path


@pytest.fixture
def scenario_gif():
    """The 3-frame 10x10 disposal scenario GIF."""
    return gif_fixtures.scenario_three_frame_gif()


@pytest.fixture
def restore_previous_gif():
    return gif_fixtures.restore_previous_gif()


@pytest.fixture
def mixed_gif():
    return gif_fixtures.mixed_disposal_gif()


@pytest.fixture
def gradient_frame():
    """
    Provide a 12x9 RGBA frame with distinct values per pixel and channel.

    Returns:
        uint8 array (9, 12, 4)
    """
    ys, xs = np.mgrid[0:9, 0:12]
    frame = np.zeros((9, 12, 4), dtype=np.uint8)
    frame[..., 0] = xs * 20
    frame[..., 1] = ys * 25
    frame[..., 2] = (xs * 7 + ys * 11) % 256
    frame[..., 3] = 255
    return frame
