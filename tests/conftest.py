"""Pytest configuration and fixtures for confgrow tests."""

import numpy as np
import pytest


@pytest.fixture
def cube_volume():
    """
    10x10x10 volume of intensity 100 with a 3x3x3 cube of intensity 500
    centered at (5, 5, 5).
    """
    volume = np.full((10, 10, 10), 100.0, dtype=np.float32)
    volume[4:7, 4:7, 4:7] = 500.0
    return volume


@pytest.fixture
def noisy_volume():
    """
    Two regions with distinct means and mild noise.

    z < 8: mean=100, std=5
    z >= 8: mean=200, std=5
    Shape: (16, 16, 16)
    """
    rng = np.random.default_rng(42)  # Reproducible tests
    volume = np.empty((16, 16, 16), dtype=np.float64)
    volume[:8] = rng.normal(100.0, 5.0, size=(8, 16, 16))
    volume[8:] = rng.normal(200.0, 5.0, size=(8, 16, 16))
    return volume


@pytest.fixture
def two_channel_image():
    """
    20x20 image with two channels stacked on the last axis.

    Channel 0: checkerboard of 0/1 everywhere
    Channel 1: 0 on the left half (x < 10), 100 on the right half
    """
    yy, xx = np.mgrid[:20, :20]
    ch0 = ((yy + xx) % 2).astype(np.float64)
    ch1 = np.where(xx < 10, 0.0, 100.0)
    return np.stack([ch0, ch1], axis=-1)
