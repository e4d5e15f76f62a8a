"""
Shared fixtures for the marker coverage tests.
"""

import cv2
import numpy as np
import pytest

from tests.synthetic import make_grid, make_gray_grid, make_scene, make_rotated_scene


@pytest.fixture
def grid():
    return make_grid(360)


@pytest.fixture
def gray_grid():
    return make_gray_grid(360)


@pytest.fixture
def scene():
    return make_scene()


@pytest.fixture
def rotated_scene():
    return make_rotated_scene(10.0)


@pytest.fixture
def scene_png(tmp_path):
    """Path to the default scene written as PNG."""
    path = tmp_path / 'scene.png'
    cv2.imwrite(str(path), make_scene())
    return path


@pytest.fixture
def blank_png(tmp_path):
    """Path to a flat gray image with no marker."""
    path = tmp_path / 'blank.png'
    cv2.imwrite(str(path), np.full((240, 320, 3), 128, dtype=np.uint8))
    return path
