"""
Keypoint rendering tests.

Run:
    pytest tests/test_draw.py
"""

import cv2
import numpy as np
from conftest import make_pixels

from kpdetect.utils.draw import MARKER_COLOR, render_keypoints, save_rendering
from kpdetect.utils.heatmap_decode import Keypoint


def test_markers_drawn_over_image():
    pixels = make_pixels(16, 16, (10, 20, 30))

    canvas = render_keypoints(pixels, [Keypoint(x=8, y=8, confidence=0.9)])

    assert canvas.shape == (16, 16, 3)
    np.testing.assert_array_equal(canvas[8, 8], MARKER_COLOR)
    # Far corner keeps the source colour, converted to BGR
    np.testing.assert_array_equal(canvas[0, 0], [30, 20, 10])
    # Source buffer untouched
    assert pixels.data[8, 8, 1] == 20


def test_no_keypoints_is_plain_image():
    pixels = make_pixels(4, 4, (1, 2, 3))

    canvas = render_keypoints(pixels, [])

    assert np.all(canvas == [3, 2, 1])


def test_save_rendering(tmp_path):
    canvas = render_keypoints(make_pixels(8, 8), [Keypoint(x=4, y=4, confidence=1.0)])

    path = save_rendering(tmp_path / 'out' / 'keypoints.png', canvas)

    assert path.exists()
    np.testing.assert_array_equal(cv2.imread(str(path)), canvas)
