"""
Keypoint visualization with OpenCV.

Draws the source image first, then a filled circle at each keypoint.
Styling is cosmetic only.
"""

from collections.abc import Iterable
from pathlib import Path

import cv2
import numpy as np

from kpdetect.services.preprocess import PixelBuffer
from kpdetect.utils.heatmap_decode import Keypoint


MARKER_RADIUS = 2
MARKER_COLOR = (0, 255, 0)  # BGR


def render_keypoints(
    pixels: PixelBuffer,
    keypoints: Iterable[Keypoint],
    radius: int = MARKER_RADIUS,
    color: tuple[int, int, int] = MARKER_COLOR,
) -> np.ndarray:
    """
    Render keypoint markers over the source image.

    Args:
        pixels: Source RGBA pixel buffer (left untouched)
        keypoints: Keypoints to mark
        radius: Marker radius in pixels
        color: Marker colour (BGR)

    Returns:
        [H, W, 3] uint8 BGR canvas
    """
    canvas = cv2.cvtColor(np.array(pixels.data), cv2.COLOR_RGBA2BGR)
    for kp in keypoints:
        cv2.circle(canvas, (kp.x, kp.y), radius, color, thickness=-1)
    return canvas


def save_rendering(path: str | Path, canvas: np.ndarray) -> Path:
    """
    Write a rendered canvas to disk (format from the file extension).

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), canvas):
        raise OSError(f'Failed to write rendering to {path}')
    return path
