"""
Post-processing and visualization utilities.
"""

from kpdetect.utils.draw import render_keypoints, save_rendering
from kpdetect.utils.heatmap_decode import (
    CELL_SIZE,
    DEFAULT_CONFIDENCE_THRESHOLD,
    Keypoint,
    decode_heatmap,
    reconstruct_confidence_surface,
    select_heatmap,
)


__all__ = [
    'CELL_SIZE',
    'DEFAULT_CONFIDENCE_THRESHOLD',
    'Keypoint',
    'decode_heatmap',
    'reconstruct_confidence_surface',
    'render_keypoints',
    'save_rendering',
    'select_heatmap',
]
