"""
SuperPoint heatmap post-processor (CPU numpy).

Decodes the network's compact detector head into image-space keypoints.

Detector head layout:
- Output tensor [1, C, H, W] with C = cell_size^2 + 1 (cell_size = 8)
- Channel c < C-1 scores sub-pixel offset (c % cell_size, c // cell_size)
  inside every cell_size x cell_size block
- Last channel is the "dustbin" (no keypoint in this cell) and is dropped

Scores are thresholded raw. No softmax over channels is applied and no NMS
is performed, so neighbouring pixels can all be emitted.

Reference: SuperPoint demo (magicleap/SuperPointPretrainedNetwork)
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from kpdetect.core.exceptions import HeatmapShapeError


CELL_SIZE = 8
DEFAULT_CONFIDENCE_THRESHOLD = 0.015


@dataclass(frozen=True)
class Keypoint:
    """Image-space keypoint with its raw heatmap confidence."""

    x: int
    y: int
    confidence: float


def _check_heatmap(heatmap: np.ndarray, width: int, height: int, cell_size: int) -> None:
    """Validate decoder preconditions; never crop or pad."""
    if heatmap.ndim != 4 or heatmap.shape[0] != 1:
        raise HeatmapShapeError(f'Expected heatmap of shape [1, C, H, W], got {heatmap.shape}')

    _, channels, grid_h, grid_w = heatmap.shape
    if channels - 1 != cell_size * cell_size:
        raise HeatmapShapeError(
            f'Heatmap has {channels} channels, expected {cell_size * cell_size + 1} '
            f'(cell_size={cell_size} plus dustbin)'
        )

    if (grid_h * cell_size, grid_w * cell_size) != (height, width):
        raise HeatmapShapeError(
            f'Heatmap grid {grid_h}x{grid_w} at cell_size={cell_size} reconstructs '
            f'{grid_w * cell_size}x{grid_h * cell_size}, image is {width}x{height}'
        )


def _depth_to_space(cells: np.ndarray, cell_size: int) -> np.ndarray:
    """
    Unpack [cell_size^2, h, w] channel scores into a [h*cell, w*cell] surface.

    Channel index splits as (sub_y, sub_x) = divmod(c, cell_size).
    """
    _, grid_h, grid_w = cells.shape
    blocks = cells.reshape(cell_size, cell_size, grid_h, grid_w)  # [sub_y, sub_x, y, x]
    blocks = blocks.transpose(2, 0, 3, 1)  # [y, sub_y, x, sub_x]
    return blocks.reshape(grid_h * cell_size, grid_w * cell_size)


def reconstruct_confidence_surface(
    heatmap: np.ndarray,
    width: int,
    height: int,
    cell_size: int = CELL_SIZE,
) -> np.ndarray:
    """
    Rebuild the full-resolution confidence surface from the detector head.

    Args:
        heatmap: [1, cell_size^2 + 1, H, W] raw detector output
        width: Image width (must equal W * cell_size)
        height: Image height (must equal H * cell_size)
        cell_size: Pixels per coarse cell

    Returns:
        [height, width] confidence surface, dustbin excluded

    Raises:
        HeatmapShapeError: If any shape precondition is violated
    """
    heatmap = np.asarray(heatmap)
    _check_heatmap(heatmap, width, height, cell_size)
    return _depth_to_space(heatmap[0, :-1], cell_size)


def _decode_band(
    cells: np.ndarray,
    row_start: int,
    cell_size: int,
    width: int,
    threshold: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Threshold one band of coarse rows.

    Returns:
        Tuple of (flat image indices ascending, scores)
    """
    surface = _depth_to_space(cells, cell_size)
    flat = surface.reshape(-1)
    local = np.flatnonzero(flat > threshold)
    # Band rows are contiguous in the full image, so a constant offset keeps order
    offset = row_start * cell_size * width
    return local + offset, flat[local]


def decode_heatmap(
    heatmap: np.ndarray,
    width: int,
    height: int,
    cell_size: int = CELL_SIZE,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    workers: int = 1,
) -> list[Keypoint]:
    """
    Decode a SuperPoint detector head into keypoints.

    A pixel is emitted iff its reconstructed confidence is strictly greater
    than confidence_threshold. Output is sorted by y * width + x.

    Args:
        heatmap: [1, cell_size^2 + 1, H, W] raw detector output
        width: Image width (must equal W * cell_size)
        height: Image height (must equal H * cell_size)
        cell_size: Pixels per coarse cell (default 8)
        confidence_threshold: Strict score threshold (default 0.015)
        workers: Threads used to decode bands of coarse rows; 1 decodes inline

    Returns:
        List of Keypoint in row-major order

    Raises:
        HeatmapShapeError: If any shape precondition is violated
    """
    heatmap = np.asarray(heatmap)
    _check_heatmap(heatmap, width, height, cell_size)

    cells = heatmap[0, :-1]
    grid_h = cells.shape[1]

    if workers <= 1 or grid_h <= 1:
        indices, scores = _decode_band(cells, 0, cell_size, width, confidence_threshold)
    else:
        bounds = np.linspace(0, grid_h, min(workers, grid_h) + 1, dtype=int)
        bands = [(int(lo), int(hi)) for lo, hi in zip(bounds[:-1], bounds[1:], strict=True)]

        with ThreadPoolExecutor(max_workers=len(bands)) as executor:
            futures = [
                executor.submit(
                    _decode_band, cells[:, lo:hi], lo, cell_size, width, confidence_threshold
                )
                for lo, hi in bands
            ]
            # Merge in band order: bands are disjoint ascending index ranges
            parts = [future.result() for future in futures]

        indices = np.concatenate([p[0] for p in parts])
        scores = np.concatenate([p[1] for p in parts])

    ys, xs = np.divmod(indices, width)
    return [
        Keypoint(x=int(x), y=int(y), confidence=float(s))
        for x, y, s in zip(xs, ys, scores, strict=True)
    ]


def select_heatmap(
    outputs: dict[str, np.ndarray],
    name: str | None = 'semi',
    cell_size: int = CELL_SIZE,
) -> np.ndarray:
    """
    Pick the detector head from a model's named outputs.

    Args:
        outputs: Output name -> array
        name: Configured heatmap output name; falsy to auto-detect
        cell_size: Used to recognise the head by its cell_size^2 + 1 channels

    Returns:
        The heatmap array

    Raises:
        HeatmapShapeError: If the named output is missing or none qualifies
    """
    if name:
        if name not in outputs:
            raise HeatmapShapeError(
                f'Heatmap output {name!r} not found; outputs are {sorted(outputs)}'
            )
        return outputs[name]

    expected_channels = cell_size * cell_size + 1
    for arr in outputs.values():
        if arr.ndim == 4 and arr.shape[1] == expected_channels:
            return arr

    shapes = {k: tuple(v.shape) for k, v in outputs.items()}
    raise HeatmapShapeError(
        f'No output with {expected_channels} channels found among {shapes}'
    )
