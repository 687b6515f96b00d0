"""
CPU Preprocessing Module.

Converts decoded images into the single-channel input tensor expected by
SuperPoint-style keypoint models.

Preprocessing functions:
- rgba_to_luminance: RGBA pixel buffer -> flat float32 luminance in [0, 1]
- build_input_tensor: flat luminance + explicit shape -> [1, 1, H, W] descriptor

All tensors are NCHW, FP32.
"""

from dataclasses import dataclass

import numpy as np

from kpdetect.core.exceptions import ShapeMismatchError


# ITU-R BT.601 luma weights (R, G, B)
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


@dataclass(frozen=True)
class PixelBuffer:
    """Decoded image as interleaved RGBA bytes.

    Attributes:
        data: [H, W, 4] uint8, row-major, read-only
    """

    data: np.ndarray

    def __post_init__(self):
        if self.data.ndim != 3 or self.data.shape[2] != 4:
            raise ShapeMismatchError(f'Expected [H, W, 4] RGBA buffer, got {self.data.shape}')
        self.data.setflags(write=False)

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])


@dataclass(frozen=True)
class TensorDescriptor:
    """Engine-ready tensor: explicit NCHW shape over a flat backing buffer.

    Attributes:
        shape: (batch=1, channels=1, height, width)
        data: flat FP32 buffer of length height * width (shared, not copied)
        dtype: element type tag
    """

    shape: tuple[int, int, int, int]
    data: np.ndarray
    dtype: str = 'float32'

    @property
    def height(self) -> int:
        return self.shape[2]

    @property
    def width(self) -> int:
        return self.shape[3]

    def as_array(self) -> np.ndarray:
        """View of the backing buffer with the descriptor's shape."""
        return self.data.reshape(self.shape)


def rgba_to_luminance(pixels: PixelBuffer) -> np.ndarray:
    """
    Convert an RGBA pixel buffer to normalized luminance.

    Uses the luminosity method (0.299 R + 0.587 G + 0.114 B) with no gamma
    correction. Alpha is ignored.

    Args:
        pixels: RGBA pixel buffer

    Returns:
        Flat FP32 array of length width * height, values in [0, 1],
        indexed as y * width + x
    """
    rgb = pixels.data[..., :3].astype(np.float64)
    luma = rgb @ LUMA_WEIGHTS
    return (luma / 255.0).astype(np.float32).reshape(-1)


def build_input_tensor(buffer: np.ndarray, height: int, width: int) -> TensorDescriptor:
    """
    Wrap a flat luminance buffer as a [1, 1, height, width] FP32 tensor.

    Args:
        buffer: Flat luminance buffer
        height: Image height
        width: Image width

    Returns:
        TensorDescriptor sharing the buffer's storage

    Raises:
        ShapeMismatchError: If len(buffer) != height * width
    """
    if buffer.ndim != 1 or buffer.size != height * width:
        raise ShapeMismatchError(
            f'Buffer of length {buffer.size} does not match height={height} x width={width}'
        )
    if buffer.dtype != np.float32:
        buffer = buffer.astype(np.float32)
    return TensorDescriptor(shape=(1, 1, height, width), data=buffer)
