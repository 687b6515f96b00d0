"""
Shared fixtures: synthetic heatmaps and in-memory stand-ins for the engine
and image source, so pipeline tests run without a model file or network.
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import onnx
import pytest
from onnx import TensorProto, helper

from kpdetect.clients.image_source import ImageSource
from kpdetect.services.preprocess import PixelBuffer


CELL = 8
CHANNELS = CELL * CELL + 1
STUB_SIZE = 16


def build_stub_detector(path: Path, size: int = STUB_SIZE) -> Path:
    """
    Save a SpaceToDepth(8) + one-channel zero pad model to path.

    Its 65-channel output is a detector head whose depth-to-space inverse is
    the input image, so bright pixels decode to keypoints at their own
    coordinates.
    """
    grid = size // CELL
    image = helper.make_tensor_value_info('image', TensorProto.FLOAT, [1, 1, size, size])
    semi = helper.make_tensor_value_info('semi', TensorProto.FLOAT, [1, CHANNELS, grid, grid])
    pads = helper.make_tensor('pads', TensorProto.INT64, [8], [0, 0, 0, 0, 0, 1, 0, 0])

    graph = helper.make_graph(
        [
            helper.make_node('SpaceToDepth', ['image'], ['cells'], blocksize=CELL),
            helper.make_node('Pad', ['cells', 'pads'], ['semi'], mode='constant'),
        ],
        'superpoint_stub',
        [image],
        [semi],
        initializer=[pads],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid('', 13)])
    model.ir_version = 8
    onnx.checker.check_model(model)
    onnx.save(model, str(path))
    return path


def make_heatmap(grid_h: int, grid_w: int, cell: int = CELL) -> np.ndarray:
    """All-zero detector head [1, cell^2 + 1, grid_h, grid_w]."""
    return np.zeros((1, cell * cell + 1, grid_h, grid_w), dtype=np.float32)


def make_pixels(height: int, width: int, rgb: tuple[int, int, int] = (0, 0, 0)) -> PixelBuffer:
    data = np.zeros((height, width, 4), dtype=np.uint8)
    data[..., :3] = rgb
    data[..., 3] = 255
    return PixelBuffer(data)


@dataclass
class FakeIO:
    name: str
    shape: tuple = ()


class FakeSession:
    """Mimics the onnxruntime.InferenceSession surface used by the invoker."""

    def __init__(self, outputs: dict[str, np.ndarray], input_name: str = 'image', error=None):
        self.outputs = outputs
        self.input_name = input_name
        self.error = error
        self.feeds: list[dict[str, np.ndarray]] = []

    def get_inputs(self):
        return [FakeIO(self.input_name)]

    def get_outputs(self):
        return [FakeIO(name) for name in self.outputs]

    def run(self, output_names, feeds):
        self.feeds.append(feeds)
        if self.error is not None:
            raise self.error
        return [self.outputs[name] for name in output_names]


class FakeEngine:
    def __init__(self, session=None, error=None):
        self.session = session
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def create_session_async(self, model_path, provider):
        self.calls.append((str(model_path), provider))
        if self.error is not None:
            raise self.error
        return self.session


class FakeImageSource(ImageSource):
    def __init__(self, pixels: PixelBuffer | None = None, error=None):
        self.pixels = pixels
        self.error = error
        self.requested: list[str] = []

    async def load(self, source: str) -> PixelBuffer:
        self.requested.append(source)
        if self.error is not None:
            raise self.error
        return self.pixels


@pytest.fixture
def single_point_heatmap() -> np.ndarray:
    """2x2 grid, channel 9 (sub-offset 1,1) at cell (1,1) -> pixel (9, 9)."""
    heatmap = make_heatmap(2, 2)
    heatmap[0, 9, 1, 1] = 0.9
    return heatmap
