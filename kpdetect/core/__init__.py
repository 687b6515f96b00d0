"""
Core module with the exception taxonomy and structured logging.
"""

from kpdetect.core.exceptions import (
    AcquisitionError,
    HeatmapShapeError,
    InferenceExecutionError,
    KeypointPipelineError,
    ShapeMismatchError,
)
from kpdetect.core.logging import configure_logging, get_logger


__all__ = [
    'AcquisitionError',
    'HeatmapShapeError',
    'InferenceExecutionError',
    'KeypointPipelineError',
    'ShapeMismatchError',
    'configure_logging',
    'get_logger',
]
