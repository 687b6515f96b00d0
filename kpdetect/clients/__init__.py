"""
Client modules for external collaborators.

- Image acquisition: LocalImageSource, HttpImageSource, resolve_image_source
- Inference engine: OnnxEngine (ONNX Runtime sessions)
- Telemetry: collect_system_info, ReportWriter
"""

from kpdetect.clients.image_source import (
    HttpImageSource,
    ImageSource,
    LocalImageSource,
    decode_image_bytes,
    resolve_image_source,
)
from kpdetect.clients.onnx_engine import OnnxEngine
from kpdetect.clients.telemetry import ReportWriter, collect_system_info


__all__ = [
    'HttpImageSource',
    'ImageSource',
    'LocalImageSource',
    'OnnxEngine',
    'ReportWriter',
    'collect_system_info',
    'decode_image_bytes',
    'resolve_image_source',
]
