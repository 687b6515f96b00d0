"""
Keypoint pipeline orchestrator.

Runs one image through one session:
1. Session creation (skipped when the caller supplies a ready session)
2. Image acquisition
3. Luminance normalization
4. Tensor assembly
5. Inference
6. Heatmap decoding

Every completed stage is timed into a PerformanceRecord. This is the only
recovery boundary in the package: any stage failure is captured on the
returned PipelineResult and never re-raised.
"""

import time
from collections.abc import Iterator
from concurrent.futures import Executor
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Any

from kpdetect.clients.image_source import ImageSource, resolve_image_source
from kpdetect.clients.onnx_engine import OnnxEngine
from kpdetect.clients.telemetry import collect_system_info
from kpdetect.config import Settings, get_settings
from kpdetect.core.logging import get_logger
from kpdetect.services.invoker import run_session
from kpdetect.services.preprocess import PixelBuffer, build_input_tensor, rgba_to_luminance
from kpdetect.utils.heatmap_decode import Keypoint, decode_heatmap, select_heatmap


logger = get_logger(__name__)


class PerformanceRecord:
    """Ordered stage name -> elapsed milliseconds, plus a derived total."""

    TOTAL_KEY = 'total_time'

    def __init__(self):
        self._stages: dict[str, float] = {}

    def record(self, stage: str, elapsed_ms: float) -> None:
        self._stages[stage] = elapsed_ms

    @contextmanager
    def measure(self, stage: str) -> Iterator[None]:
        """Time the enclosed block; nothing is recorded if it raises."""
        start = time.perf_counter()
        yield
        self._stages[stage] = (time.perf_counter() - start) * 1000

    @property
    def stages(self) -> dict[str, float]:
        return dict(self._stages)

    @property
    def total(self) -> float:
        """Sum of recorded stages (excludes unmeasured overhead)."""
        return sum(self._stages.values())

    def as_dict(self) -> dict[str, float]:
        return {**self._stages, self.TOTAL_KEY: self.total}


@dataclass
class PipelineResult:
    """Outcome of one pipeline invocation: keypoints or an error, plus diagnostics."""

    image_source: str
    model_path: str
    execution_provider: str
    cell_size: int
    confidence_threshold: float
    image_width: int = 0
    image_height: int = 0
    session_reused: bool = False
    keypoints: list[Keypoint] = field(default_factory=list)
    performance: dict[str, float] = field(default_factory=dict)
    system_info: dict[str, Any] = field(default_factory=dict)
    output_shapes: dict[str, list[int]] = field(default_factory=dict)
    error: str | None = None
    failed_stage: str | None = None
    # Kept for rendering, excluded from reports
    pixels: PixelBuffer | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def num_keypoints(self) -> int:
        return len(self.keypoints)

    def to_report(self) -> dict[str, Any]:
        """Structured report for the telemetry sink."""
        report: dict[str, Any] = {
            'system_info': self.system_info,
            'context': {
                'image_source': self.image_source,
                'model_path': self.model_path,
                'execution_provider': self.execution_provider,
                'session_reused': self.session_reused,
                'cell_size': self.cell_size,
                'confidence_threshold': self.confidence_threshold,
                'image': {'width': self.image_width, 'height': self.image_height},
                'outputs': self.output_shapes,
            },
            'performance': self.performance,
            'num_keypoints': self.num_keypoints,
            'keypoints': [asdict(kp) for kp in self.keypoints],
        }
        if self.error is not None:
            report['error'] = self.error
            report['failed_stage'] = self.failed_stage
        return report


class KeypointPipeline:
    """
    Sequences acquisition, preprocessing, inference and decoding for one image.

    Collaborators are injectable so hosts can swap the image source or engine;
    by default the engine is ONNX Runtime and the image source is resolved
    from the source identifier's scheme.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        engine: OnnxEngine | None = None,
        image_source: ImageSource | None = None,
        executor: Executor | None = None,
    ):
        """
        Args:
            settings: Pipeline settings (default: get_settings())
            engine: Session factory (default: OnnxEngine())
            image_source: Fixed image adapter (default: resolved per source)
            executor: Executor for the blocking inference call (default pool if None)
        """
        self.settings = settings or get_settings()
        self.engine = engine or OnnxEngine()
        self.image_source = image_source
        self.executor = executor

    def _source_for(self, source: str) -> ImageSource:
        if self.image_source is not None:
            return self.image_source
        return resolve_image_source(source, timeout=self.settings.http_timeout)

    async def run(self, source: str | None = None, session: Any = None) -> PipelineResult:
        """
        Detect keypoints in one image.

        Args:
            source: Image path or URL (default: settings.image_source)
            session: Ready inference session to reuse; created from
                settings.model_path when None

        Returns:
            PipelineResult. On failure, error and failed_stage are set and the
            performance record holds every stage completed before the failure.
        """
        settings = self.settings
        source = source or settings.image_source
        result = PipelineResult(
            image_source=source,
            model_path=settings.model_path,
            execution_provider=settings.execution_provider,
            cell_size=settings.cell_size,
            confidence_threshold=settings.confidence_threshold,
        )
        perf = PerformanceRecord()
        log = logger.bind(image_source=source)

        stage = 'system_info'
        try:
            result.system_info = collect_system_info()

            stage = 'session_creation'
            if session is None:
                with perf.measure(stage):
                    session = await self.engine.create_session_async(
                        settings.model_path, settings.execution_provider
                    )
                log.info('session_created', ms=round(perf.stages[stage], 2))
            else:
                perf.record(stage, 0.0)
                result.session_reused = True

            stage = 'image_loading'
            with perf.measure(stage):
                pixels = await self._source_for(source).load(source)
            result.pixels = pixels
            result.image_width, result.image_height = pixels.width, pixels.height
            log.info('image_loaded', width=pixels.width, height=pixels.height)

            stage = 'grayscale_conversion'
            with perf.measure(stage):
                gray = rgba_to_luminance(pixels)

            stage = 'tensor_creation'
            with perf.measure(stage):
                tensor = build_input_tensor(gray, pixels.height, pixels.width)

            stage = 'inference'
            with perf.measure(stage):
                outputs = await run_session(session, tensor, executor=self.executor)
            result.output_shapes = {name: list(arr.shape) for name, arr in outputs.items()}
            log.info('inference_complete', outputs=result.output_shapes)

            stage = 'heatmap_decoding'
            with perf.measure(stage):
                heatmap = select_heatmap(outputs, settings.heatmap_output, settings.cell_size)
                result.keypoints = decode_heatmap(
                    heatmap,
                    width=pixels.width,
                    height=pixels.height,
                    cell_size=settings.cell_size,
                    confidence_threshold=settings.confidence_threshold,
                    workers=settings.decode_workers,
                )

        except Exception as e:
            result.error = str(e) or type(e).__name__
            result.failed_stage = stage
            log.error('pipeline_failed', stage=stage, error=result.error)

        result.performance = perf.as_dict()
        if result.ok:
            log.info(
                'pipeline_complete',
                num_keypoints=result.num_keypoints,
                total_ms=round(perf.total, 2),
            )
        return result
