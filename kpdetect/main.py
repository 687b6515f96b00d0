"""
Keypoint detection run.

Loads the configured model and image, detects keypoints, writes a timestamped
performance report, and optionally renders the keypoints over the image.

Configured entirely through environment variables (see kpdetect.config):
    MODEL_PATH=data/superpoint.onnx IMAGE_SOURCE=data/pinball.jpg python -m kpdetect.main
"""

import asyncio
import sys

from kpdetect.clients.telemetry import ReportWriter
from kpdetect.config import Settings, get_settings
from kpdetect.core.logging import configure_logging, get_logger
from kpdetect.services.pipeline import KeypointPipeline, PipelineResult
from kpdetect.utils.draw import render_keypoints, save_rendering


logger = get_logger(__name__)


async def run(settings: Settings | None = None) -> PipelineResult:
    """
    Execute one pipeline invocation and emit its report.

    Args:
        settings: Pipeline settings (default: get_settings())

    Returns:
        The pipeline result (check result.ok)
    """
    settings = settings or get_settings()
    pipeline = KeypointPipeline(settings=settings)
    result = await pipeline.run()

    if settings.write_report:
        ReportWriter(settings.report_dir).write(result.to_report(), has_error=not result.ok)

    if settings.render_path and result.ok and result.pixels is not None:
        canvas = render_keypoints(result.pixels, result.keypoints, radius=settings.marker_radius)
        path = save_rendering(settings.render_path, canvas)
        logger.info('rendering_saved', path=str(path))

    logger.info(
        'run_summary',
        ok=result.ok,
        num_keypoints=result.num_keypoints,
        performance={k: round(v, 2) for k, v in result.performance.items()},
        error=result.error,
    )
    return result


def main() -> int:
    settings = get_settings()
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    result = asyncio.run(run(settings))
    return 0 if result.ok else 1


if __name__ == '__main__':
    sys.exit(main())
