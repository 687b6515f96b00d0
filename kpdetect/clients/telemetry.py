"""
Telemetry sink: host diagnostics and run reports.

Reports are JSON files named by UTC timestamp:
- performance_<ts>.json for successful runs
- performance_error_<ts>.json when the run recorded an error
"""

import logging
import os
import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import onnxruntime as ort
import orjson
import psutil


logger = logging.getLogger(__name__)


def collect_system_info() -> dict[str, Any]:
    """
    Gather host and runtime identification for performance logging.

    Returns:
        Dict with platform, architecture, CPU, memory and ONNX Runtime details
    """
    memory = psutil.virtual_memory()
    return {
        'platform': platform.system(),
        'platform_release': platform.release(),
        'platform_full': platform.platform(),
        'architecture': platform.machine(),
        'processor': platform.processor() or 'unknown',
        'python_version': platform.python_version(),
        'cpu_count_logical': psutil.cpu_count(logical=True),
        'cpu_count_physical': psutil.cpu_count(logical=False),
        'memory_total_mb': round(memory.total / (1024 * 1024), 1),
        'memory_available_mb': round(memory.available / (1024 * 1024), 1),
        'process_id': os.getpid(),
        'onnxruntime_version': ort.__version__,
        'onnxruntime_device': ort.get_device(),
        'onnxruntime_providers': list(ort.get_available_providers()),
    }


def report_filename(has_error: bool, now: datetime | None = None) -> str:
    """Timestamped report file name (filesystem-safe ISO-8601, UTC)."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime('%Y-%m-%dT%H-%M-%S.%fZ')
    prefix = 'performance_error' if has_error else 'performance'
    return f'{prefix}_{stamp}.json'


class ReportWriter:
    """Persists run reports as indented JSON files in one directory."""

    def __init__(self, report_dir: str | Path = 'reports'):
        self.report_dir = Path(report_dir)

    def write(self, report: Any, has_error: bool = False) -> Path:
        """
        Serialize a report (dict or dataclass, numpy-aware) to a new file.

        Args:
            report: Report payload
            has_error: Selects the error file prefix

        Returns:
            Path of the written file
        """
        self.report_dir.mkdir(parents=True, exist_ok=True)
        path = self.report_dir / report_filename(has_error)
        payload = orjson.dumps(
            report,
            option=orjson.OPT_INDENT_2 | orjson.OPT_SERIALIZE_NUMPY | orjson.OPT_NON_STR_KEYS,
        )
        path.write_bytes(payload)
        logger.info(f'Report written: {path} ({len(payload)} bytes)')
        return path
