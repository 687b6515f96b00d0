"""
Entry point tests: report and rendering side effects of one configured run.

Run:
    pytest tests/test_main.py
"""

import asyncio
import json
import logging

import cv2
import numpy as np
import orjson
import structlog
from conftest import STUB_SIZE as SIZE
from conftest import build_stub_detector

from kpdetect.config import Settings
from kpdetect.core.logging import configure_logging, get_logger
from kpdetect.main import run


def _settings(tmp_path, **overrides) -> Settings:
    image_path = tmp_path / 'dot.png'
    bgr = np.zeros((SIZE, SIZE, 3), dtype=np.uint8)
    bgr[4, 5] = 255
    cv2.imwrite(str(image_path), bgr)

    values = {
        'model_path': str(build_stub_detector(tmp_path / 'stub.onnx')),
        'image_source': str(image_path),
        'report_dir': str(tmp_path / 'reports'),
        'render_path': str(tmp_path / 'render.png'),
    }
    values.update(overrides)
    return Settings(**values)


def test_run_writes_report_and_rendering(tmp_path):
    result = asyncio.run(run(_settings(tmp_path)))

    assert result.ok
    assert [(kp.x, kp.y) for kp in result.keypoints] == [(5, 4)]

    (report_path,) = (tmp_path / 'reports').iterdir()
    assert report_path.name.startswith('performance_2')
    report = orjson.loads(report_path.read_bytes())
    assert report['num_keypoints'] == 1
    assert 'inference' in report['performance']

    assert (tmp_path / 'render.png').exists()


def test_run_failure_writes_error_report(tmp_path):
    settings = _settings(tmp_path, model_path=str(tmp_path / 'missing.onnx'))

    result = asyncio.run(run(settings))

    assert not result.ok
    (report_path,) = (tmp_path / 'reports').iterdir()
    assert report_path.name.startswith('performance_error_')
    report = orjson.loads(report_path.read_bytes())
    assert report['failed_stage'] == 'session_creation'
    assert 'missing.onnx' in report['error']
    assert not (tmp_path / 'render.png').exists()


def test_run_without_report(tmp_path):
    result = asyncio.run(run(_settings(tmp_path, write_report=False, render_path=None)))

    assert result.ok
    assert not (tmp_path / 'reports').exists()


def test_configure_logging_emits_json(capsys):
    configure_logging(json_logs=True, log_level='INFO')
    try:
        get_logger('kpdetect.test').info('keypoints_found', count=3)
        logging.getLogger('kpdetect.adapter').info('plain stdlib record')

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]
    finally:
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()

    events = {line['event']: line for line in lines}
    assert events['keypoints_found']['count'] == 3
    assert events['keypoints_found']['level'] == 'info'
    assert events['plain stdlib record']['logger'] == 'kpdetect.adapter'
