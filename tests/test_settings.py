"""
Settings tests: defaults, environment overrides and validation.

Run:
    pytest tests/test_settings.py
"""

import pytest
from pydantic import ValidationError

from kpdetect.config import Settings


def test_defaults(monkeypatch):
    for var in ('CELL_SIZE', 'CONFIDENCE_THRESHOLD', 'EXECUTION_PROVIDER', 'HEATMAP_OUTPUT'):
        monkeypatch.delenv(var, raising=False)

    settings = Settings()

    assert settings.cell_size == 8
    assert settings.confidence_threshold == 0.015
    assert settings.execution_provider == 'CPUExecutionProvider'
    assert settings.heatmap_output == 'semi'
    assert settings.marker_radius == 2


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('CONFIDENCE_THRESHOLD', '0.05')
    monkeypatch.setenv('model_path', '/models/sp.onnx')
    monkeypatch.setenv('DECODE_WORKERS', '4')

    settings = Settings()

    assert settings.confidence_threshold == 0.05
    assert settings.model_path == '/models/sp.onnx'
    assert settings.decode_workers == 4


@pytest.mark.parametrize(
    'field,value',
    [('confidence_threshold', 1.5), ('cell_size', 0), ('decode_workers', 0)],
)
def test_validation(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})
