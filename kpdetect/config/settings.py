"""
Centralized configuration using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
Use get_settings() to access the singleton settings instance.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Pipeline settings with environment variable support.

    All settings can be overridden via environment variables.
    Example: MODEL_PATH=models/superpoint.onnx IMAGE_SOURCE=img.jpg python -m kpdetect.main
    """

    # ==========================================================================
    # Inputs
    # ==========================================================================
    model_path: str = Field(
        default='data/superpoint.onnx', description='Path to the ONNX keypoint model'
    )

    image_source: str = Field(
        default='data/sample.jpg', description='Local image path or http(s) URL'
    )

    http_timeout: float = Field(
        default=30.0, gt=0, description='Timeout in seconds for fetching remote images'
    )

    # ==========================================================================
    # Inference Configuration
    # ==========================================================================
    execution_provider: str = Field(
        default='CPUExecutionProvider', description='ONNX Runtime execution provider'
    )

    # ==========================================================================
    # Heatmap Decoding
    # ==========================================================================
    cell_size: int = Field(default=8, ge=1, description='Depth-to-space cell size in pixels')

    confidence_threshold: float = Field(
        default=0.015, ge=0.0, le=1.0, description='Keypoints must score strictly above this'
    )

    heatmap_output: str | None = Field(
        default='semi', description='Heatmap output name (empty to auto-detect by channel count)'
    )

    decode_workers: int = Field(
        default=1, ge=1, description='Threads used to decode heatmap rows'
    )

    # ==========================================================================
    # Reporting & Rendering
    # ==========================================================================
    report_dir: str = Field(default='reports', description='Directory for performance reports')

    write_report: bool = Field(default=True, description='Persist a JSON report for each run')

    render_path: str | None = Field(
        default=None, description='Write an image with keypoint markers to this path'
    )

    marker_radius: int = Field(default=2, ge=1, description='Keypoint marker radius in pixels')

    # ==========================================================================
    # Logging
    # ==========================================================================
    json_logs: bool = Field(default=False, description='Emit JSON logs instead of console logs')

    log_level: str = Field(default='INFO', description='Log level')

    model_config = SettingsConfigDict(
        env_prefix='',  # No prefix for env vars
        case_sensitive=False,
        extra='ignore',
        protected_namespaces=(),
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance (singleton pattern).

    Returns:
        Settings: Pipeline settings
    """
    return Settings()
