"""
ONNX Runtime engine adapter.

Creates inference sessions for a model path and execution provider. Sessions
are returned to the caller, who owns them: create once, reuse across images,
drop the reference when done.
"""

import asyncio
import logging
from pathlib import Path

import onnxruntime as ort

from kpdetect.core.exceptions import AcquisitionError


logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = 'CPUExecutionProvider'


class OnnxEngine:
    """
    Thin wrapper over onnxruntime session creation.

    Providers are selected by name (e.g. 'CPUExecutionProvider',
    'CUDAExecutionProvider'); an unavailable provider is a load error rather
    than a silent fallback.
    """

    def __init__(self, session_options: ort.SessionOptions | None = None):
        self.session_options = session_options

    @staticmethod
    def available_providers() -> list[str]:
        """Execution providers compiled into the installed runtime."""
        return list(ort.get_available_providers())

    def create_session(
        self, model_path: str | Path, provider: str = DEFAULT_PROVIDER
    ) -> ort.InferenceSession:
        """
        Load a model into a new inference session.

        Args:
            model_path: Path to the .onnx file
            provider: Execution provider name

        Returns:
            Ready InferenceSession

        Raises:
            AcquisitionError: Missing model, unavailable provider, or load failure
        """
        model_path = Path(model_path)
        if not model_path.is_file():
            raise AcquisitionError(f'Model file not found: {model_path}')

        available = self.available_providers()
        if provider not in available:
            raise AcquisitionError(
                f'Execution provider {provider!r} not available (have: {", ".join(available)})'
            )

        try:
            session = ort.InferenceSession(
                str(model_path), sess_options=self.session_options, providers=[provider]
            )
        except Exception as e:
            raise AcquisitionError(f'Failed to load model {model_path}: {e}') from e

        input_info = session.get_inputs()[0]
        logger.info(
            f'Session ready: {model_path.name} provider={session.get_providers()[0]} '
            f'input={input_info.name} {input_info.shape}'
        )
        return session

    async def create_session_async(
        self, model_path: str | Path, provider: str = DEFAULT_PROVIDER
    ) -> ort.InferenceSession:
        """Load a session off the event loop; the calling task suspends meanwhile."""
        return await asyncio.to_thread(self.create_session, model_path, provider)
