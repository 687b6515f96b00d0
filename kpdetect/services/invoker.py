"""
Inference invoker.

Binds a single input tensor to a ready session and collects its named outputs.
The session is owned by the caller; this module never creates or closes one.
"""

import asyncio
import logging
from concurrent.futures import Executor
from typing import Any

import numpy as np

from kpdetect.core.exceptions import InferenceExecutionError
from kpdetect.services.preprocess import TensorDescriptor


logger = logging.getLogger(__name__)


def _session_io(session: Any) -> tuple[str, list[str]]:
    """Return (sole input name, output names) for a ready session."""
    if session is None:
        raise InferenceExecutionError('Inference session is not initialized')
    try:
        inputs = session.get_inputs()
        output_names = [o.name for o in session.get_outputs()]
    except Exception as e:
        raise InferenceExecutionError(f'Inference session is not initialized: {e}') from e
    if not inputs:
        raise InferenceExecutionError('Inference session declares no inputs')
    return inputs[0].name, output_names


def run_session_sync(session: Any, tensor: TensorDescriptor) -> dict[str, np.ndarray]:
    """
    Run the session on one tensor, blocking the calling thread.

    Args:
        session: Ready onnxruntime.InferenceSession (or compatible object)
        tensor: Input tensor descriptor

    Returns:
        Output name -> array, in the session's declared output order

    Raises:
        InferenceExecutionError: Session missing or engine rejected the input
    """
    input_name, output_names = _session_io(session)
    feeds = {input_name: tensor.as_array()}

    try:
        outputs = session.run(output_names, feeds)
    except Exception as e:
        raise InferenceExecutionError(f'Inference failed for input {input_name!r}: {e}') from e

    if len(outputs) != len(output_names):
        raise InferenceExecutionError(
            f'Engine returned {len(outputs)} outputs, session declares {len(output_names)}'
        )

    results = dict(zip(output_names, outputs, strict=True))
    for name, arr in results.items():
        logger.debug(f'Output {name}: shape={arr.shape}, dtype={arr.dtype}')
    return results


async def run_session(
    session: Any,
    tensor: TensorDescriptor,
    executor: Executor | None = None,
) -> dict[str, np.ndarray]:
    """
    Run the session on one tensor without blocking the event loop.

    The calling task suspends while the engine computes in the executor
    (default thread pool when None).

    Args:
        session: Ready onnxruntime.InferenceSession (or compatible object)
        tensor: Input tensor descriptor
        executor: Optional executor for the blocking engine call

    Returns:
        Output name -> array
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, run_session_sync, session, tensor)
