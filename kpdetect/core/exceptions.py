"""
Exception taxonomy for the keypoint pipeline.

Every stage fails fast with one of these; only the pipeline orchestrator
catches them, and it records the message instead of re-raising.
"""


class KeypointPipelineError(Exception):
    """Base class for all keypoint pipeline errors."""


class AcquisitionError(KeypointPipelineError):
    """Image or model could not be obtained (I/O, network, decode or load failure)."""


class ShapeMismatchError(KeypointPipelineError):
    """A buffer or tensor shape invariant was violated."""


class InferenceExecutionError(KeypointPipelineError):
    """The inference engine rejected or failed on the input tensor."""


class HeatmapShapeError(KeypointPipelineError):
    """The heatmap output does not satisfy the decoder's shape preconditions."""
