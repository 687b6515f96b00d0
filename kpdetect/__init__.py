"""
kpdetect - SuperPoint-style keypoint detection with ONNX Runtime.

Image -> luminance tensor -> inference -> depth-to-space heatmap decoding ->
keypoints, with per-stage timing and a JSON performance report.
"""

__version__ = '1.0.0'
