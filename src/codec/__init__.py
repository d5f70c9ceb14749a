"""
Tensor codec: frames to model input, model output to boxes and masks.
"""

from .preprocess import Letterbox, compute_letterbox, preprocess
from .decode import decode_detections, decode_mask

__all__ = [
    "Letterbox",
    "compute_letterbox",
    "preprocess",
    "decode_detections",
    "decode_mask",
]
