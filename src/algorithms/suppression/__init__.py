"""
Duplicate-box suppression for detector output.

Available functions:
- iou: Intersection over Union of two boxes
- suppress: Class-scoped greedy NMS
"""

from .nms import iou, suppress

__all__ = [
    "iou",
    "suppress",
]
