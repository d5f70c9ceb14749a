"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A detected box in pixel coordinates of the original frame.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
        confidence: Best class score (0-1).
        class_id: Index into the label table.
        label: Human-readable class name.
    """
    x1: float
    y1: float
    x2: float
    y2: float
    confidence: float
    class_id: int
    label: str

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "confidence": self.confidence,
            "class_id": self.class_id,
            "label": self.label,
        }


def boxes_to_numpy(boxes: List[BoundingBox]) -> np.ndarray:
    """
    Adapter: Convert list of BoundingBox objects to numpy array.

    Returns:
        Array of shape (N, 6) with [x1, y1, x2, y2, confidence, class_id].
    """
    if not boxes:
        return np.zeros((0, 6), dtype=np.float32)
    return np.array(
        [[b.x1, b.y1, b.x2, b.y2, b.confidence, b.class_id] for b in boxes],
        dtype=np.float32,
    )
