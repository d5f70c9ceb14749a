"""
Class-scoped Non-Maximum Suppression.
"""

from __future__ import annotations

from typing import List, Sequence

from models.detection import BoundingBox


def iou(box1: BoundingBox, box2: BoundingBox) -> float:
    """
    Calculate Intersection over Union (IoU) between two boxes.

    Args:
        box1: First bounding box
        box2: Second bounding box

    Returns:
        IoU value between 0 and 1 (0 for disjoint or degenerate boxes)
    """
    # Calculate intersection
    x1_i = max(box1.x1, box2.x1)
    y1_i = max(box1.y1, box2.y1)
    x2_i = min(box1.x2, box2.x2)
    y2_i = min(box1.y2, box2.y2)

    intersection = max(0.0, x2_i - x1_i) * max(0.0, y2_i - y1_i)

    # Calculate union
    area1 = (box1.x2 - box1.x1) * (box1.y2 - box1.y1)
    area2 = (box2.x2 - box2.x1) * (box2.y2 - box2.y1)
    union = area1 + area2 - intersection

    if union <= 0:
        return 0.0

    return intersection / union


def suppress(boxes: Sequence[BoundingBox], iou_threshold: float = 0.45) -> List[BoundingBox]:
    """
    Remove lower-confidence boxes that overlap a kept box of the same class.

    Boxes are visited by descending confidence; ties keep their input order.
    A candidate is dropped when it shares the kept box's class and
    ``IoU >= iou_threshold``. Boxes of different classes never suppress each
    other.

    Returns:
        Kept boxes, highest confidence first.
    """
    if not boxes:
        return []

    remaining = sorted(boxes, key=lambda b: b.confidence, reverse=True)
    selected: List[BoundingBox] = []

    while remaining:
        current = remaining.pop(0)
        selected.append(current)
        remaining = [
            box for box in remaining
            if box.class_id != current.class_id or iou(current, box) < iou_threshold
        ]

    return selected
