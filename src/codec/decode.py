"""
Raw output decoding.

Turns the detector's output tensor into BoundingBox objects in original-frame
coordinates, and the segmentation activation map into a binary mask.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from inference.errors import DecodeShapeUnrecognized
from models.detection import BoundingBox
from models.labels import WHOLEBODY_LABELS, label_for
from .preprocess import Letterbox


def _box_matrix(raw: np.ndarray) -> Tuple[np.ndarray, bool]:
    """
    Normalize a rank-3 detector output to a (num_boxes, 4 + num_classes) matrix.

    The larger of the two non-batch dimensions is the box count:
    ``[1, boxes, 4+C]`` is box-major, ``[1, 4+C, boxes]`` is transposed.

    Returns:
        Tuple of (matrix, is_transposed).
    """
    if raw.ndim != 3:
        raise DecodeShapeUnrecognized(f"Unexpected output shape: {raw.shape}")

    if raw.shape[1] > raw.shape[2]:
        matrix, transposed = raw[0], False
    else:
        matrix, transposed = raw[0].T, True

    if matrix.shape[1] < 5:
        raise DecodeShapeUnrecognized(
            f"Output vector length {matrix.shape[1]} is too short for box + class scores"
        )
    return matrix, transposed


def decode_detections(
    raw: np.ndarray,
    orig_w: int,
    orig_h: int,
    confidence_threshold: float,
    excluded_class_ids: AbstractSet[int] = frozenset(),
    letterbox: Optional[Letterbox] = None,
    labels: Sequence[str] = WHOLEBODY_LABELS,
) -> List[BoundingBox]:
    """
    Decode raw detector output into boxes (before suppression).

    Args:
        raw: Output tensor, ``[1, boxes, 4+C]`` or ``[1, 4+C, boxes]``.
        orig_w: Width of the original frame.
        orig_h: Height of the original frame.
        confidence_threshold: Boxes must score strictly above this.
        excluded_class_ids: Classes never emitted.
        letterbox: Placement used during preprocessing. ``None`` means no offset.
        labels: Label table used to name class ids.

    Returns:
        List of BoundingBox clamped to ``[0, orig_w] x [0, orig_h]``.
        Empty if the tensor layout is not recognized.
    """
    raw = np.asarray(raw, dtype=np.float32)
    try:
        matrix, transposed = _box_matrix(raw)
    except DecodeShapeUnrecognized as e:
        logging.error(f"Detection decode failed: {e}")
        return []

    logging.debug(
        f"Processing {matrix.shape[0]} boxes with {matrix.shape[1] - 4} classes "
        f"(transposed: {transposed})"
    )

    scores = matrix[:, 4:]
    # argmax keeps the first index on ties
    class_ids = np.argmax(scores, axis=1)
    confidences = scores[np.arange(len(class_ids)), class_ids]

    keep = confidences > confidence_threshold
    if excluded_class_ids:
        keep &= ~np.isin(class_ids, np.fromiter(excluded_class_ids, dtype=np.int64))
    if not np.any(keep):
        return []

    cx, cy, w, h = (matrix[keep, i] for i in range(4))
    class_ids = class_ids[keep]
    confidences = confidences[keep]

    pad_x = letterbox.pad_x if letterbox else 0
    pad_y = letterbox.pad_y if letterbox else 0
    scale = letterbox.scale if letterbox else 1.0

    x_a = (cx - w / 2 - pad_x) / scale
    x_b = (cx + w / 2 - pad_x) / scale
    y_a = (cy - h / 2 - pad_y) / scale
    y_b = (cy + h / 2 - pad_y) / scale

    x1 = np.clip(np.minimum(x_a, x_b), 0, orig_w)
    x2 = np.clip(np.maximum(x_a, x_b), 0, orig_w)
    y1 = np.clip(np.minimum(y_a, y_b), 0, orig_h)
    y2 = np.clip(np.maximum(y_a, y_b), 0, orig_h)

    boxes: List[BoundingBox] = []
    for i in range(len(class_ids)):
        class_id = int(class_ids[i])
        boxes.append(
            BoundingBox(
                x1=float(x1[i]),
                y1=float(y1[i]),
                x2=float(x2[i]),
                y2=float(y2[i]),
                confidence=float(confidences[i]),
                class_id=class_id,
                label=label_for(class_id, labels),
            )
        )
    return boxes


def decode_mask(
    raw: np.ndarray,
    orig_w: int,
    orig_h: int,
    threshold: float,
    letterbox: Optional[Letterbox] = None,
    canvas_size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Threshold a segmentation activation map and crop it back to the frame.

    Accepts ``[1, 1, H, W]``, ``[1, H, W]`` or ``[H, W]`` activations; only the
    first channel is used. When ``canvas_size`` (width, height) is given and
    the activation has a different resolution, it is resized to the canvas
    before thresholding so the letterbox offsets line up.

    Returns:
        uint8 mask of shape (orig_h, orig_w) with values 0 or 255.
    """
    raw = np.asarray(raw)
    if raw.ndim == 4:
        activation = raw[0, 0]
    elif raw.ndim == 3:
        activation = raw[0]
    elif raw.ndim == 2:
        activation = raw
    else:
        raise DecodeShapeUnrecognized(f"Unexpected segmentation output shape: {raw.shape}")

    activation = activation.astype(np.float32, copy=False)
    if canvas_size is not None and activation.shape != (canvas_size[1], canvas_size[0]):
        activation = cv2.resize(activation, canvas_size, interpolation=cv2.INTER_LINEAR)

    mask = np.where(activation >= threshold, 255, 0).astype(np.uint8)

    if letterbox is None:
        cropped = mask[:orig_h, :orig_w]
    else:
        cropped = mask[
            letterbox.pad_y:letterbox.pad_y + letterbox.height,
            letterbox.pad_x:letterbox.pad_x + letterbox.width,
        ]

    if cropped.shape != (orig_h, orig_w):
        cropped = cv2.resize(cropped, (orig_w, orig_h), interpolation=cv2.INTER_NEAREST)
    return np.ascontiguousarray(cropped)
