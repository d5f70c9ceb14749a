"""
Frame preprocessing: letterbox an RGBA frame onto the model canvas and
produce the planar float32 input tensor.

The frame is placed at the left edge (no horizontal padding) and centred
vertically on a black canvas. Frames larger than the canvas are downscaled
first with their aspect ratio preserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class Letterbox:
    """
    Placement of the original frame on the model canvas.

    Attributes:
        scale: Factor applied to the frame before placement (1.0 unless it had to shrink).
        pad_x: Columns of padding left of the frame (always 0).
        pad_y: Rows of padding above the frame.
        width: Width of the placed (scaled) frame on the canvas.
        height: Height of the placed (scaled) frame on the canvas.
    """
    scale: float
    pad_x: int
    pad_y: int
    width: int
    height: int


def compute_letterbox(
    frame_w: int, frame_h: int, model_w: int, model_h: int
) -> Letterbox:
    """
    Work out where a ``frame_w x frame_h`` frame lands on the model canvas.

    Vertical padding is ``(model_h - h) // 2``; odd differences truncate, so
    the extra row ends up at the bottom.
    """
    if frame_w <= 0 or frame_h <= 0:
        raise ValueError(f"frame size must be positive, got {frame_w}x{frame_h}")

    scale = min(1.0, model_w / frame_w, model_h / frame_h)
    if scale < 1.0:
        width = min(model_w, int(round(frame_w * scale)))
        height = min(model_h, int(round(frame_h * scale)))
    else:
        width, height = frame_w, frame_h

    return Letterbox(
        scale=scale,
        pad_x=0,
        pad_y=(model_h - height) // 2,
        width=width,
        height=height,
    )


def preprocess(
    frame: np.ndarray,
    input_shape: Sequence[int],
    mean: Optional[Sequence[float]] = None,
    std: Optional[Sequence[float]] = None,
) -> Tuple[np.ndarray, Letterbox]:
    """
    Convert an RGBA (or RGB) frame into the model input tensor.

    Args:
        frame: HxWx4 or HxWx3 uint8 array, RGB channel order.
        input_shape: Model input as (batch, channels, height, width).
        mean: Optional per-channel mean applied after scaling to [0, 1].
        std: Optional per-channel std applied after scaling to [0, 1].

    Returns:
        Tuple of (float32 tensor shaped [1, 3, height, width], Letterbox).
    """
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise ValueError(f"expected an HxWx4 RGBA or HxWx3 RGB frame, got shape {frame.shape}")

    _, _, model_h, model_w = (int(v) for v in input_shape)
    frame_h, frame_w = frame.shape[:2]
    box = compute_letterbox(frame_w, frame_h, model_w, model_h)

    rgb = frame[:, :, :3]
    if box.scale < 1.0:
        rgb = cv2.resize(rgb, (box.width, box.height), interpolation=cv2.INTER_LINEAR)

    canvas = np.zeros((model_h, model_w, 3), dtype=np.float32)
    canvas[box.pad_y:box.pad_y + box.height, box.pad_x:box.pad_x + box.width] = rgb
    canvas /= 255.0

    # Applies to the padding rows as well
    if mean is not None and std is not None:
        canvas -= np.asarray(mean, dtype=np.float32)
        canvas /= np.asarray(std, dtype=np.float32)

    tensor = np.ascontiguousarray(canvas.transpose(2, 0, 1))[np.newaxis, ...]
    return tensor, box
