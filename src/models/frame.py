"""
FrameData model for frames handed to the inference pipelines.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np


@dataclass
class FrameData:
    """
    An RGBA frame plus capture metadata.

    Attributes:
        frame: Pixel buffer as a numpy array (HxWx4, uint8, RGBA order).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the camera/video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_bgr(
        cls,
        frame_bgr: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Wrap an OpenCV BGR capture, converting it to RGBA."""
        rgba = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGBA)
        h, w = rgba.shape[:2]
        return cls(
            frame=rgba,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    def to_bgr(self) -> np.ndarray:
        """Return a BGR copy for OpenCV drawing/display."""
        return cv2.cvtColor(self.frame, cv2.COLOR_RGBA2BGR)

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
