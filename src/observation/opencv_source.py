"""
OpenCV-based observation source.

Supports webcams (device_id as int) and video files or stream URLs
(device_id as str). Frames are converted from OpenCV's BGR to RGBA.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2

from models.config import SourceConfig
from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV capture.

    Attributes:
        device_id: Camera index (int), or file path / stream URL (str).
        buffer_size: Capture buffer size (small values reduce latency).
        max_retries: Attempts made to open the device.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3

    @classmethod
    def from_source_config(cls, cfg: SourceConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: build from the typed ``source`` config section."""
        resolution = tuple(cfg.resolution) if cfg.resolution else None
        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=cfg.fps,
            device_id=cfg.device_id,
            max_retries=cfg.max_retries,
        )


class OpenCVSource(ObservationSource):
    """
    Wraps cv2.VideoCapture and yields RGBA FrameData.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(640, 480))
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        cfg = self._opencv_config
        for attempt in range(1, cfg.max_retries + 1):
            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            logging.warning(
                f"Failed to open device {self.device_id} (attempt {attempt}/{cfg.max_retries})"
            )
            if attempt < cfg.max_retries:
                time.sleep(min(2 ** attempt, 10))
        else:
            raise RuntimeError(
                f"Failed to open device {self.device_id} after {cfg.max_retries} attempts"
            )

        if isinstance(self.device_id, int) and cfg.resolution:
            w, h = cfg.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if cfg.fps:
                self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, device={self.device_id}, "
            f"resolution={cfg.resolution}"
        )

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            return None

        self._frame_index += 1
        return FrameData.from_bgr(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False

    def get_video_info(self) -> Dict[str, Any]:
        if self._cap is None or not self._cap.isOpened():
            return {}
        return {
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self._cap.get(cv2.CAP_PROP_FPS),
        }


def create_source_from_config(cfg: SourceConfig, source_id: str = "camera") -> OpenCVSource:
    return OpenCVSource(OpenCVSourceConfig.from_source_config(cfg, source_id=source_id))
