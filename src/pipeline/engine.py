"""
Frame loop for the detection application.

Reads RGBA frames from an ObservationSource, runs the detection pipeline
(and the segmentation pipeline when configured), and optionally shows the
annotated result in an OpenCV window. Only one inference call is in flight
per pipeline at a time.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import cv2
import numpy as np

from inference.devices import OnnxRuntimeDeviceEnumerator
from inference.errors import InferenceError
from models.config import Config
from models.detection import BoundingBox
from models.frame import FrameData
from observation import ObservationSource, create_source_from_config
from .detection import DetectionPipeline
from .segmentation import SegmentationPipeline

FrameCallback = Callable[[FrameData, List[BoundingBox], Optional[np.ndarray]], None]

# Colors (BGR)
COLOR_BOX = (0, 255, 0)
COLOR_MASK = (0, 255, 0)
COLOR_TEXT = (255, 255, 255)


@dataclass
class PipelineConfig:
    """
    Configuration for the frame loop.

    Attributes:
        max_consecutive_failures: Frame read or inference failures in a row before stopping.
        stats_log_interval: Seconds between status log messages.
        display: Show an annotated cv2 window.
        max_frames: Stop after this many processed frames (None = run until the source ends).
        mask_alpha: Opacity of the segmentation overlay.
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 10.0
    display: bool = False
    max_frames: Optional[int] = None
    mask_alpha: float = 0.3


@dataclass
class PipelineStats:
    """Runtime statistics for the frame loop."""
    frame_count: int = 0
    detection_count: int = 0
    failed_frames: int = 0
    consecutive_failures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    @property
    def fps(self) -> float:
        elapsed = time.time() - self.start_time
        return self.frame_count / elapsed if elapsed > 0 else 0.0


class PipelineEngine:
    """
    Main processing loop.

    The engine initializes the pipelines before the first frame and disposes
    them when the loop ends, whatever the reason.

    Example:
        engine = PipelineEngine(source, detector, segmenter, PipelineConfig(display=True))
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: DetectionPipeline,
        segmenter: Optional[SegmentationPipeline] = None,
        config: Optional[PipelineConfig] = None,
        device_index: Optional[int] = None,
    ):
        self.source = source
        self.detector = detector
        self.segmenter = segmenter
        self.config = config or PipelineConfig()
        self.device_index = device_index
        self.stats = PipelineStats()
        self._running = False
        self._callbacks: List[FrameCallback] = []

    def add_callback(self, callback: FrameCallback) -> None:
        """Register a function called with (frame_data, boxes, mask) after each frame."""
        self._callbacks.append(callback)

    def run(self) -> None:
        """
        Initialize the pipelines, process frames until stopped or exhausted,
        then release everything.

        Raises:
            AllBackendsFailed: If a pipeline cannot be initialized.
        """
        self._running = True
        self.stats = PipelineStats()

        try:
            result = self.detector.initialize(self.device_index)
            logging.info(f"Detector running on {result.backend}")
            if self.segmenter is not None:
                result = self.segmenter.initialize(self.device_index)
                logging.info(f"Segmentation running on {result.backend}")

            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while self._running:
                frame_data = self.source.read()
                if frame_data is None:
                    logging.info("Source exhausted")
                    break

                if not self._process_frame(frame_data):
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    continue

                if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
                    break

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Stop scheduling new frames; the current frame finishes first."""
        self._running = False

    def _process_frame(self, frame_data: FrameData) -> bool:
        """Run the pipelines on one frame. Returns False if inference failed."""
        try:
            boxes = self.detector.detect(frame_data.frame)
            mask = self.segmenter.segment(frame_data.frame) if self.segmenter else None
        except InferenceError as e:
            self.stats.failed_frames += 1
            self.stats.consecutive_failures += 1
            logging.warning(
                f"Frame {frame_data.frame_index} failed ({self.stats.consecutive_failures}/"
                f"{self.config.max_consecutive_failures}): {e}"
            )
            return False

        self.stats.consecutive_failures = 0
        self.stats.frame_count += 1
        self.stats.detection_count += len(boxes)

        for callback in self._callbacks:
            try:
                callback(frame_data, boxes, mask)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        if self.config.display:
            annotated = draw_overlays(frame_data.to_bgr(), boxes, mask, self.config.mask_alpha)
            cv2.imshow("Detection", annotated)
            if cv2.waitKey(1) & 0xFF == ord("q"):
                self.stop()

        return True

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, fps={self.stats.fps:.1f}, "
                f"detections={self.stats.detection_count}, failed={self.stats.failed_frames}, "
                f"detector={self.detector.active_provider} "
                f"({self.detector.last_inference_ms or 0:.1f}ms)"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        self.detector.dispose()
        if self.segmenter is not None:
            self.segmenter.dispose()

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info(
            f"Pipeline stopped: frames={self.stats.frame_count}, detections={self.stats.detection_count}"
        )


def draw_overlays(
    frame: np.ndarray,
    boxes: List[BoundingBox],
    mask: Optional[np.ndarray] = None,
    mask_alpha: float = 0.3,
) -> np.ndarray:
    """Draw the person mask and labelled boxes onto a BGR frame in place."""
    if mask is not None and mask.shape == frame.shape[:2]:
        overlay = frame.copy()
        overlay[mask > 0] = COLOR_MASK
        cv2.addWeighted(overlay, mask_alpha, frame, 1 - mask_alpha, 0, dst=frame)

    font = cv2.FONT_HERSHEY_SIMPLEX
    for box in boxes:
        x1, y1, x2, y2 = box.as_int_tuple()
        cv2.rectangle(frame, (x1, y1), (x2, y2), COLOR_BOX, 2)

        label = f"{box.label} {box.confidence:.2f}"
        (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
        cv2.rectangle(frame, (x1, y1 - th - 6), (x1 + tw + 4, y1), COLOR_BOX, -1)
        cv2.putText(frame, label, (x1 + 2, y1 - 4), font, 0.5, COLOR_TEXT, 1)

    return frame


def create_engine_from_config(
    config: Config,
    display: bool = False,
    max_frames: Optional[int] = None,
    on_status: Optional[Callable[[str], None]] = None,
) -> PipelineEngine:
    """
    Build the source, pipelines and engine from a typed Config.

    Args:
        config: Full application config.
        display: Enable display window.
        max_frames: Optional frame limit.
        on_status: Optional sink for human-readable loading status.
    """
    source = create_source_from_config(config.source, source_id="main-camera")

    enumerator = OnnxRuntimeDeviceEnumerator(device_count=config.device_count)

    detector = DetectionPipeline(
        config.detection,
        runtime_options=config.runtime,
        device_enumerator=enumerator,
        on_status=on_status,
    )
    segmenter = (
        SegmentationPipeline(
            config.segmentation,
            runtime_options=config.runtime,
            device_enumerator=enumerator,
            on_status=on_status,
        )
        if config.segmentation is not None
        else None
    )

    pipeline_config = PipelineConfig(
        max_consecutive_failures=config.loop.max_consecutive_failures,
        stats_log_interval=config.loop.stats_log_interval,
        display=display,
        max_frames=max_frames,
    )
    return PipelineEngine(source, detector, segmenter, pipeline_config, device_index=config.device_index)
