"""
Detection pipeline: preprocess -> run -> decode -> suppress.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from algorithms.suppression import suppress
from codec import decode_detections, preprocess
from inference.backend import candidate_backends
from inference.devices import DeviceEnumerator
from inference.session import SessionFactory, SessionManager, StatusCallback
from models.config import ModelConfig, RuntimeOptions
from models.detection import BoundingBox
from models.labels import WHOLEBODY_LABELS
from .runner import InferenceRunner


class DetectionPipeline(InferenceRunner):
    """
    Whole-body detector over RGBA frames.

    Example:
        with DetectionPipeline(ModelConfig(model_path="models/yolov9.onnx")) as detector:
            boxes = detector.detect(rgba_frame)
    """

    def __init__(
        self,
        config: ModelConfig,
        runtime_options: Optional[RuntimeOptions] = None,
        device_enumerator: Optional[DeviceEnumerator] = None,
        session_factory: Optional[SessionFactory] = None,
        on_status: Optional[StatusCallback] = None,
        labels: Sequence[str] = WHOLEBODY_LABELS,
    ):
        manager = SessionManager(
            config.model_path,
            candidate_backends(config.backends, config.execution_provider),
            runtime_options=runtime_options,
            device_enumerator=device_enumerator,
            session_factory=session_factory,
            on_status=on_status,
            name="detector",
        )
        super().__init__(manager, config.input_name, config.output_name)
        self.config = config
        self.labels = tuple(labels)

    def detect(self, frame: np.ndarray) -> List[BoundingBox]:
        """
        Detect objects in one RGBA frame.

        Args:
            frame: HxWx4 uint8 RGBA frame.

        Returns:
            Suppressed boxes in frame coordinates, highest confidence first.

        Raises:
            NotInitialized: If initialize() has not succeeded.
            InferenceRunFailed: If inference failed, including the retry.
        """
        self.manager.require_session()

        tensor, letterbox = preprocess(
            frame, self.config.input_shape, self.config.mean, self.config.std
        )
        raw = self._run(tensor)

        frame_h, frame_w = frame.shape[:2]
        boxes = decode_detections(
            raw,
            frame_w,
            frame_h,
            self.config.confidence_threshold,
            self.config.excluded_class_ids,
            letterbox,
            self.labels,
        )
        return suppress(boxes, self.config.iou_threshold)
