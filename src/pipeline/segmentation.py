"""
Person segmentation pipeline producing a binary mask per frame.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from codec import decode_mask, preprocess
from inference.backend import candidate_backends
from inference.devices import DeviceEnumerator
from inference.errors import DecodeShapeUnrecognized
from inference.session import SessionFactory, SessionManager, StatusCallback
from models.config import RuntimeOptions, SegmentationConfig
from .runner import InferenceRunner


class SegmentationPipeline(InferenceRunner):
    def __init__(
        self,
        config: SegmentationConfig,
        runtime_options: Optional[RuntimeOptions] = None,
        device_enumerator: Optional[DeviceEnumerator] = None,
        session_factory: Optional[SessionFactory] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        manager = SessionManager(
            config.model_path,
            candidate_backends(config.backends, config.execution_provider),
            runtime_options=runtime_options,
            device_enumerator=device_enumerator,
            session_factory=session_factory,
            on_status=on_status,
            name="segmentation",
        )
        super().__init__(manager, config.input_name, config.output_name)
        self.config = config

    def segment(self, frame: np.ndarray) -> np.ndarray:
        """
        Segment people in one RGBA frame.

        Returns:
            uint8 mask shaped (H, W) of the input frame, 255 where a person is.
            All zeros if the model output has an unexpected shape.
        """
        self.manager.require_session()

        tensor, letterbox = preprocess(
            frame, self.config.input_shape, self.config.mean, self.config.std
        )
        raw = self._run(tensor)

        frame_h, frame_w = frame.shape[:2]
        _, _, model_h, model_w = self.config.input_shape
        try:
            return decode_mask(
                raw, frame_w, frame_h, self.config.threshold, letterbox,
                canvas_size=(model_w, model_h),
            )
        except DecodeShapeUnrecognized as e:
            logging.error(f"Segmentation decode failed: {e}")
            return np.zeros((frame_h, frame_w), dtype=np.uint8)
