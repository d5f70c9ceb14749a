"""
Shared per-frame inference logic for the detection and segmentation pipelines.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from inference.backend import quiet_run_options
from inference.errors import InferenceRunFailed
from inference.session import InitResult, SessionManager


class InferenceRunner:
    """
    Owns a SessionManager and runs single-input models through it.

    Subclasses provide the preprocessing and decoding; this class handles
    lifecycle delegation, the GPU retry policy and timing.
    """

    def __init__(self, manager: SessionManager, input_name: str, output_name: Optional[str] = None):
        self.manager = manager
        self.input_name = input_name
        self.output_name = output_name
        self.last_inference_ms: Optional[float] = None

    def initialize(self, device_index: Optional[int] = None) -> InitResult:
        return self.manager.initialize(device_index)

    def dispose(self) -> None:
        self.manager.dispose()

    @property
    def is_ready(self) -> bool:
        return self.manager.is_ready

    @property
    def active_provider(self) -> Optional[str]:
        return self.manager.active_provider

    def get_active_provider(self) -> Optional[str]:
        return self.active_provider

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()

    def _select_output(self, names: Sequence[str], outputs: List[Any]) -> np.ndarray:
        if self.output_name and self.output_name in names:
            return np.asarray(outputs[list(names).index(self.output_name)])
        return np.asarray(outputs[0])

    def _run(self, tensor: np.ndarray) -> np.ndarray:
        """
        Run the model on one input tensor and return the selected output.

        GPU backends first run with reduced log verbosity and get one retry
        with default options if that fails.

        Raises:
            NotInitialized: If no session is ready.
            InferenceRunFailed: If the run (and its retry, where allowed) failed.
        """
        session = self.manager.require_session()
        backend = self.manager.active_backend
        feeds: Dict[str, np.ndarray] = {self.input_name: tensor}

        start = time.perf_counter()
        if backend is not None and backend.quiet_run:
            try:
                outputs = session.run(None, feeds, quiet_run_options())
            except Exception as gpu_error:
                logging.warning(
                    f"{backend.kind.upper()} execution failed, falling back to default run options: {gpu_error}"
                )
                try:
                    outputs = session.run(None, feeds)
                except Exception as e:
                    raise InferenceRunFailed(f"Inference failed on {backend.kind}: {e}") from e
        else:
            try:
                outputs = session.run(None, feeds)
            except Exception as e:
                kind = backend.kind if backend else "unknown"
                raise InferenceRunFailed(f"Inference failed on {kind}: {e}") from e

        self.last_inference_ms = (time.perf_counter() - start) * 1000.0
        logging.debug(
            f"[{self.manager.name}] Inference time: {self.last_inference_ms:.2f}ms "
            f"(Provider: {self.active_provider})"
        )
        return self._select_output(session.output_names, outputs)
