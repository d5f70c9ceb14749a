"""
Error types raised by the inference layer.
"""

from __future__ import annotations

from typing import List, Optional, Tuple


class InferenceError(RuntimeError):
    """Base class for inference pipeline errors."""


class BackendUnavailable(InferenceError):
    """A candidate backend or its device could not be resolved."""


class SessionConstructionFailed(InferenceError):
    """The model could not be loaded/compiled for a given backend."""


class AllBackendsFailed(InferenceError):
    """Every candidate backend failed during initialize()."""

    def __init__(
        self,
        message: str,
        last_error: Optional[BaseException] = None,
        attempts: Optional[List[Tuple[str, BaseException]]] = None,
    ):
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts or []


class NotInitialized(InferenceError):
    """detect()/segment() called without a ready session."""


class InferenceRunFailed(InferenceError):
    """Running the model failed, including the default-options retry."""


class DecodeShapeUnrecognized(InferenceError):
    """The raw output tensor does not have a supported layout."""
