"""
Inference layer: backend table, device resolution, session lifecycle and errors.
"""

from .backend import BACKENDS, BackendSpec, candidate_backends
from .devices import DeviceEnumerator, DeviceHandle, OnnxRuntimeDeviceEnumerator, available_backends
from .errors import (
    InferenceError,
    BackendUnavailable,
    SessionConstructionFailed,
    AllBackendsFailed,
    NotInitialized,
    InferenceRunFailed,
    DecodeShapeUnrecognized,
)
from .session import InitResult, SessionHandle, SessionManager, SessionState

__all__ = [
    "BACKENDS",
    "BackendSpec",
    "candidate_backends",
    "DeviceEnumerator",
    "DeviceHandle",
    "OnnxRuntimeDeviceEnumerator",
    "available_backends",
    "InferenceError",
    "BackendUnavailable",
    "SessionConstructionFailed",
    "AllBackendsFailed",
    "NotInitialized",
    "InferenceRunFailed",
    "DecodeShapeUnrecognized",
    "InitResult",
    "SessionHandle",
    "SessionManager",
    "SessionState",
]
