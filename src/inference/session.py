"""
Backend session management.

SessionManager owns the single ONNX Runtime session of a pipeline. It walks
the candidate backends in priority order, resolving a device where one is
needed, and keeps the first session that loads on its intended provider.

Lifecycle:
    UNINITIALIZED -> INITIALIZING -> READY | FAILED
    READY -> DISPOSED
    initialize() from any settled state releases the current session first
    and always builds a fresh one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import onnxruntime as ort

from models.config import RuntimeOptions
from .backend import BackendSpec, build_session_options
from .devices import DeviceEnumerator, DeviceHandle, OnnxRuntimeDeviceEnumerator
from .errors import (
    AllBackendsFailed,
    BackendUnavailable,
    NotInitialized,
    SessionConstructionFailed,
)

StatusCallback = Callable[[str], None]
SessionFactory = Callable[[str, ort.SessionOptions, List[str], List[Dict[str, Any]]], Any]


def create_onnx_session(
    model_path: str,
    sess_options: ort.SessionOptions,
    providers: List[str],
    provider_options: List[Dict[str, Any]],
) -> ort.InferenceSession:
    return ort.InferenceSession(
        model_path,
        sess_options=sess_options,
        providers=providers,
        provider_options=provider_options,
    )


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


class SessionHandle:
    """
    Ownership token for a loaded inference session.

    The first release() consumes the token; later calls return False and do
    nothing. run() on a consumed token raises NotInitialized.
    """

    def __init__(self, session: Any, backend: str):
        self._session = session
        self.backend = backend

    @property
    def is_released(self) -> bool:
        return self._session is None

    def _require(self) -> Any:
        session = self._session
        if session is None:
            raise NotInitialized(f"Session for backend '{self.backend}' has been released")
        return session

    @property
    def input_names(self) -> List[str]:
        return [i.name for i in self._require().get_inputs()]

    @property
    def output_names(self) -> List[str]:
        return [o.name for o in self._require().get_outputs()]

    def active_providers(self) -> List[str]:
        return list(self._require().get_providers())

    def run(
        self,
        output_names: Optional[List[str]],
        feeds: Dict[str, Any],
        run_options: Optional[ort.RunOptions] = None,
    ) -> List[Any]:
        return self._require().run(output_names, feeds, run_options)

    def release(self) -> bool:
        """Release the session. Returns False if it was already released."""
        session, self._session = self._session, None
        if session is None:
            return False
        # onnxruntime frees a session when its last reference goes away
        close = getattr(session, "release", None)
        if callable(close):
            close()
        return True


@dataclass(frozen=True)
class InitResult:
    """Outcome of a successful initialize(): which backend loaded, and its session."""
    backend: str
    session: SessionHandle


class SessionManager:
    """
    Owns one inference session and selects the backend that runs it.

    Example:
        manager = SessionManager("model.onnx", candidate_backends(["cuda", "cpu"]))
        result = manager.initialize()
        outputs = result.session.run(None, {"images": tensor})
        manager.dispose()
    """

    def __init__(
        self,
        model_path: str,
        backends: Sequence[BackendSpec],
        runtime_options: Optional[RuntimeOptions] = None,
        device_enumerator: Optional[DeviceEnumerator] = None,
        session_factory: Optional[SessionFactory] = None,
        on_status: Optional[StatusCallback] = None,
        name: str = "model",
    ):
        if not backends:
            raise ValueError("At least one candidate backend is required")
        self.model_path = model_path
        self.backends = list(backends)
        self.runtime_options = runtime_options or RuntimeOptions()
        self.device_enumerator = device_enumerator or OnnxRuntimeDeviceEnumerator()
        self.session_factory = session_factory or create_onnx_session
        self.on_status = on_status
        self.name = name

        self._state = SessionState.UNINITIALIZED
        self._handle: Optional[SessionHandle] = None
        self._active_backend: Optional[BackendSpec] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == SessionState.READY and self._handle is not None

    @property
    def active_backend(self) -> Optional[BackendSpec]:
        return self._active_backend

    @property
    def active_provider(self) -> Optional[str]:
        """Kind of the backend that loaded, or None when no session is ready."""
        return self._active_backend.kind if self._active_backend else None

    def require_session(self) -> SessionHandle:
        """Return the live session handle or raise NotInitialized."""
        if not self.is_ready:
            raise NotInitialized(f"{self.name} is not initialized (state: {self._state.value})")
        return self._handle

    def _update_status(self, status: str) -> None:
        logging.info(f"[{self.name}] {status}")
        if self.on_status is None:
            return
        try:
            self.on_status(status)
        except Exception as e:
            logging.warning(f"[{self.name}] Status callback error: {e}")

    def _resolve_device(
        self, spec: BackendSpec, preferred_index: Optional[int]
    ) -> Optional[DeviceHandle]:
        if not spec.requires_device:
            return None
        self._update_status("Selecting GPU adapter...")
        device = self.device_enumerator.resolve(spec, preferred_index)
        if device is None:
            raise BackendUnavailable(f"No suitable GPU adapter found for {spec.kind}")
        self._update_status(f"Using GPU: {device.name}")
        return device

    def _construct(self, spec: BackendSpec, device: Optional[DeviceHandle]) -> SessionHandle:
        providers = spec.providers()
        provider_options: List[Dict[str, Any]] = [
            device.provider_options() if device and p == spec.provider else {}
            for p in providers
        ]
        sess_options = build_session_options(self.runtime_options)

        self._update_status(f"Loading model with {spec.kind}...")
        try:
            session = self.session_factory(self.model_path, sess_options, providers, provider_options)
        except Exception as e:
            raise SessionConstructionFailed(
                f"Failed to create session with {spec.kind}: {e}"
            ) from e

        handle = SessionHandle(session, spec.kind)
        try:
            active = handle.active_providers()
        except Exception as e:
            self._release_quietly(handle)
            raise SessionConstructionFailed(f"Could not query providers for {spec.kind}: {e}") from e

        if not active or active[0] != spec.provider:
            # onnxruntime silently fell back to another provider
            self._release_quietly(handle)
            raise SessionConstructionFailed(
                f"{spec.provider} requested but session is running on {active}"
            )
        return handle

    def _release_quietly(self, handle: Optional[SessionHandle]) -> None:
        if handle is None:
            return
        try:
            handle.release()
        except Exception as e:
            logging.warning(f"[{self.name}] Error releasing session: {e}")

    def initialize(self, preferred_device_index: Optional[int] = None) -> InitResult:
        """
        Create a session on the first backend that works.

        Args:
            preferred_device_index: GPU index to use for backends that need a device.

        Returns:
            InitResult naming the backend that loaded.

        Raises:
            AllBackendsFailed: If every candidate failed; chained from the last error.
        """
        if self._state == SessionState.INITIALIZING:
            raise RuntimeError(f"{self.name} is already initializing")

        if self._handle is not None:
            self.dispose()

        self._state = SessionState.INITIALIZING
        self._active_backend = None
        try:
            return self._select_backend(preferred_device_index)
        finally:
            if self._state == SessionState.INITIALIZING:
                self._state = SessionState.FAILED

    def _select_backend(self, preferred_device_index: Optional[int]) -> InitResult:
        self._update_status("Initializing ONNX Runtime...")

        attempts: List[Tuple[str, BaseException]] = []
        last_error: Optional[BaseException] = None

        for spec in self.backends:
            handle: Optional[SessionHandle] = None
            try:
                self._update_status(f"Trying {spec.kind.upper()} provider...")
                device = self._resolve_device(spec, preferred_device_index)
                handle = self._construct(spec, device)
            except Exception as e:
                logging.warning(f"[{self.name}] Failed to initialize with {spec.kind}: {e}")
                self._release_quietly(handle)
                attempts.append((spec.kind, e))
                last_error = e
                continue

            self._handle = handle
            self._active_backend = spec
            self._state = SessionState.READY
            self._update_status(f"Model loaded successfully with {spec.kind.upper()}")
            logging.info(
                f"[{self.name}] inputs={handle.input_names} outputs={handle.output_names} "
                f"providers={handle.active_providers()}"
            )
            return InitResult(backend=spec.kind, session=handle)

        self._state = SessionState.FAILED
        self._update_status("Failed to initialize model with any provider")
        logging.error(f"[{self.name}] Failed to initialize model with any provider. Last error: {last_error}")
        raise AllBackendsFailed(
            f"Failed to initialize {self.name} with any provider "
            f"(tried: {', '.join(kind for kind, _ in attempts)})",
            last_error=last_error,
            attempts=attempts,
        ) from last_error

    def dispose(self) -> None:
        """
        Release the current session. Safe to call repeatedly.

        The reference is cleared before release, so a repeated call finds
        nothing to release. Release errors are logged, never raised.
        """
        handle, self._handle = self._handle, None
        self._active_backend = None
        if self._state != SessionState.UNINITIALIZED or handle is not None:
            self._state = SessionState.DISPOSED
        if handle is None:
            return
        try:
            if handle.release():
                logging.info(f"[{self.name}] Session released successfully")
        except Exception as e:
            logging.warning(f"[{self.name}] Error releasing session (may already be released): {e}")
