"""
Device resolution for backends that need a concrete GPU.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

import onnxruntime as ort

from .backend import BACKENDS, BackendSpec


@dataclass(frozen=True)
class DeviceHandle:
    """A resolved device: provider plus device index."""
    index: int
    provider: str
    name: str

    def provider_options(self) -> dict:
        return {"device_id": self.index}


class DeviceEnumerator(Protocol):
    def resolve(self, spec: BackendSpec, preferred_index: Optional[int] = None) -> Optional[DeviceHandle]:
        ...


class OnnxRuntimeDeviceEnumerator:
    """
    Resolve devices from what the installed onnxruntime build offers.

    ONNX Runtime does not list physical adapters, so a device index is
    accepted when the provider is available and the index is within
    ``device_count`` (when one is configured).
    """

    def __init__(self, device_count: Optional[int] = None):
        self.device_count = device_count

    def available_providers(self) -> List[str]:
        return list(ort.get_available_providers())

    def resolve(self, spec: BackendSpec, preferred_index: Optional[int] = None) -> Optional[DeviceHandle]:
        available = self.available_providers()
        logging.debug(f"Available execution providers: {available}")
        if spec.provider not in available:
            return None

        index = preferred_index if preferred_index is not None else 0
        if index < 0:
            return None
        if self.device_count is not None and index >= self.device_count:
            return None

        return DeviceHandle(index=index, provider=spec.provider, name=f"{spec.kind.upper()} device {index}")


def available_backends(enumerator: Optional[OnnxRuntimeDeviceEnumerator] = None) -> List[str]:
    """List backend kinds the installed runtime can offer, in priority order."""
    providers = (enumerator or OnnxRuntimeDeviceEnumerator()).available_providers()
    return [kind for kind, spec in BACKENDS.items() if spec.provider in providers]
