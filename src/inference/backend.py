"""
Inference backend table.

Each backend is a strategy record describing one ONNX Runtime execution
provider. The session manager walks these in priority order until one loads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import onnxruntime as ort

from models.config import RuntimeOptions


@dataclass(frozen=True)
class BackendSpec:
    """
    One candidate backend.

    Attributes:
        kind: Short identifier used in config and status ("cuda", "cpu", ...).
        provider: ONNX Runtime execution provider name.
        requires_device: Whether a concrete GPU device must be resolved first.
        quiet_run: Whether runs start with reduced-verbosity RunOptions.
    """
    kind: str
    provider: str
    requires_device: bool = False
    quiet_run: bool = False

    def providers(self) -> List[str]:
        """Provider list for a session; CPU covers ops the primary cannot run."""
        if self.provider == CPU.provider:
            return [self.provider]
        return [self.provider, CPU.provider]


TENSORRT = BackendSpec("tensorrt", "TensorrtExecutionProvider", requires_device=True, quiet_run=True)
CUDA = BackendSpec("cuda", "CUDAExecutionProvider", requires_device=True, quiet_run=True)
DIRECTML = BackendSpec("directml", "DmlExecutionProvider", requires_device=True, quiet_run=True)
CPU = BackendSpec("cpu", "CPUExecutionProvider")

BACKENDS: Dict[str, BackendSpec] = {
    spec.kind: spec for spec in (TENSORRT, CUDA, DIRECTML, CPU)
}

_OPTIMIZATION_LEVELS = {
    "disable": ort.GraphOptimizationLevel.ORT_DISABLE_ALL,
    "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
    "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
    "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
}


def candidate_backends(
    kinds: Sequence[str], preferred: Optional[str] = "auto"
) -> List[BackendSpec]:
    """
    Resolve configured backend names into the ordered candidate list.

    A preferred backend other than "auto" is moved to the front (and added
    if the configured list omitted it).

    Raises:
        ValueError: If a name is not a known backend.
    """
    ordered: List[str] = []
    for kind in kinds:
        if kind not in BACKENDS:
            raise ValueError(f"Unknown backend '{kind}' (expected one of: {', '.join(BACKENDS)})")
        if kind not in ordered:
            ordered.append(kind)

    if preferred and preferred != "auto":
        if preferred not in BACKENDS:
            raise ValueError(f"Unknown backend '{preferred}' (expected one of: {', '.join(BACKENDS)})")
        if preferred in ordered:
            ordered.remove(preferred)
        ordered.insert(0, preferred)

    return [BACKENDS[kind] for kind in ordered]


def build_session_options(options: RuntimeOptions) -> ort.SessionOptions:
    """Translate RuntimeOptions into onnxruntime SessionOptions."""
    level = _OPTIMIZATION_LEVELS.get(options.graph_optimization_level)
    if level is None:
        raise ValueError(
            f"Unknown graph_optimization_level '{options.graph_optimization_level}'"
        )

    sess_options = ort.SessionOptions()
    sess_options.graph_optimization_level = level
    sess_options.log_severity_level = options.log_severity_level
    if options.intra_op_num_threads:
        sess_options.intra_op_num_threads = options.intra_op_num_threads
    if options.inter_op_num_threads:
        sess_options.inter_op_num_threads = options.inter_op_num_threads
    return sess_options


def quiet_run_options() -> ort.RunOptions:
    """RunOptions used for the first attempt on GPU backends."""
    run_options = ort.RunOptions()
    run_options.log_severity_level = 3
    run_options.log_verbosity_level = 0
    return run_options
