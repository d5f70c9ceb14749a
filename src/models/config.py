"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .labels import DEFAULT_EXCLUDED_CLASS_IDS

DEFAULT_BACKENDS: List[str] = ["tensorrt", "cuda", "directml", "cpu"]

IMAGENET_MEAN: Tuple[float, float, float] = (0.485, 0.456, 0.406)
IMAGENET_STD: Tuple[float, float, float] = (0.229, 0.224, 0.225)


def _triplet(values: Optional[List[float]]) -> Optional[Tuple[float, float, float]]:
    if values is None:
        return None
    if len(values) != 3:
        raise ValueError(f"expected 3 per-channel values, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _shape(values: List[int]) -> Tuple[int, int, int, int]:
    if len(values) != 4:
        raise ValueError(f"input_shape must be [batch, channels, height, width], got {values}")
    return (int(values[0]), int(values[1]), int(values[2]), int(values[3]))


@dataclass
class SourceConfig:
    """Frame source configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            max_retries=d.get("max_retries", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "max_retries": self.max_retries,
        }


@dataclass(frozen=True)
class RuntimeOptions:
    """
    Engine tuning applied to every session a pipeline creates.

    Passed once at construction instead of being set process-wide.

    Attributes:
        intra_op_num_threads: Threads used inside an operator (0 = runtime default).
        inter_op_num_threads: Threads used across operators (0 = runtime default).
        graph_optimization_level: One of "disable", "basic", "extended", "all".
        log_severity_level: Session log level (0 verbose .. 4 fatal).
    """
    intra_op_num_threads: int = 0
    inter_op_num_threads: int = 0
    graph_optimization_level: str = "all"
    log_severity_level: int = 2

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RuntimeOptions":
        return cls(
            intra_op_num_threads=d.get("intra_op_num_threads", 0),
            inter_op_num_threads=d.get("inter_op_num_threads", 0),
            graph_optimization_level=d.get("graph_optimization_level", "all"),
            log_severity_level=d.get("log_severity_level", 2),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intra_op_num_threads": self.intra_op_num_threads,
            "inter_op_num_threads": self.inter_op_num_threads,
            "graph_optimization_level": self.graph_optimization_level,
            "log_severity_level": self.log_severity_level,
        }


@dataclass(frozen=True)
class ModelConfig:
    """
    Detection model configuration.

    ``execution_provider`` is the preferred backend ("auto" keeps the default
    priority order). The backend that actually loaded is reported by the
    pipeline, never written back here.
    """
    model_path: str
    input_shape: Tuple[int, int, int, int] = (1, 3, 640, 640)
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.45
    execution_provider: str = "auto"
    backends: Tuple[str, ...] = tuple(DEFAULT_BACKENDS)
    mean: Optional[Tuple[float, float, float]] = None
    std: Optional[Tuple[float, float, float]] = None
    excluded_class_ids: frozenset = DEFAULT_EXCLUDED_CLASS_IDS
    input_name: str = "images"
    output_name: str = "output0"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        excluded = d.get("excluded_class_ids")
        return cls(
            model_path=d.get("model_path", ""),
            input_shape=_shape(d.get("input_shape", [1, 3, 640, 640])),
            confidence_threshold=d.get("confidence_threshold", 0.5),
            iou_threshold=d.get("iou_threshold", 0.45),
            execution_provider=d.get("execution_provider", "auto"),
            backends=tuple(d.get("backends") or DEFAULT_BACKENDS),
            mean=_triplet(d.get("mean")),
            std=_triplet(d.get("std")),
            excluded_class_ids=(
                frozenset(excluded) if excluded is not None else DEFAULT_EXCLUDED_CLASS_IDS
            ),
            input_name=d.get("input_name", "images"),
            output_name=d.get("output_name", "output0"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "model_path": self.model_path,
            "input_shape": list(self.input_shape),
            "confidence_threshold": self.confidence_threshold,
            "iou_threshold": self.iou_threshold,
            "execution_provider": self.execution_provider,
            "backends": list(self.backends),
            "excluded_class_ids": sorted(self.excluded_class_ids),
            "input_name": self.input_name,
            "output_name": self.output_name,
        }
        if self.mean is not None:
            d["mean"] = list(self.mean)
        if self.std is not None:
            d["std"] = list(self.std)
        return d


@dataclass(frozen=True)
class SegmentationConfig:
    """Person segmentation model configuration."""
    model_path: str
    input_shape: Tuple[int, int, int, int] = (1, 3, 640, 640)
    threshold: float = 0.5
    execution_provider: str = "auto"
    backends: Tuple[str, ...] = tuple(DEFAULT_BACKENDS)
    mean: Optional[Tuple[float, float, float]] = IMAGENET_MEAN
    std: Optional[Tuple[float, float, float]] = IMAGENET_STD
    input_name: str = "input"
    output_name: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SegmentationConfig":
        return cls(
            model_path=d.get("model_path", ""),
            input_shape=_shape(d.get("input_shape", [1, 3, 640, 640])),
            threshold=d.get("threshold", 0.5),
            execution_provider=d.get("execution_provider", "auto"),
            backends=tuple(d.get("backends") or DEFAULT_BACKENDS),
            mean=_triplet(d.get("mean", list(IMAGENET_MEAN))),
            std=_triplet(d.get("std", list(IMAGENET_STD))),
            input_name=d.get("input_name", "input"),
            output_name=d.get("output_name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "model_path": self.model_path,
            "input_shape": list(self.input_shape),
            "threshold": self.threshold,
            "execution_provider": self.execution_provider,
            "backends": list(self.backends),
            "input_name": self.input_name,
        }
        if self.mean is not None:
            d["mean"] = list(self.mean)
        if self.std is not None:
            d["std"] = list(self.std)
        if self.output_name is not None:
            d["output_name"] = self.output_name
        return d


@dataclass
class LoopConfig:
    """Frame loop behaviour for the CLI."""
    max_consecutive_failures: int = 10
    stats_log_interval: float = 10.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            max_consecutive_failures=d.get("max_consecutive_failures", 10),
            stats_log_interval=d.get("stats_log_interval", 10.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_consecutive_failures": self.max_consecutive_failures,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    detection: ModelConfig
    source: SourceConfig = field(default_factory=SourceConfig)
    segmentation: Optional[SegmentationConfig] = None
    runtime: RuntimeOptions = field(default_factory=RuntimeOptions)
    loop: LoopConfig = field(default_factory=LoopConfig)
    device_index: Optional[int] = None
    device_count: Optional[int] = None
    log_path: str = "logs/detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        seg_dict = d.get("segmentation")
        segmentation = (
            SegmentationConfig.from_dict(seg_dict)
            if seg_dict and seg_dict.get("enabled", True)
            else None
        )
        return cls(
            detection=ModelConfig.from_dict(d.get("detection", {})),
            source=SourceConfig.from_dict(d.get("source", {})),
            segmentation=segmentation,
            runtime=RuntimeOptions.from_dict(d.get("runtime", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            device_index=d.get("device_index"),
            device_count=d.get("device_count"),
            log_path=d.get("log_path", "logs/detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        d: Dict[str, Any] = {
            "source": self.source.to_dict(),
            "detection": self.detection.to_dict(),
            "runtime": self.runtime.to_dict(),
            "loop": self.loop.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
        if self.segmentation:
            d["segmentation"] = self.segmentation.to_dict()
        if self.device_index is not None:
            d["device_index"] = self.device_index
        if self.device_count is not None:
            d["device_count"] = self.device_count
        return d
