"""
Typed models for the detection application.

Boxes, frames, configuration, and the static label table shared by the
codec, the inference pipelines and the CLI.
"""

from .frame import FrameData
from .detection import BoundingBox, boxes_to_numpy
from .labels import WHOLEBODY_LABELS, DEFAULT_EXCLUDED_CLASS_IDS, label_for
from .config import (
    Config,
    SourceConfig,
    RuntimeOptions,
    ModelConfig,
    SegmentationConfig,
    LoopConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingBox",
    "boxes_to_numpy",
    # Labels
    "WHOLEBODY_LABELS",
    "DEFAULT_EXCLUDED_CLASS_IDS",
    "label_for",
    # Config
    "Config",
    "SourceConfig",
    "RuntimeOptions",
    "ModelConfig",
    "SegmentationConfig",
    "LoopConfig",
]
