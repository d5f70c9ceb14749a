"""
Pipeline module for the detection application.

The pipeline orchestrates the per-frame flow:
- Detection: preprocess, run, decode, suppress
- Segmentation: preprocess, run, threshold and crop the mask
- Frame loop (engine): source -> pipelines -> overlay/display -> stats
"""

from .runner import InferenceRunner
from .detection import DetectionPipeline
from .segmentation import SegmentationPipeline
from .engine import PipelineEngine, PipelineConfig, create_engine_from_config

__all__ = [
    "InferenceRunner",
    "DetectionPipeline",
    "SegmentationPipeline",
    "PipelineEngine",
    "PipelineConfig",
    "create_engine_from_config",
]
