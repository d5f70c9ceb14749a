"""
Observation layer for pluggable frame sources.

Each source implements ObservationSource and returns RGBA FrameData objects,
keeping capture details out of the inference pipelines.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, create_source_from_config

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
