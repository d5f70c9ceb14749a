"""
ObservationSource interface for pluggable frame sources.

Sources hand the pipelines fixed-size RGBA frames wrapped in FrameData,
whatever the underlying input (webcam, video file, stream).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier for this source (e.g., "webcam").
        resolution: Requested (width, height). None = use source default.
        fps: Requested frames per second. None = use source default.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle: open() -> read() repeatedly -> close(). Also usable as a
    context manager and as an iterator over FrameData:

        with OpenCVSource(config) as source:
            for frame_data in source:
                boxes = detector.detect(frame_data.frame)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open()."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open the source. Must be called before read().

        Raises:
            RuntimeError: If the source cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Return the next RGBA frame, or None if none is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """Yield frames until the source is exhausted or closed."""
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        while self._is_open:
            frame_data = self.read()
            if frame_data is None:
                return
            yield frame_data
