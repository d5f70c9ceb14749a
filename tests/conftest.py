"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from fakes import FakeDeviceEnumerator, FakeSessionFactory  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  model_path: "models/detector.onnx"
  input_shape: [1, 3, 640, 640]
  confidence_threshold: 0.5
  iou_threshold: 0.45

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "device_id": 0,
            "resolution": [640, 480],
            "fps": 30,
        },
        "detection": {
            "model_path": "models/detector.onnx",
            "input_shape": [1, 3, 640, 640],
            "confidence_threshold": 0.5,
            "iou_threshold": 0.45,
            "execution_provider": "auto",
            "backends": ["cuda", "cpu"],
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def rgba_frame():
    """A 640x480 black RGBA frame."""
    frame = np.zeros((480, 640, 4), dtype=np.uint8)
    frame[..., 3] = 255
    return frame


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


@pytest.fixture
def device_enumerator():
    return FakeDeviceEnumerator()


@pytest.fixture
def status_log():
    """Collects status strings passed to on_status."""
    return []
