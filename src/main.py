"""
Real-time whole-body detection and person segmentation.

Reads frames from a webcam or video file, runs the detector (and optionally
the person segmentation model) through the best available ONNX Runtime
backend, and logs or displays the results.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show annotated frames in a window
    --source: Override source.device_id (camera index or video path)
    --device-index: GPU index for backends that need a device
    --segment / --no-segment: Force person segmentation on or off
    --max-frames: Stop after N frames
"""

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import yaml

from inference.backend import BACKENDS
from inference.devices import available_backends
from inference.errors import AllBackendsFailed
from models.config import Config
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_OPTIMIZATION_LEVELS = ['disable', 'basic', 'extended', 'all']


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)

    Raises:
        yaml.YAMLError: If a config file is not valid YAML.
    """
    config_dir = os.path.dirname(config_path)
    base_path = os.path.join(config_dir, "default.yaml")
    local_overrides_path = os.path.join(config_dir, "config.yaml")

    merged: Dict[str, Any] = _read_yaml(base_path) if os.path.exists(base_path) else {}
    if os.path.exists(local_overrides_path):
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

    # Explicit path last, unless it is the local override file itself
    if (
        os.path.exists(config_path)
        and os.path.abspath(config_path) != os.path.abspath(local_overrides_path)
        and os.path.abspath(config_path) != os.path.abspath(base_path)
    ):
        merged = _deep_merge(merged, _read_yaml(config_path))

    return merged


def _is_probability(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1


def _validate_model_section(name: str, section: Dict[str, Any]) -> Optional[str]:
    """Checks shared by the detection and segmentation sections."""
    if not isinstance(section.get('model_path'), str) or not section.get('model_path'):
        return f"{name}.model_path is required"

    shape = section.get('input_shape', [1, 3, 640, 640])
    if not isinstance(shape, list) or len(shape) != 4:
        return f"{name}.input_shape must be a list of [batch, channels, height, width]"
    if not all(isinstance(x, int) and x > 0 for x in shape):
        return f"{name}.input_shape values must be positive integers"
    if shape[1] != 3:
        return f"{name}.input_shape must have 3 channels"

    backends = section.get('backends')
    if backends is not None:
        if not isinstance(backends, list) or not backends:
            return f"{name}.backends must be a non-empty list"
        unknown = [b for b in backends if b not in BACKENDS]
        if unknown:
            return f"{name}.backends has unknown entries {unknown}; expected: {', '.join(BACKENDS)}"

    provider = section.get('execution_provider', 'auto')
    if provider != 'auto' and provider not in BACKENDS:
        return f"{name}.execution_provider must be one of: auto, {', '.join(BACKENDS)}"

    for key in ('mean', 'std'):
        if key in section and section[key] is not None:
            values = section[key]
            if not isinstance(values, list) or len(values) != 3:
                return f"{name}.{key} must be a list of 3 numbers"
    if 'std' in section and section['std'] is not None and any(v == 0 for v in section['std']):
        return f"{name}.std values must be non-zero"

    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['source', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate source settings
    source = config.get('source', {}) or {}
    device_id = source.get('device_id', 0)
    if not isinstance(device_id, (int, str)):
        return False, "source.device_id must be an integer (index) or string (path/URL)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "source.device_id integer must be non-negative"
    resolution = source.get('resolution', [640, 480])
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "source.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in resolution):
        return False, "source.resolution values must be positive integers"

    # Validate detection settings
    detection = config.get('detection', {}) or {}
    error = _validate_model_section('detection', detection)
    if error:
        return False, error
    for key in ('confidence_threshold', 'iou_threshold'):
        if key in detection and not _is_probability(detection[key]):
            return False, f"detection.{key} must be a number between 0 and 1"
    excluded = detection.get('excluded_class_ids')
    if excluded is not None:
        if not isinstance(excluded, list) or not all(isinstance(x, int) for x in excluded):
            return False, "detection.excluded_class_ids must be a list of integers"

    # Optional segmentation settings
    segmentation = config.get('segmentation') or {}
    if segmentation and segmentation.get('enabled', True):
        error = _validate_model_section('segmentation', segmentation)
        if error:
            return False, error
        if 'threshold' in segmentation and not _is_probability(segmentation['threshold']):
            return False, "segmentation.threshold must be a number between 0 and 1"

    # Optional runtime settings
    runtime = config.get('runtime') or {}
    level = runtime.get('graph_optimization_level', 'all')
    if level not in VALID_OPTIMIZATION_LEVELS:
        return False, f"runtime.graph_optimization_level must be one of: {', '.join(VALID_OPTIMIZATION_LEVELS)}"
    for key in ('intra_op_num_threads', 'inter_op_num_threads'):
        if key in runtime and (not isinstance(runtime[key], int) or runtime[key] < 0):
            return False, f"runtime.{key} must be a non-negative integer"

    device_index = config.get('device_index')
    if device_index is not None and (not isinstance(device_index, int) or device_index < 0):
        return False, "device_index must be a non-negative integer"
    device_count = config.get('device_count')
    if device_count is not None and (not isinstance(device_count, int) or device_count < 1):
        return False, "device_count must be a positive integer"
    if device_index is not None and device_count is not None and device_index >= device_count:
        return False, "device_index must be less than device_count"

    # Validate log settings
    if not isinstance(config['log_path'], str) or not config['log_path']:
        return False, "log_path must be a non-empty string"
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def _parse_source(value: str):
    return int(value) if value.isdigit() else value


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Real-time whole-body detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show annotated frames')
    parser.add_argument('--source', type=str, default=None,
                        help='Camera index or video path (overrides source.device_id)')
    parser.add_argument('--device-index', type=int, default=None,
                        help='GPU index for backends that need a device')
    parser.add_argument('--segment', dest='segment', action='store_true', default=None,
                        help='Enable person segmentation')
    parser.add_argument('--no-segment', dest='segment', action='store_false',
                        help='Disable person segmentation')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    if args.source is not None:
        config.setdefault('source', {})['device_id'] = _parse_source(args.source)
    if args.device_index is not None:
        config['device_index'] = args.device_index
    if args.segment is not None and config.get('segmentation'):
        config['segmentation']['enabled'] = args.segment

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting whole-body detection")
    logging.info(f"Available backends: {available_backends()}")

    engine = create_engine_from_config(
        Config.from_dict(config),
        display=args.display,
        max_frames=args.max_frames,
    )

    try:
        engine.run()
    except AllBackendsFailed as e:
        logging.error(f"Could not load model: {e} (last error: {e.last_error})")
        sys.exit(1)
    except RuntimeError as e:
        logging.error(f"Pipeline error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
