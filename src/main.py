"""
Main application for the juggle counter.

Opens the camera, counts catches of the calibrated ball color crossing the
reference line, and keeps the count in a text file for broadcast overlays.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Enable visual display
    --web: Serve the control API
    --source: Camera index or video file (overrides camera.device_id)
    --mode: Tracking mode at start (single or multi)
"""

import os
import sys
import argparse
import logging
import threading
from typing import Dict, Any, Tuple, Optional, Union

import uvicorn
import yaml

from models.color import Color
from models.config import (
    CIRCULARITY_METHODS,
    COOLDOWN_SCOPES,
    MATCHING_METHODS,
    Config,
    PipelineConfig,
    TrackingMode,
)
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from pipeline.session import JuggleSession
from storage.count_sink import CountFileSink
from web.app import create_app


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Explicit path last, unless it is the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_range(section: Dict[str, Any], key: str, lo: float, hi: Optional[float], label: str) -> Optional[str]:
    """Error message if ``section[key]`` is present and not a number in [lo, hi]."""
    if key not in section:
        return None
    value = section[key]
    if not _is_number(value):
        return f"{label}.{key} must be a number"
    if value < lo or (hi is not None and value > hi):
        upper = hi if hi is not None else "inf"
        return f"{label}.{key} must be between {lo} and {upper}"
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
    required_sections = ['camera', 'detection', 'counting', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings
    camera = config.get('camera', {})
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' in camera:
        if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in camera['resolution']):
            return False, "camera.resolution values must be positive integers"

    if 'fps' in camera:
        if not isinstance(camera['fps'], int) or camera['fps'] <= 0:
            return False, "camera.fps must be a positive integer"

    if camera.get('backend', 'opencv') != 'opencv':
        return False, "camera.backend must be: opencv"

    # Validate detection settings
    detection = config.get('detection', {}) or {}
    if 'target_color' in detection:
        if not isinstance(detection['target_color'], str) or Color.parse(detection['target_color']) is None:
            return False, "detection.target_color must be '#rrggbb' or 'rgb(r, g, b)'"
    for key, lo, hi in (
        ('color_tolerance_percent', 0, 100),
        ('hue_weight', 0, 10),
        ('circularity_threshold', 0, 1),
        ('min_blob_size', 1, 1000),
        ('sample_stride', 1, None),
    ):
        err = _check_range(detection, key, lo, hi, 'detection')
        if err:
            return False, err
    if 'cluster_radius' in detection and not (_is_number(detection['cluster_radius']) and detection['cluster_radius'] > 0):
        return False, "detection.cluster_radius must be a positive number"
    if detection.get('circularity_method', CIRCULARITY_METHODS[0]) not in CIRCULARITY_METHODS:
        return False, f"detection.circularity_method must be one of: {', '.join(CIRCULARITY_METHODS)}"

    # Optional tracking settings
    tracking = config.get('tracking', {}) or {}
    if tracking:
        if 'mode' in tracking and tracking['mode'] not in [m.value for m in TrackingMode]:
            return False, "tracking.mode must be one of: single, multi"
        mtd = tracking.get('max_tracking_distance', 1)
        if not _is_number(mtd) or mtd <= 0:
            return False, "tracking.max_tracking_distance must be a positive number"
        for key in ('max_missed_frames', 'initial_object_id'):
            if key in tracking and (not isinstance(tracking[key], int) or isinstance(tracking[key], bool) or tracking[key] < 0):
                return False, f"tracking.{key} must be a non-negative integer"
        if tracking.get('matching', MATCHING_METHODS[0]) not in MATCHING_METHODS:
            return False, f"tracking.matching must be one of: {', '.join(MATCHING_METHODS)}"

    # Validate counting settings
    counting = config.get('counting', {}) or {}
    for key, lo, hi in (
        ('line_height_percent', 0, 100),
        ('catch_multiplier', 1, 10),
        ('cooldown_frames', 0, None),
    ):
        err = _check_range(counting, key, lo, hi, 'counting')
        if err:
            return False, err
    if counting.get('cooldown_scope', COOLDOWN_SCOPES[0]) not in COOLDOWN_SCOPES:
        return False, f"counting.cooldown_scope must be one of: {', '.join(COOLDOWN_SCOPES)}"

    # Optional counter file settings
    sink = config.get('sink', {}) or {}
    if 'count_file_path' in sink and (not isinstance(sink['count_file_path'], str) or not sink['count_file_path']):
        return False, "sink.count_file_path must be a non-empty string"

    # Optional web settings
    web = config.get('web', {}) or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be an integer between 1 and 65535"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def _parse_source(value: str) -> Union[int, str]:
    """Camera index if numeric, else a video file path."""
    return int(value) if value.isdigit() else value


def build_session(config: Config) -> JuggleSession:
    """Create the counting session (and counter file) from typed config."""
    sink = CountFileSink(config.sink.count_file_path) if config.sink.enabled else None
    return JuggleSession(PipelineConfig.from_config(config), sink=sink)


def start_web_server(session: JuggleSession, host: str, port: int) -> threading.Thread:
    """Serve the control API on a daemon thread."""
    def run_web_app():
        uvicorn.run(
            create_app(session),
            host=host,
            port=port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Control API started on http://{host}:{port}/api")
    return web_thread


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Juggle Counter')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Enable visual display')
    parser.add_argument('--web', action='store_true',
                        help='Serve the control API (overrides web.enabled)')
    parser.add_argument('--source', type=str, default=None,
                        help='Camera index or video file (overrides camera.device_id)')
    parser.add_argument('--mode', choices=[m.value for m in TrackingMode], default=None,
                        help='Tracking mode at start (overrides tracking.mode)')
    args = parser.parse_args()

    config = load_config(args.config)

    if args.source is not None:
        config.setdefault('camera', {})['device_id'] = _parse_source(args.source)
    if args.mode is not None:
        config.setdefault('tracking', {})['mode'] = args.mode
    if args.web:
        config.setdefault('web', {})['enabled'] = True

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Juggle Counter")

    typed = Config.from_dict(config)
    session = build_session(typed)

    if typed.web.enabled:
        start_web_server(session, typed.web.host, typed.web.port)

    engine = create_engine_from_config(config, session, display=args.display)
    try:
        engine.run()
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info(f"Juggle Counter stopped, final count: {session.count}")


if __name__ == "__main__":
    main()
