"""
Centralized configuration manager.
Loads config/config.yaml over built-in defaults and provides typed
access with schema warnings.
"""

import os
import copy
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

DEFAULTS = {
    "system": {
        "name": "Dexterity Dash",
        "version": "1.0.0",
    },
    "exercise": {
        "goal": 5,
        "cooldown_ms": 1000,
        "thumb_tap": {"threshold": 0.05},
        "fist": {"threshold": 0.15},
    },
    "camera": {
        "device_id": 0,
        "width": 1280,
        "height": 720,
        "fps": 30,
        "backend": "auto",
        "flip_horizontal": True,
        "warmup_frames": 5,
    },
    "detector": {
        "model_path": os.path.join(_BASE_DIR, "models", "hand_landmarker.task"),
        "max_num_hands": 1,
        "min_detection_confidence": 0.5,
        "min_presence_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    },
    "visualization": {
        "enabled": True,
        "window_name": "Dexterity Dash",
        "show_landmarks": True,
        "show_fps": False,
        "show_metric": False,
        "confetti_duration_s": 3.0,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: sections and their expected types
_CONFIG_SCHEMA = {
    "exercise": {
        "goal": int,
        "cooldown_ms": float,
    },
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
        "flip_horizontal": bool,
    },
    "detector": {
        "model_path": str,
        "max_num_hands": int,
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
    },
    "visualization": {
        "window_name": str,
        "confetti_duration_s": float,
    },
    "logging": {
        "level": str,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = copy.deepcopy(DEFAULTS)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file, merged over the defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                file_data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            file_data = {}

        if not isinstance(file_data, dict):
            logger.warning("Config file %s is not a mapping, using defaults", config_path)
            file_data = {}

        self._data = _deep_merge(copy.deepcopy(DEFAULTS), file_data)

        # Relative model paths are relative to the project, not the cwd
        model_path = self.get("detector.model_path")
        if isinstance(model_path, str) and model_path and not os.path.isabs(model_path):
            self._data["detector"]["model_path"] = os.path.join(_BASE_DIR, model_path)

        self._validate()
        return self

    def _validate(self):
        """Validate config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)) \
                            and not isinstance(value, bool):
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value):
        """Override a nested value (CLI flags)."""
        keys = key_path.split(".")
        section = self._data
        for key in keys[:-1]:
            section = section.setdefault(key, {})
        section[keys[-1]] = value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {})

    @property
    def exercise(self) -> dict:
        return self._data.get("exercise", {})

    @property
    def camera(self) -> dict:
        return self._data.get("camera", {})

    @property
    def detector(self) -> dict:
        return self._data.get("detector", {})

    @property
    def visualization(self) -> dict:
        return self._data.get("visualization", {})

    @property
    def logging(self) -> dict:
        return self._data.get("logging", {})

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
