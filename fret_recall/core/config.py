"""Configuration management for Fret Recall."""

from typing import Dict, Any, Optional
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "pitch_detection": {
        "min_frequency": 50.0,
        "max_frequency": 1200.0,
        "threshold": 0.12,
    },
    "detection": {
        "volume_threshold": 0.03,
        "required_stable_frames": 3,
        "max_pitch_window": 2,
        "silence_reset_frames": 2,
        "min_note_frequency": 50.0,
        "max_note_frequency": 1000.0,
    },
    "calibration": {
        "required_samples": 30,
        "tolerance_ratio": 0.15,
    },
    "session": {
        "instrument": "guitar",
        "mode": "random",
        "difficulty": "natural",
        "min_fret": 0,
        "max_fret": 12,
        "timed_duration": 60,
        "session_pace": "normal",
        "rhythm_timing_window": "normal",
        "session_goal": "none",
    },
    "audio_input": {
        "device_id": None,
        "sample_rate": 44100,
        "chunk_size": 2048,
        "channels": 1,
    },
}


class ConfigManager:
    """JSON-backed settings, one file per section."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "fret_recall")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = {name: dict(values) for name, values in DEFAULT_CONFIGS.items()}

        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load a section from its file, writing the defaults when there is none.

        Keys missing from the file are filled in from ``default_config``.
        """
        config_file = self.config_dir / f"{name}.json"

        if not config_file.exists():
            config = default_config.copy()
            self.save_config(name, config)
            return config

        try:
            with open(config_file, "r") as f:
                config = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {config_file}: {e}")
            return default_config.copy()

        if not isinstance(config, dict):
            logger.error(f"Ignoring malformed configuration in {config_file}")
            return default_config.copy()

        logger.info(f"Loaded configuration from {config_file}")
        for key, value in default_config.items():
            config.setdefault(key, value)
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Copy of a section, empty for an unknown name."""
        return self.configs.get(name, {}).copy()

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Merge updates into a section and save it.

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])
