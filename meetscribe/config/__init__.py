"""YAML configuration loader for MeetScribe."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "meetscribe.yaml"

DEFAULTS: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "frames_per_buffer": 1024,
        "channels": 1,
        "chunk_duration_seconds": 5.0,
        "codec_preferences": ["audio/ogg;codecs=opus", "audio/flac", "audio/wav"],
    },
    "visualization": {
        "points": 256,
        "gain": 8.0,
        "frame_interval_seconds": 1 / 30,
    },
    "client": {
        "server_url": "http://localhost:3000",
        "upload_timeout_seconds": 30.0,
        "auth_token": None,
        "ordering": "sequence",
        "drain_timeout_seconds": 30.0,
        "autosave_interval_seconds": 30.0,
        "summary_min_characters": 30,
        "summary_enabled": False,
        "summary_url": None,
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
        "environment": "development",
        "max_upload_bytes": 25 * 1024 * 1024,
        "auth": {
            "tokens": [],
        },
        "debug_store": {
            "enabled": False,
        },
    },
    "transcription": {
        "backend": "google",
        "use_real_in_development": False,
        "simulation_delay_seconds": 0.5,
        "min_audio_bytes": 100,
        "default_confidence": 0.9,
    },
    "google_cloud": {
        "credentials_path": None,
        "language": "en-US",
        "use_enhanced_model": True,
        "enable_automatic_punctuation": True,
        "timeout_seconds": 10.0,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/meetscribe.log",
        "console_output": True,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class MeetScribeConfig:
    """MeetScribe configuration loader.

    Values from the YAML file are layered over ``DEFAULTS``, so every key the
    application reads has a value even when the file omits it.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for
                        meetscribe.yaml in the current directory and falls back
                        to built-in defaults when there is none.
        """
        if config_path is None:
            candidate = Path.cwd() / DEFAULT_CONFIG_FILENAME
            self.config_file = candidate if candidate.exists() else None
        else:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        if self.config_file is None:
            logger.info("No configuration file found, using built-in defaults")
            self.config = copy.deepcopy(DEFAULTS)
        else:
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._load_config()

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "MeetScribeConfig":
        """Build a configuration from an in-memory mapping (layered over defaults)."""
        config = cls.__new__(cls)
        config.config_file = None
        config.config = _deep_merge(DEFAULTS, values)
        return config

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _deep_merge(DEFAULTS, loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        creds_path = config['google_cloud'].get('credentials_path')
        if creds_path and not os.path.isabs(creds_path):
            config['google_cloud']['credentials_path'] = str(config_dir / creds_path)

        data_dir = config['storage'].get('data_directory')
        if data_dir and not os.path.isabs(data_dir):
            config['storage']['data_directory'] = str(config_dir / data_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'client.server_url').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return default if value is None else value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'server.port')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict or not isinstance(config_dict[key], dict):
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_google_credentials_path(self) -> Optional[str]:
        """Get Google credentials path, or None when the capability is unconfigured."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            return None

        creds_file = Path(creds_path)
        if not creds_file.exists():
            logger.warning(f"Google credentials file not found: {creds_path}")
            return None

        return str(creds_file.absolute())

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    @property
    def is_production(self) -> bool:
        return str(self.get('server.environment', 'development')).lower() == 'production'
