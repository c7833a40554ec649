"""Configuration loaded from an optional YAML file merged over defaults."""

import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "scheduler": {
            "refresh_interval_ms": 5000,
        },
        "service": {
            "latency_ms": {
                "logs": 500,
                "log_by_id": 200,
                "stats": 300,
            },
        },
        "generator": {
            "seed": 42,
            "count": 100,
            "days": 7,
        },
        "query": {
            "default_hours": 24,
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, config_path=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
                logger.info("Loaded config from %s", config_path)
            except FileNotFoundError:
                logger.debug("Config file %s not found, using defaults", config_path)
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

    @classmethod
    def load(cls, config_path=None) -> "Config":
        """Resolve the path from the argument, then ``CONFIG_PATH``, then ``config.yaml``."""
        path = config_path or os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)
        return cls(path)

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    @property
    def refresh_interval_ms(self) -> int:
        return int(self._config["scheduler"]["refresh_interval_ms"])

    @property
    def log_level(self) -> str:
        return os.environ.get("LOG_LEVEL", self._config["logging"]["level"]).upper()

    def get(self, key, default=None):
        """Get a top-level config key."""
        return self._config.get(key, default)

    def __getitem__(self, key):
        return self._config[key]

    def __contains__(self, key):
        return key in self._config
