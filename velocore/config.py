"""Configuration management for the content deduplication pipeline."""

import os
import json
import copy
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from pydantic import ValidationError

from .errors import ConfigurationError
from .models import DeduplicationConfig


class ConfigManager:
    """Manages configuration loading and validation."""

    DEFAULT_CONFIG = {
        "root_dir": ".",
        "sources": {
            "cols": {
                "paths": [
                    "server/data/cols/enriched",
                    "src/data/cols",
                    "scripts/data/additional-cols.js",
                ],
                "name_threshold": 0.8,
                "location_threshold": 0.95,
            },
            "nutrition": {
                "paths": [
                    "server/data/nutrition/recipes",
                    "src/data/nutrition",
                ],
                "name_threshold": 0.8,
            },
            "training": {
                "paths": [
                    "server/data/training",
                    "src/data/training",
                ],
                "name_threshold": 0.8,
            },
        },
        "matching": {
            "near_km": 1.0,
            "far_km": 10.0,
        },
        "merge": {
            "prefer_longer": ["description", "long_description", "summary", "history"],
            "keep_primary_identity": True,
            "record_merge_sources": True,
            "preferred_ids": [],
        },
        "output": {
            "output_dir": "output/content",
            "report_path": "docs/DUPLICATE_CONTENT_REPORT.md",
            "group_by_category": False,
            "include_completeness": True,
        },
        "logging": {
            "level": "INFO",
            "format": "text",
            "file": None,
        },
    }

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """Initialize config manager.

        Args:
            config_path: Path to a JSON config file. If None, uses defaults + env vars
            load_env_file: Read a .env file into the environment before overrides
        """
        self.config_path = Path(config_path) if config_path else None
        self.load_env_file = load_env_file
        self._config: Optional[DeduplicationConfig] = None

    def load(self) -> DeduplicationConfig:
        """Load configuration from defaults, file and environment."""
        if self._config:
            return self._config

        if self.load_env_file:
            load_dotenv()

        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path:
            if not self.config_path.exists():
                raise ConfigurationError(f"Config file not found: {self.config_path}")
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Cannot read config file {self.config_path}: {e}", cause=e
                ) from e
            if not isinstance(file_config, dict):
                raise ConfigurationError("Config file must contain a JSON object")
            config_dict = self._deep_merge(config_dict, file_config)

        config_dict = self._apply_env_overrides(config_dict)

        try:
            self._config = DeduplicationConfig(**config_dict)
        except ValidationError as e:
            first_error = e.errors()[0]
            key = ".".join(str(part) for part in first_error.get("loc", ()))
            raise ConfigurationError(first_error.get("msg", str(e)), key=key, cause=e) from e

        return self._config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        root_dir = os.getenv("VELOCORE_ROOT_DIR")
        if root_dir:
            config["root_dir"] = root_dir

        output_dir = os.getenv("VELOCORE_OUTPUT_DIR")
        if output_dir:
            config.setdefault("output", {})["output_dir"] = output_dir

        report_path = os.getenv("VELOCORE_REPORT_PATH")
        if report_path:
            config.setdefault("output", {})["report_path"] = report_path

        if os.getenv("VELOCORE_GROUP_BY_CATEGORY", "").lower() in ("true", "1", "yes"):
            config.setdefault("output", {})["group_by_category"] = True

        # Thresholds apply to every configured content type
        name_threshold = os.getenv("VELOCORE_NAME_THRESHOLD")
        if name_threshold:
            value = self._parse_float("VELOCORE_NAME_THRESHOLD", name_threshold)
            for source in config.setdefault("sources", {}).values():
                source["name_threshold"] = value

        location_threshold = os.getenv("VELOCORE_LOCATION_THRESHOLD")
        if location_threshold:
            value = self._parse_float("VELOCORE_LOCATION_THRESHOLD", location_threshold)
            cols = config.setdefault("sources", {}).setdefault("cols", {})
            cols["location_threshold"] = value

        log_level = os.getenv("VELOCORE_LOG_LEVEL")
        if log_level:
            config.setdefault("logging", {})["level"] = log_level.upper()

        return config

    def _parse_float(self, key: str, raw: str) -> float:
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigurationError(f"{key} must be a number, got {raw!r}", key=key) from e

    def save_template(self, path: str):
        """Save a configuration template file."""
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.DEFAULT_CONFIG, f, indent=2)

    @property
    def config(self) -> DeduplicationConfig:
        """Get the loaded configuration."""
        return self.load()
