"""Settings loading from YAML, environment variables and CLI overrides."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from kubecapture.constants.values import NODE_NAME_ENV
from kubecapture.models.state.app_settings import (
    AgentSettings,
    ConfigError,
    ConfigLoadError,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Builds AgentSettings from layered sources.

    Priority, lowest first: model defaults, YAML file, environment, overrides.
    """

    ENV_FIELDS: dict[str, str] = {
        NODE_NAME_ENV: "node_name",
        "CAPTURE_DIR": "capture_dir",
        "CAPTURE_ANNOTATION_KEY": "annotation_key",
        "CAPTURE_BINARY": "capture_binary",
        "CAPTURE_INTERFACE": "capture_interface",
        "CAPTURE_ROTATION_UNITS": "rotation_size_units",
        "CAPTURE_STOP_GRACE_SECONDS": "stop_grace_seconds",
        "CAPTURE_RESYNC_INTERVAL_SECONDS": "resync_interval_seconds",
        "CAPTURE_KILL_AFTER_GRACE": "kill_after_grace",
        "CAPTURE_RESPAWN_ON_EXIT": "respawn_on_unexpected_exit",
        "KUBECTL_CONTEXT": "kubectl_context",
        "LOG_LEVEL": "log_level",
    }

    def __init__(self, config_path: str | Path | None = None) -> None:
        self.config_path = Path(config_path).expanduser() if config_path else None

    def _read_file(self) -> dict[str, Any]:
        if self.config_path is None:
            return {}
        try:
            raw = self.config_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigLoadError(f"Cannot read config file {self.config_path}: {exc}") from exc
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigLoadError(f"Invalid YAML in {self.config_path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Config file {self.config_path} must contain a mapping, got {type(data).__name__}"
            )
        return data

    @classmethod
    def _read_env(cls, environ: Mapping[str, str]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for env_name, field_name in cls.ENV_FIELDS.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            values[field_name] = raw
        return values

    def load(
        self,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> AgentSettings:
        """Load and validate settings.

        Raises:
            ConfigLoadError: If a source cannot be read or validation fails.
        """
        merged: dict[str, Any] = {}
        merged.update(self._read_file())
        merged.update(self._read_env(os.environ if environ is None else environ))
        if overrides:
            merged.update({k: v for k, v in overrides.items() if v is not None})

        if not merged.get("node_name"):
            raise ConfigLoadError(f"{NODE_NAME_ENV} environment variable is required")

        try:
            settings = AgentSettings.model_validate(merged)
        except ValidationError as exc:
            raise ConfigLoadError(f"Invalid settings: {exc}") from exc

        logger.debug("Loaded settings for node %s from %s", settings.node_name, self.config_path or "environment")
        return settings


__all__ = [
    "AgentSettings",
    "ConfigError",
    "ConfigLoadError",
    "ConfigManager",
]
