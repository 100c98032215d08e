"""Agent settings models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kubecapture.constants.defaults import (
    KILL_AFTER_GRACE_DEFAULT,
    LOG_LEVEL_DEFAULT,
    RESPAWN_ON_UNEXPECTED_EXIT_DEFAULT,
    RESYNC_INTERVAL_SECONDS_DEFAULT,
    ROTATION_SIZE_UNITS_DEFAULT,
    STOP_GRACE_SECONDS_DEFAULT,
)
from kubecapture.constants.values import (
    ANNOTATION_KEY,
    CAPTURE_BINARY,
    CAPTURE_DIR,
    CAPTURE_INTERFACE,
)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AgentSettings(BaseModel):
    """Agent settings model with validation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Node scope
    node_name: str = Field(min_length=1)
    kubectl_context: str | None = None

    # Capture
    capture_dir: str = CAPTURE_DIR
    annotation_key: str = Field(default=ANNOTATION_KEY, min_length=1)
    capture_binary: str = CAPTURE_BINARY
    capture_interface: str = CAPTURE_INTERFACE
    rotation_size_units: int = Field(default=ROTATION_SIZE_UNITS_DEFAULT, ge=1)

    # Stop / exit policy
    stop_grace_seconds: float = Field(default=STOP_GRACE_SECONDS_DEFAULT, ge=0)
    kill_after_grace: bool = KILL_AFTER_GRACE_DEFAULT
    respawn_on_unexpected_exit: bool = RESPAWN_ON_UNEXPECTED_EXIT_DEFAULT

    # Pod watch
    resync_interval_seconds: float = Field(default=RESYNC_INTERVAL_SECONDS_DEFAULT, gt=0)

    # Logging
    log_level: str = LOG_LEVEL_DEFAULT

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when settings fail to load."""
