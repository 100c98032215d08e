"""Agent state models."""

from kubecapture.models.state.app_settings import (
    AgentSettings,
    ConfigError,
    ConfigLoadError,
)
from kubecapture.models.state.config_manager import ConfigManager

__all__ = [
    "AgentSettings",
    "ConfigError",
    "ConfigLoadError",
    "ConfigManager",
]
