"""Convenience exports for the configuration package."""

from .constants import *  # noqa: F401,F403
from .loader import ConfigError, load_config, save_config
from .logging_conf import JSONFormatter, configure_logging, operation_scope
from .schemas import (
    FeeSettings,
    RebalanceSettings,
    ScenarioConfig,
    ScenarioStep,
    SubVaultSpec,
    VaultSetupConfig,
)
from .settings import ENV_PREFIX, Settings, get_settings, reset_settings_cache

__all__ = [
    "JSONFormatter",
    "configure_logging",
    "operation_scope",
    "ENV_PREFIX",
    "Settings",
    "get_settings",
    "reset_settings_cache",
    # Schema classes
    "FeeSettings",
    "RebalanceSettings",
    "SubVaultSpec",
    "VaultSetupConfig",
    "ScenarioStep",
    "ScenarioConfig",
    # Loader functions
    "load_config",
    "save_config",
    "ConfigError",
]
