"""Configuration management module."""

from .config_manager import ConfigManager
from .models import (
    Config,
    LibraryConfig,
    LoggingConfig,
    ResolverConfig,
    RetryConfig,
    ScannerConfig,
    ShareConfig,
    TMDbConfig,
)

__all__ = [
    "ConfigManager",
    "Config",
    "ShareConfig",
    "TMDbConfig",
    "ResolverConfig",
    "RetryConfig",
    "ScannerConfig",
    "LibraryConfig",
    "LoggingConfig",
]
