"""Foundation layer: configuration, logging and shared types."""

from .config import ConfigManager, DatabaseConfig, StoreConfig, load_config
from .logging import LogContext, get_logger, setup_logging
from .types import LogLevel, ReadPreferenceMode

__all__ = [
    "ConfigManager",
    "DatabaseConfig",
    "StoreConfig",
    "load_config",
    "LogContext",
    "get_logger",
    "setup_logging",
    "LogLevel",
    "ReadPreferenceMode"
]
