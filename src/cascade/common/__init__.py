"""Common models and helpers used across cascade modules."""

from .logging import LoggingConfig, create_logger, disable_library_logging, enable_library_logging, setup_cli_logging
from .models import AppInfo

__all__ = [
    "AppInfo",
    "LoggingConfig",
    "create_logger",
    "disable_library_logging",
    "enable_library_logging",
    "setup_cli_logging",
]
