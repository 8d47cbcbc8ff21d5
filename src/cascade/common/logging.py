"""Logging utilities for cascade using Loguru.

This module provides logging configuration for both CLI and library usage:
- CLI usage: stderr logging, text or JSON lines
- Library usage: Logging disabled by default, can be enabled by library users
"""

import sys
from typing import Literal

import loguru
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from cascade.constants import APP_NAME

from .models import AppInfo


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False)
    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = Field(default="WARNING")
    format: Literal["json", "text"] = Field(default="text")


def setup_cli_logging(app_info: AppInfo, config: LoggingConfig) -> int:
    logger.enable(APP_NAME)
    logger.remove()
    logger.configure(extra={"scope": "cli", "env": app_info.environment})

    if config.format == "json":
        handler_id = logger.add(
            sys.stderr,
            level=config.log_level,
            serialize=True,
            diagnose=(app_info.environment == "dev"),
        )
    else:
        handler_id = logger.add(
            sys.stderr,
            level=config.log_level,
            format=_get_text_format(),
            colorize=False,
            diagnose=(app_info.environment == "dev"),
        )

    logger.debug("CLI logging initialized", level=config.log_level, format=config.format)

    return handler_id


def disable_library_logging() -> None:
    logger.disable(APP_NAME)


def enable_library_logging(level: str = "INFO") -> int:
    logger.enable(APP_NAME)
    logger.remove()

    handler_id = logger.add(
        sys.stderr,
        level=level,
        format=_get_text_format(),
        colorize=False,
    )

    return handler_id


def create_logger(scope: str) -> "loguru.Logger":
    return logger.bind(scope=scope)


def _get_text_format() -> str:
    return "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message} | {extra}\n{exception}"
