"""Centralized logging configuration for the rider photos pipeline."""

import os
import sys
import logging
from typing import Optional

ROOT_LOGGER_NAME = "rider-photos"

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Setup a stage logger with environment variable configuration.

    Lambda installs its own handler on the root logger; our loggers write to
    stdout through a single handler and do not propagate, so every record is
    emitted exactly once per invocation.

    Args:
        name: Logger name (defaults to "rider-photos")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)

    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    logger.setLevel(log_level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        env_format = os.getenv("LOG_FORMAT", format_type).lower()
        if env_format == "structured":
            formatter = logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        else:
            formatter = logging.Formatter(SIMPLE_FORMAT)

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get the logger for a pipeline component.

    Args:
        component: Component name such as "thumbnail" or "face-detection";
            the pipeline root logger is returned when omitted.

    Returns:
        Configured logger instance
    """
    if component:
        return setup_logger(f"{ROOT_LOGGER_NAME}.{component}")
    return setup_logger(ROOT_LOGGER_NAME)


logger = setup_logger()
