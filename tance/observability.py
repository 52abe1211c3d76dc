"""
Logging setup for applications using Tance.

Library modules only create module-level loggers; applications call
setup_logging() once at startup to choose level and format.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import ObservabilityConfig


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure the root logger.

    Args:
        config: Observability configuration
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("redis").setLevel(logging.WARNING)
