"""
Logging setup for GenForge.

Wires structlog onto the standard library logging module so that plain
``logging.getLogger(__name__)`` loggers and structured ``structlog`` event
trails end up in the same handlers.

Copyright (c) 2025 GenForge
"""

import logging
from typing import Optional

import structlog

_configured = False


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None,
                      log_format: Optional[str] = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        level: Log level name (defaults to config.logging.level)
        json_output: Render structlog events as JSON instead of key=value
        log_format: Format string for the stdlib handler
    """
    global _configured

    from genforge.config import get_config
    config = get_config().logging

    level = (level or config.level).upper()
    json_output = config.json_output if json_output is None else json_output
    log_format = log_format or config.format

    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=log_format)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.processors.KeyValueRenderer(key_order=["event"], sort_keys=True)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def is_configured() -> bool:
    """Whether configure_logging() has run in this process."""
    return _configured
