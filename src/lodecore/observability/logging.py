"""
Configures structured logging for the engine using structlog.
"""
from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Dict, List

import structlog

if TYPE_CHECKING:
    from lodecore.config.config import MonitoringConfig


def add_target_context(logger: logging.Logger, method_name: str, event_dict: Dict[Any, Any]) -> Dict[Any, Any]:
    """
    Copies the URL currently being acquired onto the record if one is bound.
    The engine binds ``target_url`` around each acquisition.
    """
    ctx = structlog.contextvars.get_contextvars()
    if "target_url" in ctx and "url" not in event_dict:
        event_dict["url"] = ctx["target_url"]
    return event_dict


def configure_logging(config: MonitoringConfig) -> None:
    """
    Sets up structlog to handle all logging for the engine.

    Console output is human readable; when ``log_file`` is set, records are
    written as JSON lines instead.
    """
    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        add_target_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    handler: logging.Handler
    if config.log_file:
        handler = logging.FileHandler(config.log_file)
    else:
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(
        format="%(message)s",
        level=config.log_level.upper(),
        handlers=[handler],
        force=True,
    )

    renderer: Any
    if config.log_file:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("lodecore.logging")
    logger.debug("Logging configured", level=config.log_level, output=config.log_file or "console")
