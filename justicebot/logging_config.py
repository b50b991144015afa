# logging_config.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - STRUCTURED LOGGING
# ============================================================================
# Runs when the package is imported, before any module binds its logger.
# LOG_FORMAT=json for log shippers, console (default) for humans.
# ============================================================================

import logging
import os
from typing import Optional

import structlog


def configure_logging(log_format: Optional[str] = None, debug: Optional[bool] = None) -> None:
    log_format = (log_format or os.getenv("LOG_FORMAT", "console")).lower()
    if debug is None:
        debug = os.getenv("ENV", "development") == "development"

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
