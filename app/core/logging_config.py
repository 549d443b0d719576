# app/core/logging_config.py
import logging
import sys
from typing import List

import structlog

# engine modules use stdlib loggers under these names
ENGINE_LOGGERS = ("app.verticals.wholesale", "buyplan.engine")


def _renderer(json_logs: bool):
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog for the HTTP layer and the stdlib root logger for the engine.

    Request events carry whatever was bound with ``logger.bind(...)``; engine
    modules keep plain ``%``-style messages and share the stdout handler.
    Set ``json_logs=False`` for human-readable local output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(levelname)s %(name)s %(message)s", stream=sys.stdout, level=log_level)
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(log_level)

    processors: List = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        _renderer(json_logs),
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger("buyplan.api")
