"""structlog setup shared by the API process and the management CLI.

Console rendering is the default; set LOG_FORMAT=json for one JSON object per
line. stdlib loggers (uvicorn, sqlalchemy, alembic) are routed through the same
processor chain so every line on stdout has one shape.

    from core.logger import get_logger

    logger = get_logger(__name__)
    logger.info("certificate.issued", certificate_id="DGM-...", certification_id=7)
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

__all__ = ["configure_logging", "get_logger"]

# Libraries that are too chatty at INFO for a certification service.
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite", "asyncio")


def _drop_color_message(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    # uvicorn duplicates every message with ANSI codes under this key
    event_dict.pop("color_message", None)
    return event_dict


def _resolve_level(level: str | None) -> int:
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """Install structlog and point the root stdlib logger at it.

    Safe to call more than once; the root handler is replaced each time.

    Args:
        level: Level name, falls back to LOG_LEVEL then INFO
        json_output: Force JSON rendering, falls back to LOG_FORMAT=json
    """
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "").lower() == "json"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _drop_color_message,
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _build_renderer(json_output),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(_resolve_level(level))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger, usually ``get_logger(__name__)``."""
    return structlog.stdlib.get_logger(name)
