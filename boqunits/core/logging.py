"""structlog setup for the boqunits CLI.

Job events go to stderr so command output on stdout stays clean for piping.
Plain ``logging`` records (registry, SQLAlchemy) are rendered by the same
formatter as structlog events.
"""

from __future__ import annotations

import logging
import sys

import structlog

from boqunits.config import AppConfig

_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _renderer(json_logs: bool):
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(config: AppConfig | None = None) -> None:
    """Route structlog and stdlib logging through one stderr handler."""
    level = (config.log_level if config else "INFO").upper()
    json_logs = config.json_logs if config else False

    structlog.configure(
        processors=_PRE_CHAIN + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_PRE_CHAIN,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _renderer(json_logs),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    # SQL echo is controlled by DB_ECHO on the engine, not by LOG_LEVEL
    if not (config and config.db.echo):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
