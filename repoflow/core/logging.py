"""structlog setup shared by the API server and the CLI."""

from __future__ import annotations

import logging.config
import os

import structlog

# Third-party loggers held at WARNING unless the app level is stricter.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "asyncpg", "httpx", "LiteLLM")


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog and stdlib records through one stderr handler.

    Arguments override the environment:
        REPOFLOW_LOG_LEVEL   default INFO
        REPOFLOW_LOG_FORMAT  console | json, default console
    """
    level = (level or os.environ.get("REPOFLOW_LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.environ.get("REPOFLOW_LOG_FORMAT", "console")).lower()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    quiet = max(logging.WARNING, logging.getLevelNamesMapping().get(level, logging.INFO))
    loggers: dict[str, dict[str, object]] = {"repoflow": {"level": level}}
    loggers.update({name: {"level": quiet} for name in _QUIET_LOGGERS})

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "repoflow": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(log_format),
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "repoflow",
                },
            },
            "root": {"handlers": ["stderr"], "level": level},
            "loggers": loggers,
        }
    )
