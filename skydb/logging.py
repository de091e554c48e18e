"""Logging for the SkyDB client.

Library modules log through :func:`get_logger`, which binds structlog to the
stdlib logger of the same name. Nothing is printed until the host application
installs handlers, either its own or the ones :func:`configure_logging` sets up
for the CLI.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

LIBRARY_LOGGER = "skydb"

# httpx and httpcore log every connection at DEBUG.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")

logging.getLogger(LIBRARY_LOGGER).addHandler(logging.NullHandler())


def _drop_formatter_keys(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Send SkyDB and stdlib log records to stderr through one renderer.

    Args:
        json_output: Emit one JSON object per line instead of console text.
        level: Root log level name (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper())
    shared = _shared_processors()

    if json_output:
        renderer: list[Any] = [
            _drop_formatter_keys,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [
            _drop_formatter_keys,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=[*shared, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers are rebound on every call so reconfiguring takes effect.
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=renderer, foreign_pre_chain=shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger backed by ``logging.getLogger(name)``.

    Unlike ``structlog.get_logger``, this never falls back to printing on
    stdout when structlog has not been configured.
    """
    logger: structlog.stdlib.BoundLogger = structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    return logger
