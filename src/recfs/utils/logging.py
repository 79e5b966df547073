"""
structlog setup shared by the library and the ``recfs`` command.

Library modules only call ``get_logger``; nothing is printed until the
application (or the CLI) calls ``configure_logging``. Split and join bind the
file and format they work on through ``log_context`` so that every event of
one operation, including events from nested readers and writers, carries it.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional, TextIO, cast

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor, WrappedLogger

from recfs import __version__ as RECFS_VERSION


def _coerce_level(level: str | int) -> int:
    """Translate a string/int level into the numeric logging level."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, str):
            raise ValueError(f"Invalid log level: {level}")
        return int(resolved)
    return int(level)


def _render_paths(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Render ``os.PathLike`` values (input, output, part) as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, os.PathLike):
            event_dict[key] = os.fspath(value)
    return event_dict


def configure_logging(
    level: str | int = "INFO",
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Route structlog and stdlib logging through one handler.

    Args:
        level: Root level name or number
        json_output: One JSON object per line; False renders for consoles
        stream: Destination, stderr by default so stdout stays free for
            command output such as part paths
    """
    numeric_level = _coerce_level(level)
    renderer = structlog.processors.JSONRenderer() if json_output else ConsoleRenderer()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _render_paths,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    logging.captureWarnings(True)


def get_logger(name: str) -> BoundLogger:
    """
    Module logger tagged with ``service_name`` and ``version``.

    Resolution is deferred to the first event, so loggers created at import
    time pick up a later ``configure_logging``.
    """
    return cast(
        BoundLogger,
        structlog.get_logger(
            name,
            service_name=os.getenv("SERVICE_NAME", "recfs"),
            version=os.getenv("APP_VERSION", RECFS_VERSION),
        ),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind ``kwargs`` to every event logged inside the block; outer bindings are restored on exit."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
