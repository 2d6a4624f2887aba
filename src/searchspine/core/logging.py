"""
Structured logging for search-spine.

Manifesto:
    Both write and read paths cross two stores that can diverge. Every
    log line therefore carries the operation, index and entity type it
    belongs to, so a stale index entry can be traced back to the write
    that left it behind.

Output goes to stderr. In JSON mode the keys follow the Elastic Common
Schema (``@timestamp``, ``log.level``, ``service.name``) so the service's
own logs can be shipped to the cluster it indexes into.

Architecture:
    ::

        configure_logging(level, json_format, service)
          processors:
            TimeStamper(iso)      optional
            merge_contextvars     operation / index / entity_type
            add_log_level
            _add_logger_name      get_logger(name)
            _stamp_service
            _to_ecs               JSON only
            JSONRenderer | ConsoleRenderer

Examples:
    >>> configure_logging(level="DEBUG")
    >>> log = get_logger(__name__)
    >>> with LogContext(operation="init", index="records"):
    ...     log.info("index.ensured", created=False)

Tags:
    logging, structlog, observability, json-logging, contextvars
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

DEFAULT_SERVICE = "search-spine"

_service = DEFAULT_SERVICE


class _NamedPrintLogger(structlog.PrintLogger):
    """A PrintLogger that remembers the name it was requested under."""

    def __init__(self, file: Any = None, name: str | None = None) -> None:
        super().__init__(file)
        self.name = name


def _logger_factory(*args: Any) -> _NamedPrintLogger:
    # stderr is looked up per logger so redirected streams are honoured.
    return _NamedPrintLogger(sys.stderr, args[0] if args else None)


# ECS names for keys structlog produces.
_ECS_KEYS = {"timestamp": "@timestamp", "level": "log.level", "logger": "log.logger"}


def _add_logger_name(logger: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    name = getattr(logger, "name", None)
    if name:
        event_dict.setdefault("logger", name)
    return event_dict


def _stamp_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service)
    return event_dict


def _to_ecs(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, ecs_key in _ECS_KEYS.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = DEFAULT_SERVICE,
    add_timestamp: bool = True,
) -> None:
    """Set up structlog for the process.

    ``json_format=None`` picks JSON when stderr is not a terminal. The
    stdlib root logger is pointed at the same stream and level so the
    Elasticsearch client and SQLAlchemy log alongside.
    """
    global _service
    _service = service

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    if json_format is None:
        json_format = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_logger_name,
        structlog.processors.StackInfoRenderer(),
        _stamp_service,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [
            _to_ecs,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=_logger_factory,
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(name)s %(levelname)s %(message)s", stream=sys.stderr, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger; ``name`` is emitted as ``logger``."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind keys for the duration of a block; ``None`` values are skipped.

    Works with ``with`` and ``async with``::

        async with LogContext(operation="record.search", entity_type="sys_user"):
            log.info("search.started")
    """

    def __init__(self, **kwargs: Any):
        self._bound = {key: value for key, value in kwargs.items() if value is not None}
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = dict(structlog.contextvars.bind_contextvars(**self._bound))
        return self

    def __exit__(self, *exc: Any) -> None:
        # Outer values for the same keys come back on exit.
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc: Any) -> None:
        self.__exit__(*exc)


__all__ = [
    "DEFAULT_SERVICE",
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
