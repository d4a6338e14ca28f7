"""
Structured logging for the Revenue Analytics engine.

structlog renders every entry: pretty console output in development, one JSON
object per line in production. Request and quarter scope are kept in
structlog's own context variables, so ``merge_contextvars`` stamps them on
every entry emitted while a request or a view computation is in flight:

    request_id  bound per HTTP request by the API middleware
    quarter     bound per view computation by the engine (``"Q1 2025"``)
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator

import structlog
from structlog.types import Processor

from .config import config


def get_request_id() -> str | None:
    """Request ID bound in the current context, if any."""
    return structlog.contextvars.get_contextvars().get('request_id')


def get_quarter() -> str | None:
    """Quarter label being computed in the current context, if any."""
    return structlog.contextvars.get_contextvars().get('quarter')


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the process.

    Safe to call again (the API lifespan does, with the service settings);
    loggers are not cached, so the new configuration applies everywhere.

    Args:
        json_output: Render JSON lines instead of console output
        log_level: Minimum level name (defaults to config.LOG_LEVEL)
    """
    level = logging.getLevelName((log_level or config.LOG_LEVEL).upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso', utc=True),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def logging_context(
    request_id: str | None = None,
    quarter: str | None = None,
) -> Iterator[None]:
    """
    Bind request and quarter scope for everything logged inside the block.

    Arguments left as None keep any outer binding; the previous bindings are
    restored on exit, including when the block raises.

    Usage:
        with logging_context(quarter="Q1 2025"):
            logger.info("engine.summary.complete")  # carries quarter="Q1 2025"
    """
    bindings = {
        key: value
        for key, value in (('request_id', request_id), ('quarter', quarter))
        if value is not None
    }
    with structlog.contextvars.bound_contextvars(**bindings):
        yield


class StageTimer:
    """
    Wall-clock durations of named stages, in milliseconds.

    The clock starts when the timer is created; ``timings()`` reports each
    stage plus the ``total`` elapsed so far.
    """

    def __init__(self):
        self.started = time.perf_counter()
        self.stages: dict[str, float] = {}

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time the block as ``name``; recorded even if the block raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - start) * 1000

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000

    def timings(self) -> dict[str, float]:
        """Per-stage and total durations rounded to 0.01 ms."""
        result = {name: round(ms, 2) for name, ms in self.stages.items()}
        result['total'] = round(self.elapsed_ms(), 2)
        return result


configure_logging(json_output=False)
