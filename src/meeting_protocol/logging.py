"""
structlog setup for protocol generation.

Every event logged inside `logging_context` carries the meeting id, the
protocol number and an optional trace id from the calling service.
`PipelineTimer` collects per-stage durations for the completion event.
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator

import structlog
from structlog.types import Processor

from .config import config

# Context variables for generation-scoped data
_trace_id: ContextVar[str | None] = ContextVar('trace_id', default=None)
_meeting_id: ContextVar[str | None] = ContextVar('meeting_id', default=None)
_protocol_number: ContextVar[int | None] = ContextVar('protocol_number', default=None)


def add_context_info(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Copy the generation-scoped identifiers into every event."""
    trace_id = _trace_id.get()
    meeting_id = _meeting_id.get()
    protocol_number = _protocol_number.get()

    if trace_id:
        event_dict['trace_id'] = trace_id
    if meeting_id:
        event_dict['meeting_id'] = meeting_id
    if protocol_number is not None:
        event_dict['protocol_number'] = protocol_number

    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the application.

    Args:
        json_output: If True, output JSON logs (for production).
                    If False, output pretty console logs (for development).
        log_level: Override log level (defaults to config.LOG_LEVEL)
    """
    level = log_level or config.LOG_LEVEL
    level_num = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format='%(message)s',
        stream=sys.stdout,
        level=level_num,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_info,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


@contextmanager
def logging_context(
    trace_id: str | None = None,
    meeting_id: str | None = None,
    protocol_number: int | None = None,
) -> Generator[None, None, None]:
    """
    Context manager for setting logging context variables.

    Usage:
        with logging_context(meeting_id="m-1", protocol_number=12):
            logger.info("composing")  # Includes meeting_id and protocol_number
    """
    old_trace = _trace_id.get()
    old_meeting = _meeting_id.get()
    old_number = _protocol_number.get()

    try:
        if trace_id is not None:
            _trace_id.set(trace_id)
        if meeting_id is not None:
            _meeting_id.set(meeting_id)
        if protocol_number is not None:
            _protocol_number.set(protocol_number)
        yield
    finally:
        _trace_id.set(old_trace)
        _meeting_id.set(old_meeting)
        _protocol_number.set(old_number)


class PipelineTimer:
    """
    Timer for tracking generation stage durations.

    Usage:
        timer = PipelineTimer()
        with timer.stage("tally"):
            ...
        with timer.stage("compose"):
            ...
        print(timer.summary())
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self.start_time: float = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        """Time a pipeline stage, including one that raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - start) * 1000

    @property
    def total_ms(self) -> float:
        """Total elapsed time since timer creation in milliseconds."""
        return (time.perf_counter() - self.start_time) * 1000

    def summary(self) -> dict[str, Any]:
        """Get timing summary as a dictionary."""
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {k: round(v, 2) for k, v in self.stages.items()},
        }


# Development mode by default; production deployments call
# configure_logging(json_output=True)
configure_logging(json_output=False)
