"""
structlog configuration for the meal cycle system.

Every component logs through a logger from this module. Session-wide fields
(owner, active profile) live in structlog context variables, so events logged
from the thread that started a session carry them without explicit binding.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


SESSION_CONTEXT_KEYS = ("owner_id", "profile")


def session_processors(include_timestamp: bool = True) -> list:
    """Processor chain shared by console and JSON output, minus the renderer."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    return processors


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the meal cycle application.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit one JSON object per event instead of console lines
        include_timestamp: Stamp events with a UTC ISO timestamp
        extra_processors: Processors run after the shared chain, before rendering
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")

    processors = session_processors(include_timestamp)
    if extra_processors:
        processors.extend(extra_processors)
    processors.append(
        structlog.processors.JSONRenderer() if format_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_session_context(owner_id: str, profile: str) -> None:
    """Attach the running session's owner and profile to every later event."""
    structlog.contextvars.bind_contextvars(owner_id=owner_id, profile=profile)


def clear_session_context() -> None:
    structlog.contextvars.unbind_contextvars(*SESSION_CONTEXT_KEYS)


def get_logger(name: str) -> FilteringBoundLogger:
    """Module-level logger; session context is merged in at render time."""
    return structlog.get_logger(name)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for cycle lifecycle transitions.

    Every transition logged through this logger is part of the audit trail
    of a meal cycle.
    """
    return get_logger(name).bind(
        subsystem="cycle_state",
        audit_trail=True
    )


def get_sync_logger(name: str) -> FilteringBoundLogger:
    """Get a logger for the offline mutation queue."""
    return get_logger(name).bind(subsystem="sync")


def get_scheduler_logger(name: str) -> FilteringBoundLogger:
    """Get a logger for the reading-window scheduler."""
    return get_logger(name).bind(subsystem="scheduler")


def log_state_transition(
    logger: FilteringBoundLogger,
    cycle_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a cycle state transition with standardized format.

    Args:
        logger: Structlog logger instance
        cycle_id: ID of the meal cycle transitioning
        from_state: Current phase
        to_state: Target phase
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        cycle_id=cycle_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")


def log_flush_result(
    logger: FilteringBoundLogger,
    status: str,
    flushed: int,
    remaining: int,
    error: Optional[BaseException] = None
) -> None:
    """
    Log the outcome of a queue flush.

    Failed flushes are logged at warning level; they are retried by the sync
    timer and connectivity events, so they are never fatal.
    """
    bound_logger = logger.bind(
        flush_status=status,
        flushed_count=flushed,
        remaining_count=remaining,
    )

    if error is not None:
        bound_logger.warning("Queue flush failed", error=str(error),
                             error_type=type(error).__name__)
    else:
        bound_logger.info("Queue flush completed")
