"""
Lifecycle Logger

Emits lifecycle events as structured log lines.

The logger:
- Only receives events of operations that committed, plus one event per
  rejected operation
- Never raises: a logging failure must not turn a committed operation
  into an error
- Supports correlation IDs to trace the steps of one operation
"""

import logging
from typing import Iterable, Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.config import LoggingSettings, get_settings
from finance_tracker.models.events import LifecycleEvent, LifecycleSeverity


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; the last call wins.
    """
    settings = settings or get_settings().logging

    logging.basicConfig(format="%(message)s", level=settings.level)
    logging.getLogger("finance_tracker").setLevel(settings.level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class LifecycleLogger:
    """Central lifecycle logging service."""

    def __init__(self, logger_name: str = "finance_tracker.lifecycle"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: LifecycleEvent) -> None:
        """Log one event at the level matching its severity."""
        log_dict = event.to_log_dict()
        try:
            if event.severity == LifecycleSeverity.ERROR:
                self._logger.error("lifecycle_event", **log_dict)
            elif event.severity == LifecycleSeverity.WARNING:
                self._logger.warning("lifecycle_event", **log_dict)
            elif event.severity == LifecycleSeverity.DEBUG:
                self._logger.debug("lifecycle_event", **log_dict)
            else:
                self._logger.info("lifecycle_event", **log_dict)
        except (TypeError, ValueError, OSError) as e:
            # Renderer or handler failure; report it without the event payload
            self._logger.error(
                "lifecycle_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )

    def log_all(self, events: Iterable[LifecycleEvent]) -> None:
        for event in events:
            self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for one operation.

    Every event emitted by the operation carries it.
    """
    return uuid4()
