"""Lifecycle logging package."""

from finance_tracker.events.logger import (
    LifecycleLogger,
    configure_logging,
    create_correlation_id,
)

__all__ = ["LifecycleLogger", "configure_logging", "create_correlation_id"]
