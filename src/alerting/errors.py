"""
Exception types for the alerting engine.

Rejections (FilteredEvent, NotCriticalEnough) are policy outcomes rather
than failures: callers should not retry them. ResolutionFailure and
DispatchSubmissionFailure are raised by collaborators and contained by the
engine, which logs them and carries on with the next trigger.
"""

from typing import Optional


class AlertingError(Exception):
    """Base class for alerting errors."""


class EventRejected(AlertingError):
    """An event was intentionally not processed."""

    def __init__(self, reason: str, event_type: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.event_type = event_type


class FilteredEvent(EventRejected):
    """An event was vetoed by the filter chain."""

    def __init__(self, event_type: str, filter_name: str):
        super().__init__(f"filtered by {filter_name}", event_type)
        self.filter_name = filter_name


class NotCriticalEnough(EventRejected):
    """A system event was below the notification severity threshold."""

    def __init__(self, event_type: str, severity: str):
        super().__init__(f"severity '{severity}' is not critical enough", event_type)
        self.severity = severity


class ResolutionFailure(AlertingError):
    """Subscriber lookup for a trigger failed."""

    def __init__(self, trigger_id: str, entity_key: str, cause: Optional[BaseException] = None):
        super().__init__(f"subscriber resolution failed for {trigger_id} on {entity_key}: {cause}")
        self.trigger_id = trigger_id
        self.entity_key = entity_key
        self.cause = cause


class DispatchSubmissionFailure(AlertingError):
    """Bulk submission to the external dispatcher failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "AlertingError",
    "EventRejected",
    "FilteredEvent",
    "NotCriticalEnough",
    "ResolutionFailure",
    "DispatchSubmissionFailure",
]
