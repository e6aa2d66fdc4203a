"""
Event-driven alerting core.

Evaluates domain events against declarative triggers, suppresses repeats
and notification storms, and submits prioritized notification requests to
an external dispatcher.
"""

from .collaborators import (
    ContactDirectory,
    InMemoryDispatcher,
    NotificationDispatcher,
    StaticContactDirectory,
    StaticSubscriberResolver,
    SubscriberResolver,
    WebhookDispatcher,
)
from .conditions import ConditionEvaluator, resolve_path
from .cooldown import CooldownTracker
from .engine import AlertEngine
from .errors import (
    AlertingError,
    DispatchSubmissionFailure,
    EventRejected,
    FilteredEvent,
    NotCriticalEnough,
    ResolutionFailure,
)
from .filters import (
    CallableFilter,
    DuplicateStatusFilter,
    EVENT_CATEGORIES,
    EventFilter,
    EventFilterChain,
    RateLimitFilter,
    VerificationGateFilter,
    category_for,
    default_filters,
)
from .messages import MessageRenderer
from .models import (
    AlertCondition,
    AlertEvaluation,
    AlertTrigger,
    Channel,
    EventContext,
    EventRecord,
    NotificationRequest,
    Priority,
)
from .sweeper import MaintenanceSweeper
from .triggers import DEFAULT_TRIGGERS, TriggerRegistry

__all__ = [
    # Models
    "AlertCondition",
    "AlertEvaluation",
    "AlertTrigger",
    "Channel",
    "EventContext",
    "EventRecord",
    "NotificationRequest",
    "Priority",
    # Components
    "AlertEngine",
    "ConditionEvaluator",
    "CooldownTracker",
    "EventFilterChain",
    "MaintenanceSweeper",
    "MessageRenderer",
    "TriggerRegistry",
    "DEFAULT_TRIGGERS",
    "resolve_path",
    # Filters
    "EventFilter",
    "CallableFilter",
    "DuplicateStatusFilter",
    "RateLimitFilter",
    "VerificationGateFilter",
    "default_filters",
    "category_for",
    "EVENT_CATEGORIES",
    # Collaborators
    "SubscriberResolver",
    "ContactDirectory",
    "NotificationDispatcher",
    "StaticSubscriberResolver",
    "StaticContactDirectory",
    "InMemoryDispatcher",
    "WebhookDispatcher",
    # Errors
    "AlertingError",
    "EventRejected",
    "FilteredEvent",
    "NotCriticalEnough",
    "ResolutionFailure",
    "DispatchSubmissionFailure",
]
