"""
Stateful admission filters applied before trigger evaluation.

Filters are grouped by event category ("election", "candidate",
"breaking_news", ...). The chain admits an event only if every filter
registered for its category admits it, stopping at the first veto.
"""

import abc
from collections import deque
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


# Filter category for each generic alert event type, used when a caller
# does not name one.
EVENT_CATEGORIES = {
    "election_result": "election",
    "election_update": "election",
    "deadline_reminder": "election",
    "candidate_update": "candidate",
    "breaking_news": "breaking_news",
    "system_alert": "system",
}


def category_for(event_type: str) -> Optional[str]:
    return EVENT_CATEGORIES.get(event_type)


class EventFilter(abc.ABC):
    """Abstract base class for event filters."""

    def __init__(self, name: str, categories: Iterable[str]):
        """
        Initialize the filter.

        Args:
            name: Unique filter name
            categories: Event categories this filter applies to
        """
        self.name = name
        self.categories = frozenset(categories)

    def applies_to(self, category: str) -> bool:
        return category in self.categories

    @abc.abstractmethod
    def admit(self, event_data: Mapping[str, Any], now: datetime) -> bool:
        """
        Decide whether the event may proceed.

        Args:
            event_data: Raw event payload
            now: Current time

        Returns:
            True to admit, False to veto
        """
        pass

    def prune(self, cutoff: datetime) -> int:
        """Drop state recorded before cutoff. Returns the number of entries removed."""
        return 0

    def state_size(self) -> int:
        return 0


class DuplicateStatusFilter(EventFilter):
    """
    Vetoes status-change events repeating the last seen status of an entity.
    """

    def __init__(
        self,
        name: str = "election_status_duplicate",
        categories: Iterable[str] = ("election",),
        entity_field: str = "election_id",
        status_field: str = "new_status",
        event_kind: str = "status_change",
    ):
        super().__init__(name, categories)
        self.entity_field = entity_field
        self.status_field = status_field
        self.event_kind = event_kind
        self._last_status: Dict[Any, Tuple[Any, datetime]] = {}

    def admit(self, event_data: Mapping[str, Any], now: datetime) -> bool:
        if event_data.get("event_type") != self.event_kind:
            return True

        entity = event_data.get(self.entity_field)
        status = event_data.get(self.status_field)
        last = self._last_status.get(entity)
        if last is not None and last[0] == status:
            return False

        self._last_status[entity] = (status, now)
        return True

    def prune(self, cutoff: datetime) -> int:
        stale = [k for k, (_, seen_at) in self._last_status.items() if seen_at < cutoff]
        for key in stale:
            del self._last_status[key]
        return len(stale)

    def state_size(self) -> int:
        return len(self._last_status)


class RateLimitFilter(EventFilter):
    """
    Caps low-severity updates per entity within a rolling window.

    Only updates whose severity is in `limited_severities` are counted and
    capped; "major" and "critical" updates pass untouched.
    """

    def __init__(
        self,
        name: str = "candidate_update_rate_limit",
        categories: Iterable[str] = ("candidate",),
        entity_field: str = "candidate_id",
        severity_field: str = "update_type",
        limited_severities: Iterable[str] = ("minor",),
        max_events: int = 5,
        window_minutes: int = 60,
    ):
        super().__init__(name, categories)
        self.entity_field = entity_field
        self.severity_field = severity_field
        self.limited_severities = frozenset(limited_severities)
        self.max_events = max_events
        self.window = timedelta(minutes=window_minutes)
        self._fired: Dict[Any, Deque[datetime]] = {}

    def admit(self, event_data: Mapping[str, Any], now: datetime) -> bool:
        if event_data.get(self.severity_field) not in self.limited_severities:
            return True

        entity = event_data.get(self.entity_field)
        window = self._fired.setdefault(entity, deque())
        while window and now - window[0] >= self.window:
            window.popleft()

        if len(window) >= self.max_events:
            return False

        window.append(now)
        return True

    def prune(self, cutoff: datetime) -> int:
        removed = 0
        for entity in list(self._fired):
            window = self._fired[entity]
            while window and window[0] < cutoff:
                window.popleft()
                removed += 1
            if not window:
                del self._fired[entity]
        return removed

    def state_size(self) -> int:
        return sum(len(w) for w in self._fired.values())


class VerificationGateFilter(EventFilter):
    """
    Blocks urgent news that is not verified.

    Urgent and unverified is always vetoed regardless of any other field.
    """

    def __init__(
        self,
        name: str = "breaking_news_verification",
        categories: Iterable[str] = ("breaking_news",),
    ):
        super().__init__(name, categories)

    def admit(self, event_data: Mapping[str, Any], now: datetime) -> bool:
        if event_data.get("urgency") == "urgent" and event_data.get("verified") is not True:
            logger.warning("unverified_urgent_news_blocked", headline=event_data.get("headline"))
            return False
        return True


class CallableFilter(EventFilter):
    """Stateless filter wrapping a predicate, for filters added at runtime."""

    def __init__(
        self,
        name: str,
        predicate: Callable[[Mapping[str, Any]], bool],
        categories: Iterable[str],
    ):
        super().__init__(name, categories)
        self.predicate = predicate

    def admit(self, event_data: Mapping[str, Any], now: datetime) -> bool:
        return bool(self.predicate(event_data))


def default_filters(
    minor_update_cap: int = 5,
    rate_limit_window_minutes: int = 60,
) -> List[EventFilter]:
    """The standard filter set: duplicate status, update rate limit, news verification."""
    return [
        DuplicateStatusFilter(),
        RateLimitFilter(max_events=minor_update_cap, window_minutes=rate_limit_window_minutes),
        VerificationGateFilter(),
    ]


class EventFilterChain:
    """
    Ordered, named filters evaluated as a logical AND per category.

    All filter state is guarded by a single lock, so admission checks and
    pruning never interleave.
    """

    def __init__(
        self,
        filters: Optional[Iterable[EventFilter]] = None,
        retention_hours: float = 2,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the chain.

        Args:
            filters: Filters in evaluation order. Defaults to default_filters().
            retention_hours: Filter state older than this is pruned
            clock: Time source used when no explicit time is passed
        """
        self._filters: Dict[str, EventFilter] = {}
        self._lock = Lock()
        self.retention = timedelta(hours=retention_hours)
        self._clock = clock
        self._stats = {"admitted": 0, "vetoed": 0}
        for event_filter in default_filters() if filters is None else filters:
            self._filters[event_filter.name] = event_filter

    def add_filter(self, event_filter: EventFilter) -> None:
        with self._lock:
            self._filters[event_filter.name] = event_filter
        logger.info("event_filter_added", filter_name=event_filter.name)

    def remove_filter(self, name: str) -> bool:
        with self._lock:
            removed = self._filters.pop(name, None) is not None
        if removed:
            logger.info("event_filter_removed", filter_name=name)
        return removed

    def first_veto(
        self,
        category: str,
        event_data: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Run the applicable filters in order.

        Returns:
            Name of the first vetoing filter, or None if the event is admitted
        """
        now = now or self._clock()
        with self._lock:
            for event_filter in self._filters.values():
                if not event_filter.applies_to(category):
                    continue
                try:
                    admitted = event_filter.admit(event_data, now)
                except Exception as e:
                    logger.error(
                        "event_filter_error",
                        filter_name=event_filter.name,
                        category=category,
                        error=str(e),
                    )
                    admitted = False
                if not admitted:
                    self._stats["vetoed"] += 1
                    logger.info("event_filtered", filter_name=event_filter.name, category=category)
                    return event_filter.name
            self._stats["admitted"] += 1
        return None

    def admit(
        self,
        category: str,
        event_data: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> bool:
        return self.first_veto(category, event_data, now) is None

    def prune(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or self._clock()) - self.retention
        with self._lock:
            removed = sum(f.prune(cutoff) for f in self._filters.values())
        if removed:
            logger.debug("filter_state_pruned", count=removed)
        return removed

    @property
    def filter_names(self) -> List[str]:
        with self._lock:
            return list(self._filters)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "filters_active": len(self._filters),
                "filter_state_size": sum(f.state_size() for f in self._filters.values()),
                "events_admitted": self._stats["admitted"],
                "events_vetoed": self._stats["vetoed"],
            }


__all__ = [
    "EventFilter",
    "DuplicateStatusFilter",
    "RateLimitFilter",
    "VerificationGateFilter",
    "CallableFilter",
    "EventFilterChain",
    "default_filters",
    "category_for",
    "EVENT_CATEGORIES",
]
