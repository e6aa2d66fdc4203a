"""
Registry of declarative alert triggers.
"""

from threading import Lock
from typing import Dict, Iterable, List, Optional

import structlog

from .models import AlertCondition, AlertTrigger, Priority

logger = structlog.get_logger(__name__)


DEFAULT_TRIGGERS: List[AlertTrigger] = [
    AlertTrigger(
        id="election_result_available",
        name="Election Results Available",
        description="Triggered when election results are published",
        event_type="election_result",
        conditions=[
            AlertCondition("status", "equals", "results_available"),
            AlertCondition("results_count", "greater_than", 0),
        ],
        priority=Priority.HIGH,
        cooldown_minutes=5,
    ),
    AlertTrigger(
        id="election_result_final",
        name="Final Election Results",
        description="Triggered when election results are finalized",
        event_type="election_result",
        conditions=[AlertCondition("status", "equals", "final")],
        priority=Priority.URGENT,
        cooldown_minutes=0,
    ),
    AlertTrigger(
        id="candidate_major_update",
        name="Major Candidate Update",
        description="Triggered for significant candidate news",
        event_type="candidate_update",
        conditions=[
            AlertCondition("update_type", "equals", "major"),
            AlertCondition("importance", "greater_than", 7),
        ],
        priority=Priority.HIGH,
        cooldown_minutes=30,
    ),
    AlertTrigger(
        id="breaking_news_urgent",
        name="Breaking News Alert",
        description="Triggered for urgent breaking news",
        event_type="breaking_news",
        conditions=[
            AlertCondition("urgency", "equals", "urgent"),
            AlertCondition("verified", "equals", True),
        ],
        priority=Priority.URGENT,
        cooldown_minutes=15,
    ),
    AlertTrigger(
        id="registration_deadline_7days",
        name="Registration Deadline - 7 Days",
        description="Triggered 7 days before registration deadline",
        event_type="deadline_reminder",
        conditions=[
            AlertCondition("deadline_type", "equals", "registration"),
            AlertCondition("days_until", "equals", 7),
        ],
        priority=Priority.NORMAL,
        cooldown_minutes=1440,
    ),
    AlertTrigger(
        id="registration_deadline_1day",
        name="Registration Deadline - 1 Day",
        description="Triggered 1 day before registration deadline",
        event_type="deadline_reminder",
        conditions=[
            AlertCondition("deadline_type", "equals", "registration"),
            AlertCondition("days_until", "equals", 1),
        ],
        priority=Priority.HIGH,
        cooldown_minutes=360,
    ),
    AlertTrigger(
        id="early_voting_starts",
        name="Early Voting Begins",
        description="Triggered when early voting starts",
        event_type="deadline_reminder",
        conditions=[
            AlertCondition("deadline_type", "equals", "early_voting_start"),
            AlertCondition("days_until", "equals", 0),
        ],
        priority=Priority.NORMAL,
        cooldown_minutes=0,
    ),
    AlertTrigger(
        id="election_day_reminder",
        name="Election Day Reminder",
        description="Triggered on election day",
        event_type="deadline_reminder",
        conditions=[
            AlertCondition("deadline_type", "equals", "election_day"),
            AlertCondition("days_until", "equals", 0),
        ],
        priority=Priority.HIGH,
        cooldown_minutes=0,
    ),
    AlertTrigger(
        id="poll_closing_soon",
        name="Polls Closing Soon",
        description="Triggered 2 hours before polls close",
        event_type="deadline_reminder",
        conditions=[
            AlertCondition("deadline_type", "equals", "poll_closing"),
            AlertCondition("hours_until", "equals", 2),
        ],
        priority=Priority.URGENT,
        cooldown_minutes=0,
    ),
]


class TriggerRegistry:
    """
    Holds trigger definitions keyed by id.

    Adding a trigger with an existing id silently replaces the old record.
    Reads return snapshots, so callers can iterate while triggers are being
    added or removed concurrently.
    """

    def __init__(self, triggers: Optional[Iterable[AlertTrigger]] = None):
        """
        Initialize the registry.

        Args:
            triggers: Initial triggers. Defaults to DEFAULT_TRIGGERS; pass an
                empty list for an empty registry.
        """
        self._triggers: Dict[str, AlertTrigger] = {}
        self._lock = Lock()
        for trigger in DEFAULT_TRIGGERS if triggers is None else triggers:
            self._triggers[trigger.id] = trigger
        logger.info("triggers_loaded", count=len(self._triggers))

    def add(self, trigger: AlertTrigger) -> None:
        with self._lock:
            replaced = trigger.id in self._triggers
            self._triggers[trigger.id] = trigger
        logger.info("trigger_added", trigger_id=trigger.id, replaced=replaced)

    def remove(self, trigger_id: str) -> bool:
        with self._lock:
            removed = self._triggers.pop(trigger_id, None) is not None
        if removed:
            logger.info("trigger_removed", trigger_id=trigger_id)
        return removed

    def get(self, trigger_id: str) -> Optional[AlertTrigger]:
        with self._lock:
            return self._triggers.get(trigger_id)

    def list(self) -> List[AlertTrigger]:
        with self._lock:
            return list(self._triggers.values())

    def for_event_type(self, event_type: str) -> List[AlertTrigger]:
        """Active triggers listening to the given event type, in registration order."""
        with self._lock:
            return [
                t for t in self._triggers.values()
                if t.active and t.event_type == event_type
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._triggers)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "total_triggers": len(self._triggers),
                "active_triggers": sum(1 for t in self._triggers.values() if t.active),
            }


__all__ = ["TriggerRegistry", "DEFAULT_TRIGGERS"]
