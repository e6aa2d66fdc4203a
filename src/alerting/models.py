"""
Core data structures for the alerting engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Priority(str, Enum):
    """Urgency levels, lowest to highest."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def highest(cls, priorities: List["Priority"], default: Optional["Priority"] = None) -> "Priority":
        """Return the most urgent priority in the list (urgent > high > normal > low)."""
        if not priorities:
            return default if default is not None else cls.NORMAL
        return max(priorities, key=lambda p: p.rank)


_PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.NORMAL: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}


class Operator(str, Enum):
    """Comparison operators supported in trigger conditions."""
    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    NOT_NULL = "not_null"
    CHANGED = "changed"


class Channel(str, Enum):
    """Delivery channels, most immediate first."""
    SMS = "sms"
    EMAIL = "email"


# Sentinel distinguishing "no previous value supplied" from an explicit None.
MISSING = object()


@dataclass(frozen=True)
class AlertCondition:
    """
    A single field-path test against an event payload.

    Attributes:
        field: Dot-path into the event payload (e.g. "deadline.type")
        operator: Operator name; unknown names evaluate to False
        value: Comparison operand
        previous: Prior value for the "changed" operator
    """
    field: str
    operator: str
    value: Any = None
    previous: Any = MISSING

    @property
    def has_previous(self) -> bool:
        return self.previous is not MISSING

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "operator": self.operator, "value": self.value}
        if self.has_previous:
            data["previous"] = self.previous
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertCondition":
        return cls(
            field=data["field"],
            operator=data["operator"],
            value=data.get("value"),
            previous=data["previous"] if "previous" in data else MISSING,
        )


@dataclass(frozen=True)
class AlertTrigger:
    """
    Declarative rule mapping an event type and conditions to a priority.

    Triggers are immutable; updating one means registering a replacement
    record under the same id.

    Attributes:
        id: Unique trigger id
        name: Human-readable name, used in subjects and logs
        event_type: Generic alert event type the trigger listens to
        conditions: Conditions combined with logical AND
        priority: Urgency of notifications produced by this trigger
        cooldown_minutes: Minimum minutes between fires per entity (0 = none)
        active: Inactive triggers are never evaluated
        description: Optional free text
    """
    id: str
    name: str
    event_type: str
    conditions: tuple = ()
    priority: Priority = Priority.NORMAL
    cooldown_minutes: int = 0
    active: bool = True
    description: str = ""

    def __post_init__(self):
        # Accept lists and plain strings for convenience, store canonical forms.
        object.__setattr__(self, "conditions", tuple(self.conditions))
        object.__setattr__(self, "priority", Priority(self.priority))
        if self.cooldown_minutes < 0:
            raise ValueError(f"cooldown_minutes must be >= 0, got {self.cooldown_minutes}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "event_type": self.event_type,
            "conditions": [c.to_dict() for c in self.conditions],
            "priority": self.priority.value,
            "cooldown_minutes": self.cooldown_minutes,
            "active": self.active,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlertTrigger":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            event_type=data["event_type"],
            conditions=[AlertCondition.from_dict(c) for c in data.get("conditions", [])],
            priority=Priority(data.get("priority", "normal")),
            cooldown_minutes=int(data.get("cooldown_minutes", 0)),
            active=data.get("active", True),
            description=data.get("description", ""),
        )


@dataclass
class EventContext:
    """
    Per-event context handed to the engine.

    Related entities are referenced by id only; the engine never owns or
    loads them.

    Attributes:
        timestamp: When the event happened (also the evaluation time)
        source: Name of the producer, e.g. "election_processor"
        election_id: Related election, if any
        candidate_id: Related candidate, if any
        result_id: Related election result, if any
        category: Event family used to select filters ("election", ...)
        baseline_priority: Priority assigned by the adapter's mapping table
        metadata: Free-form extra fields, copied into template data
    """
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = "unknown"
    election_id: Optional[int] = None
    candidate_id: Optional[int] = None
    result_id: Optional[int] = None
    category: Optional[str] = None
    baseline_priority: Priority = Priority.NORMAL
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def entity_key(self) -> str:
        """Key used for cooldowns and history: most specific entity wins."""
        if self.candidate_id is not None:
            return f"candidate:{self.candidate_id}"
        if self.election_id is not None:
            return f"election:{self.election_id}"
        return "global"

    def entity_ids(self) -> Dict[str, Optional[int]]:
        return {
            "election_id": self.election_id,
            "candidate_id": self.candidate_id,
            "result_id": self.result_id,
        }


@dataclass
class AlertEvaluation:
    """A trigger match that resolved to at least one subscriber."""
    trigger: AlertTrigger
    context: EventContext
    affected_subscribers: List[str]
    message: str
    subject: str
    template_data: Dict[str, Any] = field(default_factory=dict)
    triggered: bool = True

    @property
    def urgency(self) -> Priority:
        return self.trigger.priority


@dataclass
class NotificationContent:
    subject: str
    message: str
    template_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationMetadata:
    subscriber_id: str
    trigger_id: str
    event_type: str
    entity_ids: Dict[str, Optional[int]] = field(default_factory=dict)


@dataclass
class NotificationRequest:
    """A single delivery request handed to the external dispatcher."""
    channel: Channel
    priority: Priority
    recipient_address: str
    content: NotificationContent
    metadata: NotificationMetadata
    retry_budget: int
    scheduled_delivery_time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.value,
            "priority": self.priority.value,
            "recipient_address": self.recipient_address,
            "content": {
                "subject": self.content.subject,
                "message": self.content.message,
                "template_data": self.content.template_data,
            },
            "metadata": {
                "subscriber_id": self.metadata.subscriber_id,
                "trigger_id": self.metadata.trigger_id,
                "event_type": self.metadata.event_type,
                "entity_ids": self.metadata.entity_ids,
            },
            "retry_budget": self.retry_budget,
            "scheduled_delivery_time": self.scheduled_delivery_time.isoformat(),
        }


@dataclass
class EventRecord:
    """
    Outcome of processing one event.

    Attributes:
        id: Short unique id
        event_type: Generic alert event type
        event_data: Payload as evaluated
        priority: Highest urgency among fired evaluations, else the baseline
        is_processed: True iff at least one evaluation fired
        fired_trigger_ids: Ids of triggers that fired, in evaluation order
        notifications_submitted: Requests accepted by the dispatcher
    """
    id: str
    event_type: str
    event_data: Dict[str, Any]
    source: str
    priority: Priority = Priority.NORMAL
    is_processed: bool = False
    related_election_id: Optional[int] = None
    related_candidate_id: Optional[int] = None
    source_id: Optional[str] = None
    fired_trigger_ids: List[str] = field(default_factory=list)
    notifications_submitted: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    processed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "source": self.source,
            "priority": self.priority.value,
            "is_processed": self.is_processed,
            "related_election_id": self.related_election_id,
            "related_candidate_id": self.related_candidate_id,
            "source_id": self.source_id,
            "fired_trigger_ids": self.fired_trigger_ids,
            "notifications_submitted": self.notifications_submitted,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }


__all__ = [
    "Priority",
    "Operator",
    "Channel",
    "MISSING",
    "AlertCondition",
    "AlertTrigger",
    "EventContext",
    "AlertEvaluation",
    "NotificationContent",
    "NotificationMetadata",
    "NotificationRequest",
    "EventRecord",
]
