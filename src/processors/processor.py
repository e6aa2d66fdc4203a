"""
Domain adapters feeding the alert engine.

Each event family (election, candidate, breaking news, system) has one
entry point that picks the generic alert event type and a baseline
priority from a fixed mapping, enriches the payload with display fields
and hands it to AlertEngine.process_event with a context that references
related entities by id.

Rejections (FilteredEvent, NotCriticalEnough) propagate to the caller and
are never retried here.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import structlog

from ..alerting.engine import AlertEngine
from ..alerting.errors import EventRejected, NotCriticalEnough
from ..alerting.filters import CallableFilter, EventFilter
from ..alerting.models import EventContext, EventRecord, Priority
from .models import (
    BreakingNewsEventData,
    Candidate,
    CandidateEventData,
    Election,
    ElectionEventData,
    SystemEventData,
)
from .schedule import ScheduledReminder, schedule_deadline_reminders

logger = structlog.get_logger(__name__)


NEWS_URGENCY = {
    "low": Priority.LOW,
    "normal": Priority.NORMAL,
    "high": Priority.HIGH,
    "urgent": Priority.URGENT,
}

NOTIFIABLE_SEVERITIES = {
    "critical": Priority.URGENT,
    "error": Priority.HIGH,
}


def election_event_mapping(election: Election, event: ElectionEventData) -> Tuple[str, Priority]:
    """Alert event type and baseline priority for an election event."""
    final = election.status == "final"
    if event.event_type == "results_update":
        return "election_result", Priority.URGENT if final else Priority.HIGH
    if event.event_type == "deadline_approaching":
        soon = event.deadline is not None and event.deadline.days_until <= 1
        return "deadline_reminder", Priority.HIGH if soon else Priority.NORMAL
    if event.event_type in ("voting_started", "voting_ended"):
        return "election_update", Priority.HIGH
    if event.event_type == "status_change":
        return "election_update", Priority.URGENT if final else Priority.NORMAL
    return "election_update", Priority.NORMAL


def candidate_priority(event: CandidateEventData) -> Priority:
    if event.update_type == "critical" or event.importance >= 9:
        return Priority.URGENT
    if event.update_type == "major" or event.importance >= 7:
        return Priority.HIGH
    return Priority.NORMAL


class EventProcessor:
    """Normalizes domain events and submits them to the alert engine."""

    def __init__(self, engine: AlertEngine, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the processor.

        Args:
            engine: Alert engine that owns triggers, filters and cooldowns
            clock: Time source stamped on every processed event
        """
        self.engine = engine
        self._clock = clock
        self._stats = {
            "election": 0,
            "candidate": 0,
            "breaking_news": 0,
            "system": 0,
            "rejected": 0,
        }

    async def _submit(
        self,
        category: str,
        alert_event_type: str,
        payload: Dict[str, Any],
        context: EventContext,
    ) -> EventRecord:
        try:
            record = await self.engine.process_event(alert_event_type, payload, context)
        except EventRejected:
            self._stats["rejected"] += 1
            raise
        self._stats[category] += 1
        return record

    async def process_election_event(
        self,
        election: Election,
        event: ElectionEventData,
    ) -> EventRecord:
        """
        Process an election status, results or deadline event.

        Raises:
            FilteredEvent: If the status repeats the last one seen for the election
        """
        now = self._clock()
        logger.info("processing_election_event", event_kind=event.event_type, election_id=election.id)

        alert_event_type, priority = election_event_mapping(election, event)
        payload = event.to_payload(election)
        payload.update({
            "election_title": election.title,
            "election_date": election.election_date.isoformat(),
            "election_level": election.level,
            "election_type": election.type,
            "timestamp": now.isoformat(),
        })

        context = EventContext(
            timestamp=now,
            source="election_processor",
            election_id=election.id,
            result_id=event.result.id if event.result is not None else None,
            category="election",
            baseline_priority=priority,
            metadata={
                "original_event_type": event.event_type,
                "processing_time": now.isoformat(),
            },
        )
        return await self._submit("election", alert_event_type, payload, context)

    async def process_candidate_event(
        self,
        candidate: Candidate,
        election: Election,
        event: CandidateEventData,
    ) -> EventRecord:
        """
        Process a candidate update.

        Raises:
            FilteredEvent: If the candidate exceeded its hourly minor-update cap
        """
        now = self._clock()
        logger.info("processing_candidate_event", event_kind=event.event_type, candidate_id=candidate.id)

        payload = event.to_payload()
        payload.update({
            "candidate_name": candidate.name,
            "candidate_party": candidate.party,
            "election_title": election.title,
            "election_date": election.election_date.isoformat(),
            "election_level": election.level,
            "timestamp": now.isoformat(),
        })

        context = EventContext(
            timestamp=now,
            source="candidate_processor",
            election_id=election.id,
            candidate_id=candidate.id,
            category="candidate",
            baseline_priority=candidate_priority(event),
            metadata={
                "original_event_type": event.event_type,
                "update_type": event.update_type,
                "importance": event.importance,
                "verified": event.verified,
            },
        )
        return await self._submit("candidate", "candidate_update", payload, context)

    async def process_breaking_news_event(self, event: BreakingNewsEventData) -> EventRecord:
        """
        Process breaking news.

        Raises:
            FilteredEvent: If the news is urgent but unverified
        """
        now = self._clock()
        logger.info("processing_breaking_news", category=event.category, urgency=event.urgency)

        payload = event.to_payload()
        payload["timestamp"] = now.isoformat()

        context = EventContext(
            timestamp=now,
            source="breaking_news_processor",
            election_id=event.related_election_ids[0] if event.related_election_ids else None,
            candidate_id=event.related_candidate_ids[0] if event.related_candidate_ids else None,
            category="breaking_news",
            baseline_priority=NEWS_URGENCY.get(event.urgency, Priority.NORMAL),
            metadata={
                "category": event.category,
                "urgency": event.urgency,
                "verified": event.verified,
                "source_url": event.source_url,
                "expires_at": event.expires_at.isoformat() if event.expires_at else None,
            },
        )
        return await self._submit("breaking_news", "breaking_news", payload, context)

    async def process_system_event(self, event: SystemEventData) -> EventRecord:
        """
        Process a platform incident.

        Raises:
            NotCriticalEnough: If severity is below error
        """
        now = self._clock()
        priority = NOTIFIABLE_SEVERITIES.get(event.severity)
        if priority is None:
            self._stats["rejected"] += 1
            logger.info("system_event_not_critical", event_kind=event.event_type, severity=event.severity)
            raise NotCriticalEnough("system_alert", event.severity)

        payload = event.to_payload()
        payload["timestamp"] = now.isoformat()

        context = EventContext(
            timestamp=now,
            source="system_processor",
            category="system",
            baseline_priority=priority,
            metadata={
                "severity": event.severity,
                "action_required": event.action_required,
                "affected_services": list(event.affected_services),
                "estimated_duration": event.estimated_duration,
            },
        )
        return await self._submit("system", "system_alert", payload, context)

    def schedule_deadline_reminders(
        self,
        election: Election,
        now: Optional[datetime] = None,
    ) -> List[ScheduledReminder]:
        reminders = schedule_deadline_reminders(election, now or self._clock())
        logger.info("deadline_reminders_scheduled", election_id=election.id, count=len(reminders))
        return reminders

    # --- Filter administration ---

    def add_event_filter(
        self,
        event_filter: Optional[EventFilter] = None,
        *,
        name: Optional[str] = None,
        predicate: Optional[Callable[[Mapping[str, Any]], bool]] = None,
        categories: Tuple[str, ...] = (),
    ) -> None:
        """Add a filter instance, or build a stateless one from a predicate."""
        if event_filter is None:
            if name is None or predicate is None:
                raise ValueError("either event_filter or name and predicate are required")
            event_filter = CallableFilter(name, predicate, categories)
        self.engine.filters.add_filter(event_filter)

    def remove_event_filter(self, name: str) -> bool:
        return self.engine.filters.remove_filter(name)

    def get_processing_stats(self) -> Dict[str, Any]:
        stats = dict(self.engine.filters.get_stats())
        stats["events_by_family"] = dict(self._stats)
        stats["last_processing_time"] = self._clock().isoformat()
        return stats


__all__ = [
    "EventProcessor",
    "election_event_mapping",
    "candidate_priority",
    "NEWS_URGENCY",
    "NOTIFIABLE_SEVERITIES",
]
