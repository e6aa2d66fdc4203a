"""
Alert engine: filter, evaluate, resolve, render and submit.

Every event runs to completion: the filter chain may veto it, then each
active trigger for the event type is checked against its cooldown and
conditions. Matches are resolved to subscribers, recorded as fired and
turned into notification requests, one bulk submission per match.

Collaborator failures are contained per trigger. Locks guarding shared
state are never held across a call to the resolver or dispatcher.
"""

import uuid
import zlib
from collections import deque
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple

import structlog

from .collaborators import ContactDirectory, NotificationDispatcher, SubscriberResolver
from .conditions import ConditionEvaluator
from .cooldown import CooldownTracker
from .errors import FilteredEvent, ResolutionFailure
from .filters import EventFilterChain, category_for
from .messages import MessageRenderer, entity_title
from .models import (
    AlertEvaluation,
    AlertTrigger,
    Channel,
    EventContext,
    EventRecord,
    NotificationContent,
    NotificationMetadata,
    NotificationRequest,
    Priority,
)
from .triggers import TriggerRegistry

logger = structlog.get_logger(__name__)


DELIVERY_DELAYS = {
    Priority.URGENT: timedelta(0),
    Priority.HIGH: timedelta(minutes=2),
    Priority.NORMAL: timedelta(minutes=5),
    Priority.LOW: timedelta(minutes=15),
}

RETRY_BUDGETS = {
    Priority.URGENT: 5,
    Priority.HIGH: 3,
    Priority.NORMAL: 3,
    Priority.LOW: 3,
}


class AlertEngine:
    """
    Orchestrates trigger evaluation and notification submission.

    One engine is built per process and handed its collaborators; it holds
    all cooldown, filter and history state in memory.
    """

    def __init__(
        self,
        resolver: SubscriberResolver,
        dispatcher: NotificationDispatcher,
        contacts: Optional[ContactDirectory] = None,
        registry: Optional[TriggerRegistry] = None,
        cooldowns: Optional[CooldownTracker] = None,
        filters: Optional[EventFilterChain] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        renderer: Optional[MessageRenderer] = None,
        history_retention_hours: float = 24,
        high_priority_sms_share: float = 0.3,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the engine.

        Args:
            resolver: Finds affected subscribers for a trigger match
            dispatcher: Accepts notification requests
            contacts: Address lookup; without it subscriber ids are used as addresses
            registry: Trigger registry, defaults to the built-in trigger set
            cooldowns: Cooldown table
            filters: Admission filter chain, defaults to the standard filters
            evaluator: Condition evaluator
            renderer: Message renderer
            history_retention_hours: How long per-entity event history is kept
            high_priority_sms_share: Share of subscribers routed to SMS for high priority
            clock: Time source for pruning and records
        """
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.contacts = contacts
        self.registry = registry if registry is not None else TriggerRegistry()
        self.cooldowns = cooldowns if cooldowns is not None else CooldownTracker()
        self.filters = filters if filters is not None else EventFilterChain(clock=clock)
        self.evaluator = evaluator or ConditionEvaluator()
        self.renderer = renderer or MessageRenderer()
        self.history_retention = timedelta(hours=history_retention_hours)
        self.high_priority_sms_share = high_priority_sms_share
        self._clock = clock

        self._history: Dict[Tuple[str, str], Deque[datetime]] = {}
        self._lock = Lock()
        self._stats = {
            "events_processed": 0,
            "events_filtered": 0,
            "alerts_fired": 0,
            "notifications_submitted": 0,
            "resolution_failures": 0,
            "submission_failures": 0,
            "contact_lookup_failures": 0,
            "render_failures": 0,
        }

    # --- Trigger administration ---

    def add_trigger(self, trigger: AlertTrigger) -> None:
        """Register a trigger, replacing any trigger with the same id."""
        self.registry.add(trigger)

    def remove_trigger(self, trigger_id: str) -> bool:
        return self.registry.remove(trigger_id)

    # --- Event processing ---

    async def process_event(
        self,
        event_type: str,
        event_data: Mapping[str, Any],
        context: EventContext,
    ) -> EventRecord:
        """
        Process one event end to end.

        Args:
            event_type: Generic alert event type, e.g. "election_result"
            event_data: Event payload the trigger conditions are evaluated against
            context: Related entities, timestamp, source and filter category;
                without a category the one mapped to event_type is used

        Returns:
            EventRecord describing the outcome

        Raises:
            FilteredEvent: If the filter chain vetoed the event
        """
        now = context.timestamp
        log = logger.bind(event_type=event_type, entity_key=context.entity_key)

        category = context.category or category_for(event_type)
        if category:
            veto = self.filters.first_veto(category, event_data, now)
            if veto is not None:
                self._bump("events_filtered")
                log.info("event_rejected", filter_name=veto)
                raise FilteredEvent(event_type, veto)

        record = EventRecord(
            id=uuid.uuid4().hex[:12],
            event_type=event_type,
            event_data=dict(event_data),
            source=context.source,
            priority=context.baseline_priority,
            related_election_id=context.election_id,
            related_candidate_id=context.candidate_id,
            source_id=str(event_data["id"]) if event_data.get("id") is not None else None,
            metadata=dict(context.metadata),
            created_at=now,
        )
        self._remember(event_type, context.entity_key, now)

        evaluations = await self._evaluate_triggers(event_type, event_data, context)

        for evaluation in evaluations:
            record.notifications_submitted += await self._dispatch(evaluation, now)

        if evaluations:
            record.priority = Priority.highest([e.urgency for e in evaluations])
            record.is_processed = True
            record.processed_at = now
            record.fired_trigger_ids = [e.trigger.id for e in evaluations]

        self._bump("events_processed")
        log.info(
            "event_processed",
            triggers_fired=len(evaluations),
            priority=record.priority.value,
        )
        return record

    async def _evaluate_triggers(
        self,
        event_type: str,
        event_data: Mapping[str, Any],
        context: EventContext,
    ) -> List[AlertEvaluation]:
        now = context.timestamp
        entity_key = context.entity_key
        evaluations: List[AlertEvaluation] = []

        for trigger in self.registry.for_event_type(event_type):
            if self.cooldowns.is_in_cooldown(trigger.id, entity_key, trigger.cooldown_minutes, now):
                logger.debug("trigger_in_cooldown", trigger_id=trigger.id, entity_key=entity_key)
                continue

            if not self.evaluator.evaluate(trigger.conditions, event_data, context):
                continue

            try:
                subscribers = await self.resolver.resolve(trigger, context)
            except Exception as e:
                failure = e if isinstance(e, ResolutionFailure) else ResolutionFailure(
                    trigger.id, entity_key, e
                )
                self._bump("resolution_failures")
                logger.error(
                    "subscriber_resolution_failed",
                    trigger_id=trigger.id,
                    event_type=event_type,
                    entity_key=entity_key,
                    error=str(failure),
                )
                continue

            if not subscribers:
                logger.debug("trigger_matched_no_subscribers", trigger_id=trigger.id)
                continue

            message = self._render(trigger, event_data, context)

            # Re-checked under the tracker lock: a concurrent event for the
            # same entity may have fired this trigger while we were resolving.
            if not self.cooldowns.claim(trigger.id, entity_key, trigger.cooldown_minutes, now):
                logger.debug("trigger_claimed_concurrently", trigger_id=trigger.id)
                continue

            evaluations.append(AlertEvaluation(
                trigger=trigger,
                context=context,
                affected_subscribers=list(subscribers),
                message=message,
                subject=self.renderer.subject(trigger, event_data),
                template_data=self._template_data(trigger, event_data, context),
            ))
            self._bump("alerts_fired")
            logger.info(
                "trigger_fired",
                trigger_id=trigger.id,
                event_type=event_type,
                entity_key=entity_key,
                subscriber_count=len(subscribers),
            )

        return evaluations

    def _render(
        self,
        trigger: AlertTrigger,
        event_data: Mapping[str, Any],
        context: EventContext,
    ) -> str:
        """Render the trigger's message, falling back to the generic one if its template fails."""
        try:
            return self.renderer.render(trigger, event_data, context)
        except Exception as e:
            self._bump("render_failures")
            logger.error(
                "message_render_failed",
                trigger_id=trigger.id,
                event_type=trigger.event_type,
                entity_key=context.entity_key,
                error=str(e),
            )
            return self.renderer.generic(event_data)

    @staticmethod
    def _template_data(
        trigger: AlertTrigger,
        event_data: Mapping[str, Any],
        context: EventContext,
    ) -> Dict[str, Any]:
        data = {
            "trigger": trigger.name,
            "urgency": trigger.priority.value,
            "election": entity_title(event_data),
            "candidate": event_data.get("candidate_name"),
        }
        data.update(context.metadata)
        return data

    # --- Dispatch ---

    def select_channel(self, priority: Priority, subscriber_id: str) -> Channel:
        """
        Pick the delivery channel for a subscriber.

        High priority splits subscribers between SMS and email by a stable
        hash of the subscriber id, so a subscriber always gets the same one.
        """
        if priority is Priority.URGENT:
            return Channel.SMS
        if priority is Priority.HIGH:
            bucket = zlib.crc32(subscriber_id.encode("utf-8")) % 100
            return Channel.SMS if bucket < self.high_priority_sms_share * 100 else Channel.EMAIL
        return Channel.EMAIL

    def _address(self, subscriber_id: str, channel: Channel) -> Tuple[Channel, Optional[str]]:
        if self.contacts is None:
            return channel, subscriber_id
        address = self.contacts.lookup(subscriber_id, channel)
        if address is None and channel is not Channel.EMAIL:
            channel = Channel.EMAIL
            address = self.contacts.lookup(subscriber_id, channel)
        return channel, address

    def build_requests(self, evaluation: AlertEvaluation, now: datetime) -> List[NotificationRequest]:
        priority = evaluation.urgency
        requests = []
        for subscriber_id in evaluation.affected_subscribers:
            channel, address = self._address(
                subscriber_id, self.select_channel(priority, subscriber_id)
            )
            if address is None:
                logger.debug("subscriber_without_address", trigger_id=evaluation.trigger.id)
                continue
            requests.append(NotificationRequest(
                channel=channel,
                priority=priority,
                recipient_address=address,
                content=NotificationContent(
                    subject=evaluation.subject,
                    message=evaluation.message,
                    template_data=dict(evaluation.template_data),
                ),
                metadata=NotificationMetadata(
                    subscriber_id=subscriber_id,
                    trigger_id=evaluation.trigger.id,
                    event_type=evaluation.trigger.event_type,
                    entity_ids=evaluation.context.entity_ids(),
                ),
                retry_budget=RETRY_BUDGETS[priority],
                scheduled_delivery_time=now + DELIVERY_DELAYS[priority],
            ))
        return requests

    async def _dispatch(self, evaluation: AlertEvaluation, now: datetime) -> int:
        try:
            requests = self.build_requests(evaluation, now)
        except Exception as e:
            self._bump("contact_lookup_failures")
            logger.error(
                "contact_lookup_failed",
                trigger_id=evaluation.trigger.id,
                event_type=evaluation.trigger.event_type,
                entity_key=evaluation.context.entity_key,
                subscriber_count=len(evaluation.affected_subscribers),
                error=str(e),
            )
            return 0
        if not requests:
            return 0

        # The cooldown stays recorded on failure: the fire already happened.
        try:
            accepted = await self.dispatcher.submit_bulk(requests)
        except Exception as e:
            self._bump("submission_failures")
            logger.error(
                "notification_submission_failed",
                trigger_id=evaluation.trigger.id,
                event_type=evaluation.trigger.event_type,
                entity_key=evaluation.context.entity_key,
                request_count=len(requests),
                error=str(e),
            )
            return 0

        self._bump("notifications_submitted", len(accepted))
        logger.info(
            "notifications_submitted",
            trigger_id=evaluation.trigger.id,
            accepted=len(accepted),
        )
        return len(accepted)

    # --- State ---

    def _remember(self, event_type: str, entity_key: str, now: datetime) -> None:
        with self._lock:
            self._history.setdefault((event_type, entity_key), deque()).append(now)

    def _bump(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            self._stats[counter] += amount

    def prune_history(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or self._clock()) - self.history_retention
        removed = 0
        with self._lock:
            for key in list(self._history):
                entries = self._history[key]
                while entries and entries[0] < cutoff:
                    entries.popleft()
                    removed += 1
                if not entries:
                    del self._history[key]
        return removed

    def prune(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Prune expired cooldowns, filter state and event history."""
        now = now or self._clock()
        return {
            "cooldowns": self.cooldowns.prune(now),
            "filter_state": self.filters.prune(now),
            "event_history": self.prune_history(now),
        }

    def get_stats(self) -> Dict[str, int]:
        """Counts only; never includes subscriber data."""
        stats = dict(self.registry.get_stats())
        stats["triggers_in_cooldown"] = len(self.cooldowns)
        with self._lock:
            stats["event_history_size"] = sum(len(v) for v in self._history.values())
            stats.update(self._stats)
        return stats


__all__ = ["AlertEngine", "DELIVERY_DELAYS", "RETRY_BUDGETS"]
