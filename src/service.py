"""
Wiring for the alerting service.

Components are built once at process start and handed their collaborators
explicitly; nothing reads global state after construction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .alerting.collaborators import (
    ContactDirectory,
    InMemoryDispatcher,
    NotificationDispatcher,
    StaticSubscriberResolver,
    SubscriberResolver,
    WebhookDispatcher,
)
from .alerting.cooldown import CooldownTracker
from .alerting.engine import AlertEngine
from .alerting.filters import EventFilterChain, default_filters
from .alerting.sweeper import MaintenanceSweeper
from .core.config import Settings
from .processors.processor import EventProcessor


@dataclass
class AlertingService:
    """The engine, its domain adapters and the maintenance sweeper."""
    engine: AlertEngine
    processor: EventProcessor
    sweeper: MaintenanceSweeper

    async def start(self) -> None:
        await self.sweeper.start()

    async def stop(self) -> None:
        await self.sweeper.stop()


def build_alerting(
    settings: Optional[Settings] = None,
    resolver: Optional[SubscriberResolver] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    contacts: Optional[ContactDirectory] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> AlertingService:
    """
    Build an AlertingService from settings.

    Without an explicit dispatcher, submissions go to the configured webhook
    URL, or are kept in memory when none is configured.
    """
    settings = settings or Settings()

    if dispatcher is None:
        if settings.dispatcher_webhook_url:
            dispatcher = WebhookDispatcher(
                settings.dispatcher_webhook_url,
                timeout=settings.dispatcher_timeout_seconds,
            )
        else:
            dispatcher = InMemoryDispatcher()

    filters = EventFilterChain(
        filters=default_filters(
            minor_update_cap=settings.minor_update_hourly_cap,
            rate_limit_window_minutes=settings.rate_limit_window_minutes,
        ),
        retention_hours=settings.filter_retention_hours,
        clock=clock,
    )
    engine = AlertEngine(
        resolver=resolver or StaticSubscriberResolver(),
        dispatcher=dispatcher,
        contacts=contacts,
        cooldowns=CooldownTracker(retention_hours=settings.cooldown_retention_hours),
        filters=filters,
        history_retention_hours=settings.event_history_retention_hours,
        high_priority_sms_share=settings.high_priority_sms_share,
        clock=clock,
    )
    return AlertingService(
        engine=engine,
        processor=EventProcessor(engine, clock=clock),
        sweeper=MaintenanceSweeper(engine, settings.sweep_interval_seconds, clock=clock),
    )


__all__ = ["AlertingService", "build_alerting"]
