"""Pytest fixtures for alerting tests."""
import pytest
from datetime import date, datetime, timedelta

from src.alerting import (
    AlertCondition,
    AlertEngine,
    AlertTrigger,
    EventContext,
    InMemoryDispatcher,
    StaticContactDirectory,
    StaticSubscriberResolver,
    TriggerRegistry,
)
from src.processors import Candidate, Election, EventProcessor

SUBSCRIBERS = ["user1", "user2", "user3"]


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 1, 9, 0)


@pytest.fixture
def clock(now) -> FakeClock:
    return FakeClock(now)


@pytest.fixture
def resolver() -> StaticSubscriberResolver:
    return StaticSubscriberResolver({"*": SUBSCRIBERS})


@pytest.fixture
def contacts() -> StaticContactDirectory:
    return StaticContactDirectory({
        user: {"sms": f"+1555000{i}", "email": f"{user}@example.com"}
        for i, user in enumerate(SUBSCRIBERS)
    })


@pytest.fixture
def dispatcher() -> InMemoryDispatcher:
    return InMemoryDispatcher()


@pytest.fixture
def engine(resolver, dispatcher, contacts, clock) -> AlertEngine:
    """Engine with the default trigger set and filters."""
    return AlertEngine(resolver, dispatcher, contacts=contacts, clock=clock)


@pytest.fixture
def make_engine(resolver, dispatcher, contacts, clock):
    """Factory for an engine with a custom trigger set."""
    def _make(*triggers: AlertTrigger, **kwargs) -> AlertEngine:
        kwargs.setdefault("resolver", resolver)
        kwargs.setdefault("dispatcher", dispatcher)
        kwargs.setdefault("contacts", contacts)
        kwargs.setdefault("clock", clock)
        return AlertEngine(registry=TriggerRegistry(list(triggers)), **kwargs)
    return _make


@pytest.fixture
def make_trigger():
    """Factory for a single-condition trigger on "test_event"."""
    def _make(
        trigger_id: str = "test_trigger",
        priority: str = "normal",
        cooldown_minutes: int = 0,
        event_type: str = "test_event",
        conditions=None,
    ) -> AlertTrigger:
        return AlertTrigger(
            id=trigger_id,
            name=trigger_id.replace("_", " ").title(),
            event_type=event_type,
            conditions=conditions if conditions is not None else [
                AlertCondition("status", "equals", "final"),
            ],
            priority=priority,
            cooldown_minutes=cooldown_minutes,
        )
    return _make


@pytest.fixture
def context(now) -> EventContext:
    return EventContext(timestamp=now, source="test", election_id=1)


@pytest.fixture
def election() -> Election:
    return Election(
        id=1,
        title="2026 General Election",
        election_date=date(2026, 11, 3),
        level="federal",
        type="general",
        status="upcoming",
    )


@pytest.fixture
def candidate() -> Candidate:
    return Candidate(id=42, name="Jane Doe", party="Independent")


@pytest.fixture
def processor(engine, clock) -> EventProcessor:
    return EventProcessor(engine, clock=clock)
