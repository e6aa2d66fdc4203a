"""Tests for the reference collaborator implementations."""

from datetime import datetime

import httpx
import pytest

from src.alerting import (
    AlertTrigger,
    Channel,
    DispatchSubmissionFailure,
    EventContext,
    InMemoryDispatcher,
    Priority,
    StaticContactDirectory,
    StaticSubscriberResolver,
    WebhookDispatcher,
)
from src.alerting.models import NotificationContent, NotificationMetadata, NotificationRequest


def make_request() -> NotificationRequest:
    return NotificationRequest(
        channel=Channel.EMAIL,
        priority=Priority.NORMAL,
        recipient_address="user1@example.com",
        content=NotificationContent(subject="[UPDATE] Test", message="Hello"),
        metadata=NotificationMetadata(
            subscriber_id="user1",
            trigger_id="test_trigger",
            event_type="test_event",
            entity_ids={"election_id": 1, "candidate_id": None, "result_id": None},
        ),
        retry_budget=3,
        scheduled_delivery_time=datetime(2026, 10, 1, 9, 5),
    )


class TestStaticSubscriberResolver:
    """Tests for StaticSubscriberResolver."""

    @pytest.mark.asyncio
    async def test_lookup_order(self):
        resolver = StaticSubscriberResolver({
            "election_result_final": ["a"],
            "election_result": ["b"],
            "*": ["c"],
        })
        context = EventContext(source="test")

        final = AlertTrigger(id="election_result_final", name="F", event_type="election_result")
        available = AlertTrigger(id="other", name="O", event_type="election_result")
        news = AlertTrigger(id="news", name="N", event_type="breaking_news")

        assert await resolver.resolve(final, context) == ["a"]
        assert await resolver.resolve(available, context) == ["b"]
        assert await resolver.resolve(news, context) == ["c"]

    @pytest.mark.asyncio
    async def test_empty_by_default(self):
        resolver = StaticSubscriberResolver()
        trigger = AlertTrigger(id="t", name="T", event_type="e")
        assert await resolver.resolve(trigger, EventContext()) == []


class TestStaticContactDirectory:
    """Tests for StaticContactDirectory."""

    def test_lookup(self):
        directory = StaticContactDirectory({"user1": {"sms": "+15550000"}})
        assert directory.lookup("user1", Channel.SMS) == "+15550000"
        assert directory.lookup("user1", Channel.EMAIL) is None
        assert directory.lookup("unknown", Channel.SMS) is None


class TestInMemoryDispatcher:
    """Tests for InMemoryDispatcher."""

    @pytest.mark.asyncio
    async def test_records_batches(self):
        dispatcher = InMemoryDispatcher()
        ids = await dispatcher.submit_bulk([make_request(), make_request()])

        assert ids == ["n-1", "n-2"]
        assert len(dispatcher.submissions) == 1
        assert len(dispatcher.requests) == 2


class TestWebhookDispatcher:
    """Tests for WebhookDispatcher."""

    @pytest.mark.asyncio
    async def test_posts_bulk_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.read()
            return httpx.Response(202, json={"ids": [101, 102]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        dispatcher = WebhookDispatcher("https://queue.example.com/bulk", client=client)

        ids = await dispatcher.submit_bulk([make_request(), make_request()])

        assert ids == ["101", "102"]
        assert b'"recipient_address":"user1@example.com"' in seen["body"].replace(b" ", b"")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_http_error_raises_submission_failure(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        dispatcher = WebhookDispatcher("https://queue.example.com/bulk", client=client)

        with pytest.raises(DispatchSubmissionFailure) as exc_info:
            await dispatcher.submit_bulk([make_request()])

        assert exc_info.value.status_code == 503
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_raises_submission_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        dispatcher = WebhookDispatcher("https://queue.example.com/bulk", client=client)

        with pytest.raises(DispatchSubmissionFailure):
            await dispatcher.submit_bulk([make_request()])
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body,expected", [
        ({"ids": ["a1"]}, ["a1"]),
        ([7, 8], ["7", "8"]),
        (None, []),
        ("accepted", []),
        ({"ids": "a1"}, []),
        ({"status": "queued"}, []),
    ])
    async def test_response_ids(self, body, expected):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        )
        dispatcher = WebhookDispatcher("https://queue.example.com/bulk", client=client)

        assert await dispatcher.submit_bulk([make_request()]) == expected
        await client.aclose()
