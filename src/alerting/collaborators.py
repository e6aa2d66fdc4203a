"""
Contracts for the external collaborators of the alert engine.

The engine decides whether, what, to whom, how urgently and when to notify.
Finding subscribers, looking up their addresses and delivering messages all
belong to these collaborators. Reference implementations are provided for
wiring and tests; WebhookDispatcher hands bulk submissions to an external
notification queue over HTTP.
"""

import abc
from typing import Dict, Iterable, List, Mapping, Optional

import httpx
import structlog

from .errors import DispatchSubmissionFailure
from .models import AlertTrigger, Channel, EventContext, NotificationRequest

logger = structlog.get_logger(__name__)


class SubscriberResolver(abc.ABC):
    """Finds the subscribers affected by a trigger match."""

    @abc.abstractmethod
    async def resolve(self, trigger: AlertTrigger, context: EventContext) -> List[str]:
        """
        Resolve affected subscribers.

        Args:
            trigger: The trigger whose conditions held
            context: Context of the event being processed

        Returns:
            Subscriber ids; an empty list is a valid result
        """
        pass


class ContactDirectory(abc.ABC):
    """Maps a subscriber and channel to a delivery address."""

    @abc.abstractmethod
    def lookup(self, subscriber_id: str, channel: Channel) -> Optional[str]:
        """Return the subscriber's address for the channel, or None if unknown."""
        pass


class NotificationDispatcher(abc.ABC):
    """Accepts notification requests for later delivery."""

    @abc.abstractmethod
    async def submit_bulk(self, requests: List[NotificationRequest]) -> List[str]:
        """
        Enqueue requests for delivery.

        Returns:
            Ids of accepted requests

        Raises:
            DispatchSubmissionFailure: If the submission was not accepted
        """
        pass


class StaticSubscriberResolver(SubscriberResolver):
    """
    Resolves subscribers from a fixed mapping.

    Lookups try the trigger id first, then the trigger's event type, then
    the "*" wildcard.
    """

    def __init__(self, subscribers: Optional[Mapping[str, Iterable[str]]] = None):
        self._subscribers: Dict[str, List[str]] = {
            key: list(ids) for key, ids in (subscribers or {}).items()
        }

    def subscribe(self, key: str, subscriber_id: str) -> None:
        ids = self._subscribers.setdefault(key, [])
        if subscriber_id not in ids:
            ids.append(subscriber_id)

    async def resolve(self, trigger: AlertTrigger, context: EventContext) -> List[str]:
        for key in (trigger.id, trigger.event_type, "*"):
            if key in self._subscribers:
                return list(self._subscribers[key])
        return []


class StaticContactDirectory(ContactDirectory):
    """Address book backed by a dict of subscriber id -> {channel: address}."""

    def __init__(self, contacts: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._contacts = {
            subscriber: {Channel(channel): address for channel, address in addresses.items()}
            for subscriber, addresses in (contacts or {}).items()
        }

    def lookup(self, subscriber_id: str, channel: Channel) -> Optional[str]:
        return self._contacts.get(subscriber_id, {}).get(channel)


class InMemoryDispatcher(NotificationDispatcher):
    """Records submissions instead of delivering them."""

    def __init__(self):
        self.submissions: List[List[NotificationRequest]] = []
        self._next_id = 0

    async def submit_bulk(self, requests: List[NotificationRequest]) -> List[str]:
        self.submissions.append(list(requests))
        ids = []
        for _ in requests:
            self._next_id += 1
            ids.append(f"n-{self._next_id}")
        return ids

    @property
    def requests(self) -> List[NotificationRequest]:
        return [r for batch in self.submissions for r in batch]


class WebhookDispatcher(NotificationDispatcher):
    """
    Posts bulk submissions to an external notification queue.

    The queue is expected to answer with {"ids": [...]} for accepted
    requests.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            url: Bulk submission endpoint
            timeout: Request timeout in seconds
            headers: Extra request headers
            client: Shared client; a short-lived one is created per call if omitted
        """
        self.url = url
        self.timeout = timeout
        self.headers = headers or {"Content-Type": "application/json"}
        self._client = client

    async def submit_bulk(self, requests: List[NotificationRequest]) -> List[str]:
        payload = {"notifications": [r.to_dict() for r in requests]}
        try:
            if self._client is not None:
                response = await self._client.post(
                    self.url, json=payload, headers=self.headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.url, json=payload, headers=self.headers, timeout=self.timeout
                    )
        except httpx.HTTPError as e:
            raise DispatchSubmissionFailure(f"notification queue unreachable: {e}") from e

        if response.status_code >= 400:
            raise DispatchSubmissionFailure(
                f"notification queue rejected submission with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            logger.warning("dispatcher_response_unparseable", url=self.url)
            return []
        ids = data.get("ids") if isinstance(data, dict) else data
        if not isinstance(ids, list):
            logger.warning("dispatcher_response_unparseable", url=self.url)
            return []
        return [str(i) for i in ids]


__all__ = [
    "SubscriberResolver",
    "ContactDirectory",
    "NotificationDispatcher",
    "StaticSubscriberResolver",
    "StaticContactDirectory",
    "InMemoryDispatcher",
    "WebhookDispatcher",
]
