"""Tests for the admin API."""

import pytest
from fastapi.testclient import TestClient

from src.alerting import StaticSubscriberResolver
from src.api.server import create_app
from src.core.config import Settings
from src.service import build_alerting


@pytest.fixture
def service():
    return build_alerting(
        Settings(dispatcher_webhook_url=None),
        resolver=StaticSubscriberResolver({"*": ["user1"]}),
    )


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as test_client:
        yield test_client


class TestAdminApi:
    """Tests for trigger administration endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["sweeper_running"] is True

    def test_list_default_triggers(self, client):
        response = client.get("/alerting/triggers")

        assert response.status_code == 200
        ids = {t["id"] for t in response.json()}
        assert len(ids) == 9
        assert "election_result_final" in ids

    def test_add_trigger(self, client, service):
        payload = {
            "id": "recount_ordered",
            "name": "Recount Ordered",
            "event_type": "breaking_news",
            "conditions": [{"field": "headline", "operator": "contains", "value": "recount"}],
            "priority": "high",
            "cooldown_minutes": 60,
        }

        response = client.post("/alerting/triggers", json=payload)

        assert response.status_code == 201
        trigger = service.engine.registry.get("recount_ordered")
        assert trigger.cooldown_minutes == 60
        assert trigger.conditions[0].has_previous is False

    def test_add_trigger_rejects_unknown_priority(self, client):
        payload = {"id": "x", "name": "X", "event_type": "e", "priority": "critical"}

        response = client.post("/alerting/triggers", json=payload)

        assert response.status_code == 422

    def test_remove_trigger(self, client):
        assert client.delete("/alerting/triggers/poll_closing_soon").status_code == 204
        assert client.delete("/alerting/triggers/poll_closing_soon").status_code == 404

    def test_stats_have_no_subscriber_data(self, client):
        response = client.get("/alerting/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["engine"]["total_triggers"] == 9
        assert "filters_active" in body["processing"]
        assert "user1" not in response.text
