"""
Tests for EventProcessor domain adapters.

Tests the mapping from each event family to alert event types and
priorities, payload enrichment, typed rejections and filter administration.
"""

from datetime import date, timedelta

import pytest

from src.alerting import FilteredEvent, NotCriticalEnough, Priority
from src.processors import (
    BreakingNewsEventData,
    CandidateEventData,
    Deadline,
    Election,
    ElectionEventData,
    ElectionResult,
    SystemEventData,
    candidate_priority,
    election_event_mapping,
)


def candidate_event(update_type="major", importance=8, **kwargs) -> CandidateEventData:
    return CandidateEventData(
        candidate_id=42,
        election_id=1,
        event_type="endorsement",
        update_type=update_type,
        importance=importance,
        **kwargs,
    )


class TestMappingTables:
    """Tests for the per-family priority mappings."""

    @pytest.mark.parametrize("status,event_kind,expected", [
        ("final", "results_update", ("election_result", Priority.URGENT)),
        ("counting", "results_update", ("election_result", Priority.HIGH)),
        ("upcoming", "voting_started", ("election_update", Priority.HIGH)),
        ("upcoming", "voting_ended", ("election_update", Priority.HIGH)),
        ("final", "status_change", ("election_update", Priority.URGENT)),
        ("counting", "status_change", ("election_update", Priority.NORMAL)),
    ])
    def test_election_mapping(self, election, status, event_kind, expected):
        election.status = status
        event = ElectionEventData(election_id=1, event_type=event_kind)
        assert election_event_mapping(election, event) == expected

    @pytest.mark.parametrize("days_until,expected", [
        (7, Priority.NORMAL),
        (2, Priority.NORMAL),
        (1, Priority.HIGH),
        (0, Priority.HIGH),
    ])
    def test_deadline_escalates_when_close(self, election, days_until, expected):
        event = ElectionEventData(
            election_id=1,
            event_type="deadline_approaching",
            deadline=Deadline("registration", date(2026, 10, 4), days_until),
        )
        assert election_event_mapping(election, event) == ("deadline_reminder", expected)

    @pytest.mark.parametrize("update_type,importance,expected", [
        ("critical", 1, Priority.URGENT),
        ("minor", 9, Priority.URGENT),
        ("major", 1, Priority.HIGH),
        ("minor", 7, Priority.HIGH),
        ("minor", 6, Priority.NORMAL),
    ])
    def test_candidate_priority(self, update_type, importance, expected):
        assert candidate_priority(candidate_event(update_type, importance)) is expected


class TestElectionEvents:
    """Tests for process_election_event."""

    @pytest.mark.asyncio
    async def test_final_results_fire_urgent(self, processor, election, dispatcher, now):
        election.status = "final"
        event = ElectionEventData(election_id=1, event_type="results_update", results=[{"votes": 10}])

        record = await processor.process_election_event(election, event)

        assert record.event_type == "election_result"
        assert record.fired_trigger_ids == ["election_result_final"]
        assert record.priority is Priority.URGENT
        assert record.related_election_id == 1
        assert record.event_data["election_title"] == "2026 General Election"
        assert record.event_data["election_level"] == "federal"
        assert record.event_data["timestamp"] == now.isoformat()
        assert record.metadata["original_event_type"] == "results_update"

    @pytest.mark.asyncio
    async def test_results_available_uses_flattened_count(self, processor, election):
        event = ElectionEventData(
            election_id=1,
            event_type="results_update",
            new_status="results_available",
            results=[{"votes": 10}, {"votes": 7}],
        )

        record = await processor.process_election_event(election, event)

        assert record.fired_trigger_ids == ["election_result_available"]
        assert record.event_data["results_count"] == 2

    @pytest.mark.asyncio
    async def test_registration_reminder_fires(self, processor, election, dispatcher):
        event = ElectionEventData(
            election_id=1,
            event_type="deadline_approaching",
            deadline=Deadline("registration", date(2026, 10, 4), 1),
        )

        record = await processor.process_election_event(election, event)

        assert record.fired_trigger_ids == ["registration_deadline_1day"]
        assert record.priority is Priority.HIGH
        assert dispatcher.requests[0].content.message.startswith(
            "Only 1 day left to register to vote for 2026 General Election."
        )

    @pytest.mark.asyncio
    async def test_duplicate_status_change_is_filtered(self, processor, election):
        event = ElectionEventData(election_id=1, event_type="status_change", new_status="counting")

        record = await processor.process_election_event(election, event)
        assert record.is_processed is False

        with pytest.raises(FilteredEvent):
            await processor.process_election_event(election, event)


    @pytest.mark.asyncio
    async def test_result_snapshot_is_referenced(self, processor, election, dispatcher):
        election.status = "final"
        event = ElectionEventData(
            election_id=1,
            event_type="results_update",
            result=ElectionResult(
                id=9, election_id=1, total_votes=1200, percent_reporting=100.0, is_complete=True
            ),
        )

        record = await processor.process_election_event(election, event)

        assert record.event_data["result_id"] == 9
        assert record.event_data["is_complete"] is True
        assert dispatcher.requests[0].metadata.entity_ids == {
            "election_id": 1,
            "candidate_id": None,
            "result_id": 9,
        }


class TestCandidateEvents:
    """Tests for process_candidate_event."""

    @pytest.mark.asyncio
    async def test_major_update_fires(self, processor, candidate, election, dispatcher):
        record = await processor.process_candidate_event(
            candidate, election, candidate_event(summary="Endorsed by the governor.")
        )

        assert record.fired_trigger_ids == ["candidate_major_update"]
        assert record.related_candidate_id == 42
        assert record.event_data["candidate_name"] == "Jane Doe"
        assert dispatcher.requests[0].content.message == (
            "Jane Doe has a major update in the 2026 General Election race. "
            "Endorsed by the governor."
        )

    @pytest.mark.asyncio
    async def test_sixth_minor_update_is_filtered(self, processor, candidate, election, clock):
        for _ in range(5):
            record = await processor.process_candidate_event(
                candidate, election, candidate_event("minor", 3)
            )
            assert record.priority is Priority.NORMAL
            clock.advance(minutes=1)

        with pytest.raises(FilteredEvent) as exc_info:
            await processor.process_candidate_event(candidate, election, candidate_event("minor", 3))
        assert exc_info.value.filter_name == "candidate_update_rate_limit"

        major = await processor.process_candidate_event(candidate, election, candidate_event())
        assert major.is_processed is True


class TestBreakingNewsEvents:
    """Tests for process_breaking_news_event."""

    @pytest.mark.asyncio
    async def test_unverified_urgent_is_filtered(self, processor):
        news = BreakingNewsEventData(
            headline="Polling site closed",
            summary="A polling site closed early.",
            urgency="urgent",
            verified=False,
        )

        with pytest.raises(FilteredEvent):
            await processor.process_breaking_news_event(news)

    @pytest.mark.asyncio
    async def test_verified_urgent_proceeds(self, processor):
        news = BreakingNewsEventData(
            headline="Polling site closed",
            summary="A polling site closed early.",
            urgency="urgent",
            verified=True,
            related_election_ids=[1, 2],
        )

        record = await processor.process_breaking_news_event(news)

        assert record.fired_trigger_ids == ["breaking_news_urgent"]
        assert record.related_election_id == 1
        assert record.priority is Priority.URGENT

    @pytest.mark.asyncio
    async def test_baseline_priority_from_urgency(self, processor):
        news = BreakingNewsEventData(headline="Debate scheduled", summary="", urgency="high")

        record = await processor.process_breaking_news_event(news)

        assert record.is_processed is False
        assert record.priority is Priority.HIGH


class TestSystemEvents:
    """Tests for process_system_event."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("severity", ["info", "warning"])
    async def test_low_severity_not_critical_enough(self, processor, severity):
        event = SystemEventData(event_type="maintenance", severity=severity, message="Upgrade")

        with pytest.raises(NotCriticalEnough) as exc_info:
            await processor.process_system_event(event)
        assert exc_info.value.severity == severity

    @pytest.mark.asyncio
    @pytest.mark.parametrize("severity,expected", [
        ("critical", Priority.URGENT),
        ("error", Priority.HIGH),
    ])
    async def test_notifiable_severity(self, processor, severity, expected):
        event = SystemEventData(event_type="service_disruption", severity=severity, message="Outage")

        record = await processor.process_system_event(event)

        assert record.event_type == "system_alert"
        assert record.priority is expected
        assert record.metadata["severity"] == severity


class TestAdministration:
    """Tests for filter administration, scheduling and stats."""

    @pytest.mark.asyncio
    async def test_custom_filter(self, processor):
        processor.add_event_filter(
            name="no_drills",
            predicate=lambda e: e.get("event_type") != "drill",
            categories=("system",),
        )
        drill = SystemEventData(event_type="drill", severity="critical", message="Test")

        with pytest.raises(FilteredEvent):
            await processor.process_system_event(drill)

        assert processor.remove_event_filter("no_drills") is True
        record = await processor.process_system_event(drill)
        assert record.event_type == "system_alert"

    def test_add_filter_requires_predicate(self, processor):
        with pytest.raises(ValueError):
            processor.add_event_filter(name="incomplete")

    @pytest.mark.asyncio
    async def test_scheduled_reminder_round_trip(self, processor, election, now):
        reminders = processor.schedule_deadline_reminders(election)
        registration = [r for r in reminders if r.deadline_type == "registration"]

        assert [r.days_before for r in registration] == [1]

        record = await processor.process_election_event(election, registration[0].to_event_data())
        assert record.fired_trigger_ids == ["registration_deadline_1day"]

    @pytest.mark.asyncio
    async def test_processing_stats(self, processor, election):
        await processor.process_election_event(
            election, ElectionEventData(election_id=1, event_type="voting_started")
        )
        with pytest.raises(NotCriticalEnough):
            await processor.process_system_event(
                SystemEventData(event_type="maintenance", severity="info", message="")
            )

        stats = processor.get_processing_stats()
        assert stats["events_by_family"]["election"] == 1
        assert stats["events_by_family"]["rejected"] == 1
        assert stats["filters_active"] == 3
