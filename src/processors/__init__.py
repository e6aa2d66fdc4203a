"""Domain event adapters and deadline reminder scheduling."""
from .models import (
    BreakingNewsEventData,
    Candidate,
    CandidateEventData,
    Deadline,
    Election,
    ElectionEventData,
    ElectionResult,
    SystemEventData,
)
from .processor import EventProcessor, candidate_priority, election_event_mapping
from .schedule import ScheduledReminder, schedule_deadline_reminders

__all__ = [
    "BreakingNewsEventData",
    "Candidate",
    "CandidateEventData",
    "Deadline",
    "Election",
    "ElectionEventData",
    "ElectionResult",
    "SystemEventData",
    "EventProcessor",
    "candidate_priority",
    "election_event_mapping",
    "ScheduledReminder",
    "schedule_deadline_reminders",
]
