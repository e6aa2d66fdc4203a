"""
Deadline reminder scheduling.

Pure computation: the returned reminders are handed to an external job
scheduler, which feeds each one back through
EventProcessor.process_election_event when it comes due.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from .models import Deadline, Election, ElectionEventData

REGISTRATION_LEAD_DAYS = 30
EARLY_VOTING_LEAD_DAYS = 15

# (deadline type, days before the election, reminder offsets in days before the deadline)
DEADLINE_PLAN: List[Tuple[str, int, Tuple[int, ...]]] = [
    ("registration", REGISTRATION_LEAD_DAYS, (30, 14, 7, 3, 1)),
    ("early_voting_start", EARLY_VOTING_LEAD_DAYS, (7, 1, 0)),
    ("election_day", 0, (7, 3, 1, 0)),
]


@dataclass(frozen=True)
class ScheduledReminder:
    """A single reminder due at remind_at for one election deadline."""
    election_id: int
    election_title: str
    deadline_type: str
    deadline_date: date
    days_before: int
    remind_at: datetime

    def to_event_data(self) -> ElectionEventData:
        return ElectionEventData(
            election_id=self.election_id,
            event_type="deadline_approaching",
            deadline=Deadline(
                type=self.deadline_type,
                date=self.deadline_date,
                days_until=self.days_before,
            ),
            metadata={"scheduled_for": self.remind_at.isoformat()},
        )


def deadline_dates(election: Election) -> List[Tuple[str, date, Tuple[int, ...]]]:
    """Deadline dates for an election, with their reminder offsets."""
    return [
        (deadline_type, election.election_date - timedelta(days=lead), offsets)
        for deadline_type, lead, offsets in DEADLINE_PLAN
    ]


def schedule_deadline_reminders(
    election: Election,
    now: Optional[datetime] = None,
) -> List[ScheduledReminder]:
    """
    Compute the future reminders for an election's deadlines.

    Reminders fire at the start of their day. Any reminder whose time is not
    strictly after now is skipped.

    Args:
        election: Election to schedule for
        now: Reference time, defaults to the current time

    Returns:
        Reminders in deadline order, earliest offset first within a deadline
    """
    now = now or datetime.now()
    reminders = []
    for deadline_type, deadline_date, offsets in deadline_dates(election):
        for days_before in offsets:
            remind_at = datetime.combine(deadline_date - timedelta(days=days_before), time.min)
            if remind_at <= now:
                continue
            reminders.append(ScheduledReminder(
                election_id=election.id,
                election_title=election.title,
                deadline_type=deadline_type,
                deadline_date=deadline_date,
                days_before=days_before,
                remind_at=remind_at,
            ))
    return reminders


__all__ = [
    "ScheduledReminder",
    "schedule_deadline_reminders",
    "deadline_dates",
    "DEADLINE_PLAN",
]
