"""
Domain entities and raw event payloads consumed by the event processor.

Entities are owned by the external election data store; the processor only
reads the display fields it needs and refers to them by id afterwards.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


@dataclass
class Election:
    id: int
    title: str
    election_date: date
    level: str = "federal"
    type: str = "general"
    status: str = "upcoming"


@dataclass
class Candidate:
    id: int
    name: str
    party: Optional[str] = None


@dataclass
class Deadline:
    """
    An upcoming deadline attached to an election event.

    Attributes:
        type: registration, early_voting_start, early_voting_end,
            election_day or poll_closing
        date: Date of the deadline
        days_until: Whole days remaining
        hours_until: Hours remaining, for same-day deadlines
    """
    type: str
    date: date
    days_until: int
    hours_until: Optional[int] = None


@dataclass
class ElectionResult:
    """Latest tally snapshot for an election, as reported by the results feed."""
    id: int
    election_id: int
    total_votes: int = 0
    reporting_precincts: int = 0
    total_precincts: int = 0
    percent_reporting: float = 0.0
    is_complete: bool = False
    is_certified: bool = False
    results_source: Optional[str] = None


@dataclass
class ElectionEventData:
    """
    Raw election event.

    event_type is one of status_change, results_update,
    deadline_approaching, voting_started, voting_ended.
    """
    election_id: int
    event_type: str
    new_status: Optional[str] = None
    previous_status: Optional[str] = None
    results: List[Any] = field(default_factory=list)
    deadline: Optional[Deadline] = None
    result: Optional[ElectionResult] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self, election: Election) -> Dict[str, Any]:
        """Flatten into the field names default triggers match on."""
        payload = {
            "election_id": self.election_id,
            "event_type": self.event_type,
            "new_status": self.new_status,
            "previous_status": self.previous_status,
            "status": self.new_status or election.status,
            "results": list(self.results),
            "results_count": len(self.results),
            "metadata": dict(self.metadata),
        }
        if self.deadline is not None:
            payload.update({
                "deadline": {
                    "type": self.deadline.type,
                    "date": self.deadline.date.isoformat(),
                    "days_until": self.deadline.days_until,
                    "hours_until": self.deadline.hours_until,
                },
                "deadline_type": self.deadline.type,
                "days_until": self.deadline.days_until,
                "hours_until": self.deadline.hours_until,
            })
        if self.result is not None:
            payload.update({
                "result_id": self.result.id,
                "total_votes": self.result.total_votes,
                "percent_reporting": self.result.percent_reporting,
                "is_complete": self.result.is_complete,
                "is_certified": self.result.is_certified,
                "results_source": self.result.results_source,
            })
        return payload


@dataclass
class CandidateEventData:
    """
    Raw candidate event.

    update_type is minor, major or critical; importance is on a 1-10 scale.
    """
    candidate_id: int
    election_id: int
    event_type: str
    update_type: str
    importance: int
    verified: bool = False
    headline: Optional[str] = None
    summary: Optional[str] = None
    details: Optional[str] = None
    source_url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "election_id": self.election_id,
            "event_type": self.event_type,
            "update_type": self.update_type,
            "importance": self.importance,
            "verified": self.verified,
            "headline": self.headline,
            "summary": self.summary,
            "details": self.details,
            "source_url": self.source_url,
            "metadata": dict(self.metadata),
        }


@dataclass
class BreakingNewsEventData:
    headline: str
    summary: str
    urgency: str = "normal"
    category: str = "other"
    verified: bool = False
    details: Optional[str] = None
    related_election_ids: List[int] = field(default_factory=list)
    related_candidate_ids: List[int] = field(default_factory=list)
    source_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "headline": self.headline,
            "summary": self.summary,
            "details": self.details,
            "urgency": self.urgency,
            "category": self.category,
            "verified": self.verified,
            "related_election_ids": list(self.related_election_ids),
            "related_candidate_ids": list(self.related_candidate_ids),
            "source_url": self.source_url,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "metadata": dict(self.metadata),
        }


@dataclass
class SystemEventData:
    """
    Platform incident or notice.

    severity is info, warning, error or critical; only error and critical
    are ever notified.
    """
    event_type: str
    severity: str
    message: str
    affected_services: List[str] = field(default_factory=list)
    estimated_duration: Optional[int] = None
    action_required: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "severity": self.severity,
            "message": self.message,
            "affected_services": list(self.affected_services),
            "estimated_duration": self.estimated_duration,
            "action_required": self.action_required,
            "metadata": dict(self.metadata),
        }


__all__ = [
    "Election",
    "Candidate",
    "Deadline",
    "ElectionResult",
    "ElectionEventData",
    "CandidateEventData",
    "BreakingNewsEventData",
    "SystemEventData",
]
