"""
Alert message rendering.

Templates are keyed by (event_type, trigger_id). Any combination without a
template falls back to a generic message naming only the entity title.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .models import AlertTrigger, EventContext, Priority

Template = Callable[[Mapping[str, Any], EventContext], str]

SUBJECT_TAGS = {
    Priority.URGENT: "[URGENT]",
    Priority.HIGH: "[ALERT]",
    Priority.NORMAL: "[UPDATE]",
    Priority.LOW: "[UPDATE]",
}


def entity_title(event_data: Mapping[str, Any]) -> Optional[str]:
    return event_data.get("election_title") or event_data.get("title")


def _title(event_data: Mapping[str, Any]) -> str:
    return entity_title(event_data) or "your election"


def _registration_message(event_data, context) -> str:
    days = event_data.get("days_until") or 0
    title = _title(event_data)
    if days == 0:
        return (
            f"Today is the last day to register to vote for {title}! "
            "Don't miss your chance to participate."
        )
    plural = "s" if days != 1 else ""
    return (
        f"Only {days} day{plural} left to register to vote for {title}. "
        "Register now to make your voice heard."
    )


DEFAULT_TEMPLATES: Dict[Tuple[str, str], Template] = {
    ("election_result", "election_result_final"): lambda d, c: (
        f"Final results are now available for {_title(d)}. "
        "Check the latest winner and vote tallies."
    ),
    ("election_result", "election_result_available"): lambda d, c: (
        f"Preliminary results are available for {_title(d)}. "
        "Stay tuned for updates as more precincts report."
    ),
    ("candidate_update", "candidate_major_update"): lambda d, c: (
        f"{d.get('candidate_name') or 'A candidate'} has a major update in the "
        f"{_title(d)} race. {d.get('summary') or 'View the latest news and developments.'}"
    ),
    ("breaking_news", "breaking_news_urgent"): lambda d, c: (
        f"Breaking: {d.get('headline') or 'Important election news'}. "
        f"{d.get('summary') or 'Get the details on this developing story.'}"
    ),
    ("deadline_reminder", "registration_deadline_7days"): _registration_message,
    ("deadline_reminder", "registration_deadline_1day"): _registration_message,
    ("deadline_reminder", "early_voting_starts"): lambda d, c: (
        f"Early voting begins today for {_title(d)}! "
        "Find your early voting location and cast your ballot."
    ),
    ("deadline_reminder", "election_day_reminder"): lambda d, c: (
        f"Today is Election Day for {_title(d)}! "
        "Polls are open - go vote and make your voice heard."
    ),
    ("deadline_reminder", "poll_closing_soon"): lambda d, c: (
        f"Polls close in 2 hours for {_title(d)}! "
        "If you haven't voted yet, head to your polling location now."
    ),
}


class MessageRenderer:
    """Renders notification messages and subjects for fired triggers."""

    def __init__(self, templates: Optional[Dict[Tuple[str, str], Template]] = None):
        self._templates: Dict[Tuple[str, str], Template] = dict(
            DEFAULT_TEMPLATES if templates is None else templates
        )

    def register(self, event_type: str, trigger_id: str, template: Template) -> None:
        self._templates[(event_type, trigger_id)] = template

    def render(
        self,
        trigger: AlertTrigger,
        event_data: Mapping[str, Any],
        context: EventContext,
    ) -> str:
        template = self._templates.get((trigger.event_type, trigger.id))
        if template is None:
            return self.generic(event_data)
        return template(event_data, context)

    @staticmethod
    def generic(event_data: Mapping[str, Any]) -> str:
        return f"New update available for {entity_title(event_data) or 'election tracking'}."

    @staticmethod
    def subject(trigger: AlertTrigger, event_data: Mapping[str, Any]) -> str:
        tag = SUBJECT_TAGS[trigger.priority]
        return f"{tag} {trigger.name}: {entity_title(event_data) or 'Election Update'}"


__all__ = ["MessageRenderer", "DEFAULT_TEMPLATES", "SUBJECT_TAGS", "entity_title"]
