"""
Session records as seen by the notification core.

Sessions are owned by another service. This module holds the read-only
view the notification code works with, the participant helpers that turn
a session into a recipient list, and the interface for the session source.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from .config import DEFAULT_SESSION_DURATION_MINUTES
from .enums import RecipientRole, SessionStatus


@dataclass
class Contact:
    """A person who can receive email (mentor or team member)."""

    id: str
    full_name: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "there"


@dataclass
class Team:
    id: str
    team_name: str | None = None
    members: list[Contact] = field(default_factory=list)


@dataclass
class Session:
    """
    A mentoring session, fully resolved with team members and mentors.

    The first entry in ``mentors`` is the lead mentor. ``require_prep`` and
    ``require_feedback`` default to enabled when the record leaves them unset.
    """

    id: str
    scheduled_start: datetime | None
    duration: int | None = DEFAULT_SESSION_DURATION_MINUTES
    status: SessionStatus = SessionStatus.scheduled
    session_type: str | None = None
    mentors: list[Contact] = field(default_factory=list)
    team: Team | None = None
    require_prep: bool | None = None
    require_feedback: bool | None = None
    location_id: str | None = None
    location_name: str | None = None
    meeting_url: str | None = None
    scheduled_email_ids: str | None = None

    @property
    def prep_required(self) -> bool:
        return self.require_prep is not False

    @property
    def feedback_required(self) -> bool:
        return self.require_feedback is not False

    @property
    def duration_minutes(self) -> int:
        return self.duration or DEFAULT_SESSION_DURATION_MINUTES

    @property
    def session_type_label(self) -> str:
        return self.session_type or "Session"

    @property
    def team_name(self) -> str:
        if self.team and self.team.team_name:
            return self.team.team_name
        return "your team"


@dataclass
class Participant:
    """A resolved email recipient for one session."""

    contact_id: str
    name: str
    email: str
    role: RecipientRole


@dataclass
class Change:
    old: Any
    new: Any


@dataclass
class SessionChanges:
    """Fields that changed on a session update, each as old -> new."""

    scheduled_start: Change | None = None
    duration: Change | None = None
    location: Change | None = None
    meeting_url: Change | None = None

    def is_empty(self) -> bool:
        return not any(
            (self.scheduled_start, self.duration, self.location, self.meeting_url)
        )

    @property
    def time_changed(self) -> bool:
        return self.scheduled_start is not None or self.duration is not None


class SessionSource(Protocol):
    """Where session records come from. Implemented by the host application."""

    async def get_session_detail(self, session_id: str) -> Session | None: ...

    async def update_session(self, session_id: str, fields: dict) -> None: ...

    async def delete_session(self, session_id: str) -> None: ...


# =============================================================================
# Participants
# =============================================================================


def get_students(session: Session) -> list[Participant]:
    """Team members with an email address, in team order."""
    if not session.team:
        return []
    return [
        Participant(
            contact_id=member.id,
            name=member.display_name,
            email=member.email,
            role=RecipientRole.student,
        )
        for member in session.team.members
        if member.email
    ]


def get_mentors(session: Session) -> list[Participant]:
    """Mentors with an email address, lead mentor first."""
    return [
        Participant(
            contact_id=mentor.id,
            name=mentor.display_name,
            email=mentor.email,
            role=RecipientRole.mentor,
        )
        for mentor in session.mentors
        if mentor.email
    ]


def get_session_participants(session: Session) -> list[Participant]:
    """
    Everyone who can be emailed about a session: mentors, then students.

    A contact listed both as mentor and team member appears once, as mentor.
    """
    participants = []
    seen_emails = set()
    for participant in get_mentors(session) + get_students(session):
        email_key = participant.email.lower()
        if email_key in seen_emails:
            continue
        seen_emails.add(email_key)
        participants.append(participant)
    return participants


def format_mentor_names(session: Session) -> str:
    """
    Mentor names for email copy.

    Returns:
        "Ada", "Ada and Grace", or "Ada and 2 others"
    """
    names = [mentor.display_name for mentor in session.mentors]
    if not names:
        return "your mentor"
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} and {names[1]}"
    return f"{names[0]} and {len(names) - 1} others"


def diff_sessions(before: Session, after: Session) -> SessionChanges:
    """Compute the user-visible changes between two versions of a session."""
    changes = SessionChanges()
    if before.scheduled_start != after.scheduled_start:
        changes.scheduled_start = Change(before.scheduled_start, after.scheduled_start)
    if before.duration_minutes != after.duration_minutes:
        changes.duration = Change(before.duration_minutes, after.duration_minutes)
    if (before.location_id, before.location_name) != (
        after.location_id,
        after.location_name,
    ):
        changes.location = Change(before.location_name, after.location_name)
    if before.meeting_url != after.meeting_url:
        changes.meeting_url = Change(before.meeting_url, after.meeting_url)
    return changes
