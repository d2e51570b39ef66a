"""URL builder utilities for notification templates."""

from mentorhub.config import get_app_url


def build_session_url(session_id: str) -> str:
    """Build URL to a session detail page."""
    return f"{get_app_url()}/sessions/{session_id}"


def build_prep_url(session_id: str) -> str:
    """Build URL to the meeting prep tab of a session."""
    return f"{build_session_url(session_id)}?tab=preparation"


def build_feedback_url(session_id: str) -> str:
    """Build URL to the feedback tab of a session."""
    return f"{build_session_url(session_id)}?tab=feedback"
