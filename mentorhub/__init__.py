"""
Mentorhub core: session email notifications.

Platform-agnostic; used by the web API and by whatever service owns sessions.
"""

# Database (SQLAlchemy)
from .database import get_connection, get_transaction, get_engine, close_engine, is_configured

# Enums
from .enums import (
    SessionStatus, EmailJobType, EmailJobStatus, RecipientRole, BatchStatus,
)

# Session records
from .sessions import (
    Contact, Team, Session, Participant, Change, SessionChanges, SessionSource,
    get_students, get_mentors, get_session_participants, diff_sessions,
)

__all__ = [
    # Database
    'get_connection', 'get_transaction', 'get_engine', 'close_engine', 'is_configured',
    # Enums
    'SessionStatus', 'EmailJobType', 'EmailJobStatus', 'RecipientRole', 'BatchStatus',
    # Sessions
    'Contact', 'Team', 'Session', 'Participant', 'Change', 'SessionChanges', 'SessionSource',
    'get_students', 'get_mentors', 'get_session_participants', 'diff_sessions',
]
