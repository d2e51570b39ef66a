# web_api/tests/conftest.py
"""Pytest fixtures for web API tests.

Route tests patch the notification service functions where each route
module imports them, so no database or dispatcher is needed.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure we import from root main.py
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from main import app  # noqa: E402
from mentorhub.enums import EmailJobStatus, EmailJobType, RecipientRole  # noqa: E402
from mentorhub.notifications.jobs import EmailJob  # noqa: E402


@pytest.fixture
def client():
    """Test client without lifespan, so the email dispatcher never starts."""
    return TestClient(app)


@pytest.fixture
def make_job():
    """Factory for EmailJob rows as the job store would return them."""
    counter = {"n": 0}

    def _make(status=EmailJobStatus.scheduled, **overrides) -> EmailJob:
        counter["n"] += 1
        n = counter["n"]
        fields = dict(
            job_id=f"job-{n}",
            batch_id="batch-1",
            session_id="session-1",
            job_type=EmailJobType.prep_24h,
            recipient_email=f"student{n}@example.com",
            recipient_name=f"Student {n}",
            recipient_role=RecipientRole.student,
            scheduled_for=datetime(2030, 1, 1, tzinfo=timezone.utc) + timedelta(hours=n),
            status=status,
            subject="Submit meeting prep to unlock Zoom link - session tomorrow",
            body="Hi",
            provider_message_id=f"email_{n}",
        )
        fields.update(overrides)
        return EmailJob(**fields)

    return _make
