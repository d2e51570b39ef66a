"""Fixtures for notification tests.

Provides in-memory stand-ins for the email job store and the dispatcher so
service-level tests can check behavior without PostgreSQL or APScheduler.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from mentorhub.enums import (
    ACTIVE_JOB_STATUSES,
    EmailJobStatus,
    EmailJobType,
    RecipientRole,
)
from mentorhub.notifications.errors import (
    DispatchUnavailableError,
    JobNotFoundError,
    JobStoreUnavailableError,
)
from mentorhub.notifications.jobs import EmailJob, JobKey
from mentorhub.sessions import Contact, Session, Team


class FakeJobStore:
    """In-memory job store with the same async API as job_store."""

    def __init__(self):
        self.jobs: dict[str, EmailJob] = {}
        self.available = True

    def _check(self):
        if not self.available:
            raise JobStoreUnavailableError()

    async def is_available(self) -> bool:
        return self.available

    async def require_available(self) -> None:
        self._check()

    async def get_job(self, job_id):
        self._check()
        job = self.jobs.get(job_id)
        return replace(job) if job else None

    async def get_session_jobs(self, session_id):
        self._check()
        jobs = [j for j in self.jobs.values() if j.session_id == session_id]
        return [replace(j) for j in sorted(jobs, key=lambda j: j.scheduled_for)]

    async def get_batch_jobs(self, batch_id):
        self._check()
        jobs = [j for j in self.jobs.values() if j.batch_id == batch_id]
        return [replace(j) for j in sorted(jobs, key=lambda j: j.scheduled_for)]

    async def get_failed_jobs(self, limit=100):
        self._check()
        jobs = [j for j in self.jobs.values() if j.status == EmailJobStatus.failed]
        return [replace(j) for j in jobs][:limit]

    async def find_active_job(self, key: JobKey):
        self._check()
        for job in self.jobs.values():
            if job.key == key and job.status in ACTIVE_JOB_STATUSES:
                return replace(job)
        return None

    async def upsert_job(self, job: EmailJob):
        self._check()
        stored = replace(job, created_at=job.created_at or datetime.now(timezone.utc))
        self.jobs[job.job_id] = stored
        return replace(stored)

    async def update_job_status(
        self,
        job_id,
        status,
        *,
        provider_message_id=None,
        clear_provider_message_id=False,
        last_error=None,
        clear_last_error=False,
        increment_attempts=False,
    ):
        self._check()
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        job.status = status
        if provider_message_id is not None:
            job.provider_message_id = provider_message_id
        elif clear_provider_message_id:
            job.provider_message_id = None
        if last_error is not None:
            job.last_error = last_error
        elif clear_last_error:
            job.last_error = None
        if increment_attempts:
            job.attempts += 1
        return replace(job)

    async def delete_session_jobs(self, session_id):
        self._check()
        doomed = [jid for jid, j in self.jobs.items() if j.session_id == session_id]
        for jid in doomed:
            del self.jobs[jid]
        return len(doomed)

    async def delete_batch_jobs(self, batch_id):
        self._check()
        doomed = [jid for jid, j in self.jobs.items() if j.batch_id == batch_id]
        for jid in doomed:
            del self.jobs[jid]
        return len(doomed)

    # Test helpers

    def add(self, **overrides) -> EmailJob:
        """Insert a job directly, defaulting to a scheduled prep24h reminder."""
        n = len(self.jobs) + 1
        fields = dict(
            job_id=f"job-{n}",
            batch_id="batch-1",
            session_id="session-1",
            job_type=EmailJobType.prep_24h,
            recipient_email=f"student{n}@example.com",
            recipient_name=f"Student {n}",
            recipient_role=RecipientRole.student,
            scheduled_for=datetime.now(timezone.utc) + timedelta(days=2),
            status=EmailJobStatus.scheduled,
            subject="Subject",
            body="Body",
            provider_message_id=f"email_{n}",
            created_at=datetime.now(timezone.utc),
        )
        fields.update(overrides)
        job = EmailJob(**fields)
        self.jobs[job.job_id] = job
        return job

    def by_status(self, status: EmailJobStatus) -> list[EmailJob]:
        return [j for j in self.jobs.values() if j.status == status]


class FakeDispatcher:
    """Records submissions and cancellations instead of queueing emails."""

    def __init__(self):
        self.running = True
        self.submitted = []  # (message, send_at, job_id, provider_id)
        self.cancelled = []
        self.moved = []
        self.sent_now = []
        self.calls = []  # ("submit" | "cancel", provider_id) in order
        self.fail_submit_for: set[str] = set()
        self.fail_cancel_for: set[str] = set()
        self.gone: set[str] = set()
        self._counter = 0

    def is_running(self) -> bool:
        return self.running

    async def submit(self, message, send_at, job_id=None):
        if not self.running:
            raise DispatchUnavailableError("Email dispatcher not initialized")
        if message.to_email in self.fail_submit_for:
            raise RuntimeError(f"provider rejected {message.to_email}")
        self._counter += 1
        provider_id = f"email_fake{self._counter}"
        self.submitted.append((message, send_at, job_id, provider_id))
        self.calls.append(("submit", provider_id))
        return provider_id

    async def cancel(self, provider_id):
        self.calls.append(("cancel", provider_id))
        if provider_id in self.fail_cancel_for:
            raise RuntimeError(f"provider timeout cancelling {provider_id}")
        if provider_id in self.gone:
            return False
        self.cancelled.append(provider_id)
        return True

    async def update_time(self, provider_id, new_send_at):
        self.moved.append((provider_id, new_send_at))

    async def send_now(self, message):
        if message.to_email in self.fail_submit_for:
            raise RuntimeError(f"provider rejected {message.to_email}")
        self.sent_now.append(message)
        return f"sg_{len(self.sent_now)}"


@pytest.fixture
def fake_store():
    store = FakeJobStore()
    with patch.multiple(
        "mentorhub.notifications.job_store",
        is_available=store.is_available,
        require_available=store.require_available,
        get_job=store.get_job,
        get_session_jobs=store.get_session_jobs,
        get_batch_jobs=store.get_batch_jobs,
        get_failed_jobs=store.get_failed_jobs,
        find_active_job=store.find_active_job,
        upsert_job=store.upsert_job,
        update_job_status=store.update_job_status,
        delete_session_jobs=store.delete_session_jobs,
        delete_batch_jobs=store.delete_batch_jobs,
    ):
        yield store


@pytest.fixture
def fake_dispatcher():
    dispatcher = FakeDispatcher()
    with patch.multiple(
        "mentorhub.notifications.dispatch",
        is_running=dispatcher.is_running,
        submit=dispatcher.submit,
        cancel=dispatcher.cancel,
        update_time=dispatcher.update_time,
        send_now=dispatcher.send_now,
    ):
        yield dispatcher


def make_session(
    hours_from_now: float = 72,
    students: int = 2,
    mentors: int = 1,
    duration: int | None = 60,
    **overrides,
) -> Session:
    """Build a session starting ``hours_from_now`` hours from now."""
    team = Team(
        id="team-1",
        team_name="Team Rocket",
        members=[
            Contact(id=f"student-{i}", full_name=f"Student {i}", email=f"student{i}@example.com")
            for i in range(1, students + 1)
        ],
    )
    mentor_contacts = [
        Contact(id=f"mentor-{i}", full_name=f"Mentor {i}", email=f"mentor{i}@example.com")
        for i in range(1, mentors + 1)
    ]
    fields = dict(
        id="session-1",
        scheduled_start=datetime.now(timezone.utc) + timedelta(hours=hours_from_now),
        duration=duration,
        session_type="Mentor Session",
        mentors=mentor_contacts,
        team=team,
    )
    fields.update(overrides)
    return Session(**fields)


@pytest.fixture
def session_factory():
    return make_session
