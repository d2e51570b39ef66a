"""
Email job records and their identity.

A job is one scheduled email send for a (session, job type, recipient)
triple. ``JobKey`` is that triple; the older ``"{type}_{email}"`` string
form is still produced and parsed for sessions that store their job map
inline.
"""

from dataclasses import dataclass, field
from datetime import datetime

from mentorhub.enums import (
    ACTIVE_JOB_STATUSES,
    BatchStatus,
    EmailJobStatus,
    EmailJobType,
    RecipientRole,
)


@dataclass(frozen=True)
class JobKey:
    session_id: str
    job_type: EmailJobType
    recipient_email: str

    @property
    def legacy_key(self) -> str:
        """Key used in the inline scheduled-email map, e.g. "prep24h_ada@example.com"."""
        return f"{self.job_type.value}_{self.recipient_email}"

    @classmethod
    def from_legacy_key(cls, session_id: str, key: str) -> "JobKey":
        """
        Parse a ``"{type}_{email}"`` key.

        Job type values never contain an underscore, so the first one splits
        type from email even when the address itself has underscores.

        Raises:
            ValueError: If the key has no separator or an unknown job type
        """
        type_value, sep, email = key.partition("_")
        if not sep or not email:
            raise ValueError(f"Malformed scheduled email key: {key!r}")
        return cls(session_id, EmailJobType(type_value), email)


@dataclass
class EmailJob:
    """One tracked email send."""

    job_id: str
    batch_id: str
    session_id: str
    job_type: EmailJobType
    recipient_email: str
    recipient_name: str | None
    recipient_role: RecipientRole
    scheduled_for: datetime
    status: EmailJobStatus
    subject: str = ""
    body: str = ""
    provider_message_id: str | None = None
    last_error: str | None = None
    attempts: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> JobKey:
        return JobKey(self.session_id, self.job_type, self.recipient_email)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_JOB_STATUSES

    @classmethod
    def from_row(cls, row) -> "EmailJob":
        """Build from a database row mapping."""
        return cls(
            job_id=row["job_id"],
            batch_id=row["batch_id"],
            session_id=row["session_id"],
            job_type=EmailJobType(row["job_type"]),
            recipient_email=row["recipient_email"],
            recipient_name=row["recipient_name"],
            recipient_role=RecipientRole(row["recipient_role"]),
            scheduled_for=row["scheduled_for"],
            status=EmailJobStatus(row["status"]),
            subject=row["subject"],
            body=row["body"],
            provider_message_id=row["provider_message_id"],
            last_error=row["last_error"],
            attempts=row["attempts"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        """JSON-friendly view for the API (body omitted)."""
        return {
            "job_id": self.job_id,
            "batch_id": self.batch_id,
            "session_id": self.session_id,
            "job_type": self.job_type.value,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "recipient_role": self.recipient_role.value,
            "scheduled_for": self.scheduled_for.isoformat(),
            "status": self.status.value,
            "subject": self.subject,
            "provider_message_id": self.provider_message_id,
            "last_error": self.last_error,
            "attempts": self.attempts,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class JobProgress:
    """Derived status of a set of jobs (one session or one batch)."""

    status: BatchStatus
    total: int
    counts: dict[str, int]
    session_id: str | None = None
    batch_id: str | None = None
    jobs: list[EmailJob] = field(default_factory=list)

    def to_dict(self, include_jobs: bool = False) -> dict:
        result = {
            "session_id": self.session_id,
            "batch_id": self.batch_id,
            "status": self.status.value,
            "total": self.total,
            "counts": dict(self.counts),
        }
        if include_jobs:
            result["jobs"] = [job.to_dict() for job in self.jobs]
        return result
