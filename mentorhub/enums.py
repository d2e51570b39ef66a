"""Enum definitions shared by the domain code and the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class SessionStatus(str, enum.Enum):
    scheduled = "Scheduled"
    completed = "Completed"
    cancelled = "Cancelled"
    no_show = "No-Show"


class EmailJobType(str, enum.Enum):
    prep_48h = "prep48h"
    prep_24h = "prep24h"
    feedback_immediate = "feedbackImmediate"
    session_update = "sessionUpdate"


class EmailJobStatus(str, enum.Enum):
    pending = "pending"
    scheduled = "scheduled"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class RecipientRole(str, enum.Enum):
    student = "student"
    mentor = "mentor"


class BatchStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"
    partial_failure = "partial_failure"


ACTIVE_JOB_STATUSES = frozenset(
    {EmailJobStatus.pending, EmailJobStatus.scheduled, EmailJobStatus.processing}
)


# =====================================================
# SQLAlchemy Enum Types
# =====================================================


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


email_job_type_enum = SQLEnum(
    EmailJobType,
    name="email_job_type",
    create_type=False,
    native_enum=True,
    values_callable=_enum_values,
)
email_job_status_enum = SQLEnum(
    EmailJobStatus,
    name="email_job_status",
    create_type=False,
    native_enum=True,
    values_callable=_enum_values,
)
recipient_role_enum = SQLEnum(
    RecipientRole,
    name="recipient_role",
    create_type=False,
    native_enum=True,
    values_callable=_enum_values,
)
