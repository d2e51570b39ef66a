"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP

from .enums import (
    email_job_status_enum,
    email_job_type_enum,
    recipient_role_enum,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. EMAIL_JOBS
# =====================================================
# One row per scheduled email. Session records live in another service,
# so session_id is a plain reference without a foreign key.
email_jobs = Table(
    "email_jobs",
    metadata,
    Column("job_id", Text, primary_key=True),
    Column("batch_id", Text, nullable=False),
    Column("session_id", Text, nullable=False),
    Column("job_type", email_job_type_enum, nullable=False),
    Column("recipient_email", Text, nullable=False),
    Column("recipient_name", Text),
    Column("recipient_role", recipient_role_enum, nullable=False),
    Column("scheduled_for", TIMESTAMP(timezone=True), nullable=False),
    Column("status", email_job_status_enum, nullable=False),
    Column("provider_message_id", Text),
    Column("last_error", Text),
    Column("attempts", Integer, nullable=False, server_default="0"),
    Column("subject", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column(
        "updated_at",
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    ),
    Index("idx_email_jobs_session_id", "session_id"),
    Index("idx_email_jobs_batch_id", "batch_id"),
    Index(
        "idx_email_jobs_identity",
        "session_id",
        "job_type",
        "recipient_email",
    ),
)
