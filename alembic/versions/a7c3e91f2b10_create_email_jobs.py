"""create email_jobs

Revision ID: a7c3e91f2b10
Revises:
Create Date: 2026-10-19 09:12:31.402117

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "a7c3e91f2b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


email_job_type = postgresql.ENUM(
    "prep48h",
    "prep24h",
    "feedbackImmediate",
    "sessionUpdate",
    name="email_job_type",
    create_type=False,
)
email_job_status = postgresql.ENUM(
    "pending",
    "scheduled",
    "processing",
    "completed",
    "failed",
    "cancelled",
    name="email_job_status",
    create_type=False,
)
recipient_role = postgresql.ENUM(
    "student",
    "mentor",
    name="recipient_role",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    email_job_type.create(bind, checkfirst=True)
    email_job_status.create(bind, checkfirst=True)
    recipient_role.create(bind, checkfirst=True)

    op.create_table(
        "email_jobs",
        sa.Column("job_id", sa.Text(), nullable=False),
        sa.Column("batch_id", sa.Text(), nullable=False),
        sa.Column("session_id", sa.Text(), nullable=False),
        sa.Column("job_type", email_job_type, nullable=False),
        sa.Column("recipient_email", sa.Text(), nullable=False),
        sa.Column("recipient_name", sa.Text(), nullable=True),
        sa.Column("recipient_role", recipient_role, nullable=False),
        sa.Column("scheduled_for", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("status", email_job_status, nullable=False),
        sa.Column("provider_message_id", sa.Text(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("job_id", name=op.f("pk_email_jobs")),
    )
    op.create_index("idx_email_jobs_session_id", "email_jobs", ["session_id"], unique=False)
    op.create_index("idx_email_jobs_batch_id", "email_jobs", ["batch_id"], unique=False)
    op.create_index(
        "idx_email_jobs_identity",
        "email_jobs",
        ["session_id", "job_type", "recipient_email"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_email_jobs_identity", table_name="email_jobs")
    op.drop_index("idx_email_jobs_batch_id", table_name="email_jobs")
    op.drop_index("idx_email_jobs_session_id", table_name="email_jobs")
    op.drop_table("email_jobs")

    bind = op.get_bind()
    recipient_role.drop(bind, checkfirst=True)
    email_job_status.drop(bind, checkfirst=True)
    email_job_type.drop(bind, checkfirst=True)
