"""Alembic migrations for the email_jobs schema (run from the project root)."""

from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

load_dotenv(".env")
load_dotenv(".env.local", override=True)

from mentorhub.database import get_sync_database_url  # noqa: E402
from mentorhub.tables import metadata  # noqa: E402

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure(**options) -> None:
    context.configure(target_metadata=metadata, compare_type=True, **options)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    # Emit SQL to stdout instead of connecting
    _configure(
        url=get_sync_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
else:
    engine = create_engine(get_sync_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
