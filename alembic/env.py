"""
Alembic environment configuration for the QuickCourt OTP service.

What this file does:
  1. Takes the database URL from app.config.Settings (.env), so the
     Postgres credentials never appear in alembic.ini.
  2. Imports app.models, which registers users and otp_verifications on
     Base.metadata. A new model only needs adding to app/models/__init__.py.
  3. Turns on compare_type and compare_server_default, so autogenerate
     notices a changed column length (phone_number is String(16)) or a
     changed server default (is_verified, attempts, created_at).

Running migrations:
  Generate:  alembic revision --autogenerate -m "describe_change"
  Apply:     alembic upgrade head
  Rollback:  alembic downgrade -1
  History:   alembic history --verbose
"""

import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# ── Path setup ────────────────────────────────────────────────────────────────
# Project root on sys.path so `import app` works wherever alembic is started.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# ── Settings and models ───────────────────────────────────────────────────────
# Settings must load before config is used for the URL.
from app.config import settings

# Without the app.models import, autogenerate sees an empty metadata and
# would propose dropping both OTP tables.
from app.database import Base
import app.models  # noqa: F401

# ── Alembic config object ─────────────────────────────────────────────────────
config = context.config

# alembic.ini keeps a placeholder URL; the real one comes from .env.
config.set_main_option("sqlalchemy.url", settings.database_url)

# Logger setup from the [loggers] sections of alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


# ── Offline mode ──────────────────────────────────────────────────────────────
def run_migrations_offline() -> None:
    """
    Render the migration SQL without a database connection, e.g. to hand the
    otp_purpose enum and table DDL to a DBA for review.

    Usage: alembic upgrade head --sql
    """
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


# ── Online mode ───────────────────────────────────────────────────────────────
def run_migrations_online() -> None:
    """
    Connect and apply pending revisions.

    Usage: alembic upgrade head

    NullPool: the migration run opens one connection and closes it when done,
    separate from the API's pooled engine in app.database.
    """
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


# ── Entry point ───────────────────────────────────────────────────────────────
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
