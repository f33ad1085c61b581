"""Alembic environment for the clinic metrics schema."""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

import db.models  # noqa: F401 registers every table on Base.metadata
from db.base import Base
from db.config import ensure_env_loaded, require_postgres, resolve_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def migration_url() -> str:
    """
    Target database for this run.

    ``-x db_url=...`` beats ``ALEMBIC_DATABASE_URL``, which beats
    ``sqlalchemy.url`` in alembic.ini; the application URL is the fallback.
    """
    ensure_env_loaded()
    return require_postgres(
        resolve_database_url(
            context.get_x_argument(as_dictionary=True).get("db_url"),
            os.getenv("ALEMBIC_DATABASE_URL"),
            config.get_main_option("sqlalchemy.url"),
        )
    )


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=migration_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = migration_url()
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
