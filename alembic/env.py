from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401  imports trigger Base.metadata registration
    ConformanceRecord,
    ItpItem,
    ItpTemplate,
    Lot,
    Project,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _explicit_url() -> str | None:
    """
    A migration target named for this run only: `-x db_url=...` first,
    then ALEMBIC_DATABASE_URL, then sqlalchemy.url from alembic.ini.
    """

    x_args = context.get_x_argument(as_dictionary=True)
    candidates = (
        x_args.get("db_url"),
        os.getenv("ALEMBIC_DATABASE_URL"),
        config.get_main_option("sqlalchemy.url"),
    )
    for candidate in candidates:
        if candidate and candidate.strip():
            return normalize_postgres_url(candidate.strip())
    return None


def _resolve_database_url() -> str:
    """
    Resolve the DB URL for migrations, falling back to the same
    DATABASE_URL / CLOUD_DATABASE_URL / LOCAL_DATABASE_URL resolution the
    API uses.
    """

    load_env_files()
    url = _explicit_url() or resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Alembic is configured for PostgreSQL URLs only.")
    return url


def _configure_kwargs() -> dict[str, object]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=_resolve_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _resolve_database_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs())

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
