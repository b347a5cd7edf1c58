from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any database connection is initialised. Raises RuntimeError
    listing every missing or invalid variable so the operator can fix all
    problems in one restart cycle.

    Rules:
    - A database URL must be configured (DATABASE_URL, CLOUD_DATABASE_URL
      or LOCAL_DATABASE_URL) and must point at PostgreSQL.
    - Numeric auto-save settings, when set, must parse and be non-negative.
    """

    from db.config import load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    try:
        database_url = resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))
    else:
        if not database_url.startswith("postgresql"):
            errors.append("The configured database URL must use PostgreSQL.")

    # --- Auto-save ------------------------------------------------------
    for name in ("AUTOSAVE_DEBOUNCE_SECONDS", "CONFORMANCE_UPSERT_BATCH_SIZE"):
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            continue
        try:
            value = float(raw)
        except ValueError:
            errors.append(f"{name}='{raw}' is not a number.")
            continue
        if value < 0:
            errors.append(f"{name}='{raw}' must not be negative.")

    if errors:
        raise RuntimeError(
            "Startup validation failed. Missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Compare Base.metadata table names against the live DB schema.

    Every table registered on Base.metadata must exist in the database.
    If any are missing, log a critical error and abort startup so that
    the operator is forced to run migrations before serving traffic.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="SiteProof QA API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import conformance_router

    application.include_router(conformance_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
