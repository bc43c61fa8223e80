"""
app/main.py

FastAPI entrypoint for the migration validation service.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

logger = logging.getLogger(__name__)

_DATABASE_URL_VARIABLES = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
_POSITIVE_INT_VARIABLES = ("LARGE_BATCH_THRESHOLD", "ORG_QUERY_CHUNK_SIZE", "ORG_HTTP_MAX_RETRIES")


def _validate_env() -> None:
    """
    Fail fast on configuration the service cannot run with.

    Every problem is collected so one restart fixes all of them.
    """

    from db.config import load_env_files

    load_env_files()
    problems: list[str] = []

    if not any(os.getenv(name, "").strip() for name in _DATABASE_URL_VARIABLES):
        problems.append(f"No database URL configured. Set one of {', '.join(_DATABASE_URL_VARIABLES)}.")

    for name in _POSITIVE_INT_VARIABLES:
        raw_value = os.getenv(name)
        if raw_value is not None and not raw_value.strip().isdigit():
            problems.append(f"{name}='{raw_value}' is not a non-negative integer.")

    if problems:
        raise RuntimeError("Startup validation failed:\n" + "\n".join(f"  - {problem}" for problem in problems))


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_database() -> None:
    """
    Check connectivity and that every ORM table exists. Does not migrate.
    """

    from sqlalchemy import inspect, text

    import db.models  # noqa: F401 registers ORM tables on Base.metadata
    from db.base import Base
    from db.session import get_engine

    engine = get_engine()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc
    logger.info("Database connectivity confirmed")

    missing = sorted(set(Base.metadata.tables) - set(inspect(engine).get_table_names()))
    if missing:
        logger.critical("Schema mismatch missing_tables=%s; run 'alembic upgrade head'", ",".join(missing))
        raise RuntimeError(f"Schema mismatch: missing tables {', '.join(missing)}. Run migrations and restart.")
    logger.info("Database schema validated")


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _verify_database()

    from migration_templates.registry import get_template_registry

    logger.info("Migration templates ready count=%d", len(get_template_registry()))
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Migration Validation API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import migration_validation_router, templates_router

    application.include_router(migration_validation_router)
    application.include_router(templates_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
