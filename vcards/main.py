from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Callable

from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import create_engine
from sqlalchemy.engine.url import make_url

from vcards.core.config import get_settings
from vcards.core.logging_config import get_logger, configure_logging
from vcards.db.base import Base
from vcards.db.session import engine
from vcards.routers import audit, auth, cards, transactions, users

settings = get_settings()
logger = get_logger(__name__)
app = FastAPI(title=settings.app_name, version=settings.app_version)


@app.middleware("http")
async def log_requests(request: Request, call_next: Callable):
    start_time = time.perf_counter()
    request_info = {"method": request.method, "path": request.url.path}
    logger.info(
        "HTTP request started",
        extra={
            "details": {
                "event": "request_start",
                "extra": {
                    **request_info,
                    "user_agent": request.headers.get("user-agent"),
                    "client_ip": request.client.host if request.client else None,
                },
            }
        },
    )

    try:
        response = await call_next(request)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Unhandled exception in request",
            extra={
                "details": {
                    "event": "request_error",
                    "status_code": 500,
                    "duration_ms": int((time.perf_counter() - start_time) * 1000),
                    "extra": {**request_info, "error": str(exc), "error_type": type(exc).__name__},
                }
            },
        )
        raise

    log = logger.error if response.status_code >= 500 else logger.warning if response.status_code >= 400 else logger.info
    log(
        "HTTP request completed",
        extra={
            "details": {
                "event": "request_completed",
                "status_code": response.status_code,
                "duration_ms": int((time.perf_counter() - start_time) * 1000),
                "extra": request_info,
            }
        },
    )
    return response


def get_alembic_config() -> Config:
    root_path = Path(__file__).resolve().parent.parent
    alembic_cfg = Config(str(root_path / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_path / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))
    redacted_url = make_url(settings.database_url).render_as_string(hide_password=True)
    logger.debug(
        "Alembic configuration prepared",
        extra={"details": {"event": "alembic_config", "extra": {"database_url": redacted_url}}},
    )
    return alembic_cfg


def sanitize_identifier(identifier: str) -> str:
    return identifier.replace('"', '""')


def create_database_if_not_exists() -> None:
    url = make_url(settings.database_url)
    if not url.get_backend_name().startswith("postgresql"):
        return
    database_name = url.database
    if not database_name:
        logger.warning(
            "Database name missing in URL",
            extra={"details": {"event": "database_setup", "extra": {"url": url.render_as_string(hide_password=True)}}},
        )
        return
    admin_url = url.set(database="postgres", drivername=url.drivername.replace("+asyncpg", ""))
    engine_admin = create_engine(admin_url)
    try:
        with engine_admin.connect() as connection:
            exists = connection.execute(
                text("SELECT 1 FROM pg_database WHERE datname=:name"), {"name": database_name}
            ).scalar()
            if exists:
                logger.debug(
                    "Database already exists",
                    extra={"details": {"event": "database_setup", "extra": {"database": database_name}}},
                )
                return
            connection.execution_options(isolation_level="AUTOCOMMIT").execute(
                text(f"CREATE DATABASE \"{sanitize_identifier(database_name)}\"")
            )
            logger.info(
                "Database created",
                extra={"details": {"event": "database_setup", "extra": {"database": database_name}}},
            )
    finally:
        engine_admin.dispose()


async def reset_database() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.warning("Database reset executed", extra={"details": {"event": "database_reset"}})


async def apply_migrations() -> None:
    alembic_cfg = get_alembic_config()
    await asyncio.to_thread(command.upgrade, alembic_cfg, "head")
    logger.info("Migrations applied", extra={"details": {"event": "database_migrate"}})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ANN201
    errors = [
        {"loc": [str(part) for part in error["loc"]], "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.warning(
        "Request validation failed",
        extra={
            "details": {
                "event": "validation_failed",
                "extra": {"method": request.method, "path": request.url.path, "fields": [e["loc"] for e in errors]},
            }
        },
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def json_exception_handler(request: Request, exc: Exception):  # noqa: ANN201
    logger.error(
        "Application error",
        extra={
            "details": {
                "event": "exception",
                "extra": {
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            }
        },
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
async def startup_event() -> None:
    logger.info(
        "Startup sequence initiated",
        extra={"details": {"event": "startup", "extra": {"environment": settings.environment, "stage": "init"}}},
    )
    create_database_if_not_exists()
    if settings.reset_db_on_start:
        await reset_database()
    if settings.migrate_on_start:
        await apply_migrations()
    # Uvicorn may have re-applied its own logging config by now
    configure_logging()
    logger.info(
        "Startup completed",
        extra={"details": {"event": "startup", "extra": {"environment": settings.environment}}},
    )


@app.get("/health", tags=["System"])
async def healthcheck():
    logger.debug("Health check", extra={"details": {"event": "health"}})
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(cards.router)
app.include_router(transactions.router)
app.include_router(audit.router)
