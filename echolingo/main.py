"""ASGI entry point: app factory, lifespan tasks and the `echolingo-api` runner."""
from __future__ import annotations

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from echolingo.api import deps
from echolingo.api.v1 import api_router
from echolingo.config import settings
from echolingo.services.auth import SessionRegistry
from echolingo.services.store import JsonStore
from echolingo.utils.exceptions import StoreError


tags_metadata: List[dict[str, str]] = [
    {"name": "auth", "description": "Sign in and out with bearer sessions."},
    {"name": "user data", "description": "Read, replace, export and import the learner record."},
    {"name": "admin", "description": "Manage accounts and database backups."},
    {"name": "news", "description": "Fetch headlines to mine for study material."},
]


def configure_logging(level: str | None = None) -> None:
    """Send loguru output to stderr at ``LOG_LEVEL``."""

    logger.remove()
    logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper(), backtrace=False, diagnose=False)


async def run_maintenance(
    store: JsonStore, sessions: SessionRegistry, interval_seconds: float
) -> None:
    """Write the daily backup and prune expired sessions every interval."""

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await store.ensure_daily_backup()
        except StoreError as exc:
            logger.error("Scheduled backup failed", error=exc.message)
        sessions.prune()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    store = app.dependency_overrides.get(deps.get_store, deps.get_store)()
    sessions = app.dependency_overrides.get(deps.get_sessions, deps.get_sessions)()
    await store.load()
    maintenance = asyncio.create_task(
        run_maintenance(store, sessions, settings.MAINTENANCE_INTERVAL_SECONDS),
        name="echolingo-maintenance",
    )
    logger.info("EchoLingo Lab API ready", data_dir=str(store.data_dir))
    try:
        yield
    finally:
        maintenance.cancel()
        try:
            await maintenance
        except asyncio.CancelledError:
            pass
        await store.persist()
        await deps.close_clients()


def create_app() -> FastAPI:
    """Assemble the API: routers, CORS, error handlers and the lifespan."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Spaced-repetition trainer for English vocabulary and Japanese sentences.",
        version="0.1.0",
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors(), "message": "Validation failed"},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error("Unhandled error", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "internal error"},
        )

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn."""

    import uvicorn

    configure_logging()
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)


if __name__ == "__main__":
    run()
