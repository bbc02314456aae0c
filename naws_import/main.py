"""
naws_import/main.py

FastAPI application factory for the meeting import API.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate the server connection variables at startup.

    Raises RuntimeError listing every missing variable so the operator can
    fix all of them in one restart cycle.
    """

    from naws_import.config import load_env_files

    load_env_files()

    errors: list[str] = []
    for name in ("BMLT_SERVER_URL", "BMLT_USERNAME", "BMLT_PASSWORD"):
        if not os.getenv(name, "").strip():
            errors.append(f"{name} is not set. Empty strings are not permitted.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing environment variables:\n"
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


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _validate_env()
    logging.getLogger(__name__).info("Meeting import API started")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _configure_logging()

    application = FastAPI(
        title="NAWS Meeting Import API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from naws_import.api.routers import meeting_import_router

    application.include_router(meeting_import_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
