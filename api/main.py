"""FastAPI application for the EPH billing engine.

Environment:
    ALLOWED_ORIGINS  comma-separated CORS origins, "*" for any origin
    LOG_LEVEL        root log level (default INFO)
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from eph_billing import __version__
from eph_billing.logging_config import configure_logging

DEFAULT_ORIGINS = [
    "http://localhost:8081",  # Expo web dev server
    "http://localhost:3000",
    "http://127.0.0.1:8081",
]


def allowed_origins(raw: str | None) -> list[str]:
    """Parse ALLOWED_ORIGINS; empty means the local dev origins."""
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    if "*" in origins:
        return ["*"]
    return origins or list(DEFAULT_ORIGINS)


def create_app() -> FastAPI:
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    application = FastAPI(
        title="EPH Billing API",
        description="Resolves timesheet overrides and computes billable Equipment Plant Hours.",
        version=__version__,
    )

    origins = allowed_origins(os.environ.get("ALLOWED_ORIGINS"))
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],  # browsers reject credentials with a wildcard
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=3600,
    )
    application.include_router(router)

    @application.get("/")
    async def root():
        return {
            "name": "EPH Billing API",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return application


app = create_app()
