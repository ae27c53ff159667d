"""
FastAPI application entrypoint for the share login gateway.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import router
from app.core.config import get_settings
from app.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Share Login Gateway",
        version="0.1.0",
        description="Allow-listed share token login in front of a proxied chat site.",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.include_router(router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
