"""
FastAPI application entry point for fanslink.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from fanslink.config import get_settings
from fanslink.routes import page_router, router

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s %(levelname)s %(asctime)s %(message)s",
)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="fanslink", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(page_router)
    return app


app = create_app()
