"""FastAPI application entrypoint for Campus Points."""

import logging

from fastapi import FastAPI

from .api.v1.router import api_router
from .core.config import get_settings
from .core.database import Base, engine
from .jobs import register_scheduler


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Campus Points API", version="0.1.0")
    app.include_router(api_router, prefix="/api/v1")

    @app.on_event("startup")
    def create_tables() -> None:
        Base.metadata.create_all(bind=engine)

    register_scheduler(app)
    return app


app = create_app()
