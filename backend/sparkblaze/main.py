"""Application entry point."""

from fastapi import FastAPI

from .api import api_router
from .api.errors import register_exception_handlers
from .core.config import Settings, settings as default_settings
from .core.logging import RequestIDMiddleware, init_logging
from .ledger import build_ledger
from .store import DocumentStore


def create_app(
    settings: Settings | None = None, store: DocumentStore | None = None
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings
    init_logging(settings.LOG_LEVEL)

    app = FastAPI(title="SparkBlaze Recognition Ledger")
    app.state.ledger, app.state.directory, app.state.notifications = build_ledger(
        settings, store
    )
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
