"""Main application entrypoint for the White Label upload service."""

from fastapi import FastAPI

from whitelabel.api.middleware import HTTPErrorLoggingMiddleware
from whitelabel.api.v1 import routes_health
from whitelabel.api.v1.routes_upload import router as upload_router
from whitelabel.core.config import settings
from whitelabel.core.logging import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )
    app.add_middleware(HTTPErrorLoggingMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)

    return app


# Export app instance for ASGI servers
app = create_app()
