"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from api.schemas.common import ErrorResponse
from database.engine import init_db, close_db
from api.routes import health
from api.routes.v1 import (
    applications,
    auth,
    candidate,
    companies,
    jobs,
    members,
    question_banks,
)

# Import middleware components
from core.middleware import (
    AccessPipeline,
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    if settings.create_tables_on_startup:
        await init_db()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


def create_app() -> FastAPI:
    """
    Build the application.

    The access pipeline is built once here from settings and shared by
    every request through ``app.state``.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant hiring platform: companies, jobs and applications",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
        responses={
            401: {"model": ErrorResponse, "description": "Missing, invalid or expired credentials"},
            403: {"model": ErrorResponse, "description": "No active membership or role not allowed"},
        },
    )
    app.state.access_pipeline = AccessPipeline.from_settings(settings)

    # Setup error handlers (before middleware)
    setup_error_handlers(app)

    # Add middleware (order matters - they execute in reverse order)
    # 1. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 2. Structured logging middleware (logs all requests/responses)
    app.add_middleware(
        StructuredLoggingMiddleware,
        log_request_body=settings.log_request_body,
        max_body_size=settings.log_max_body_size,
    )

    # 3. Error handling middleware (outermost - catches all errors)
    app.add_middleware(
        ErrorHandlingMiddleware,
        debug=settings.debug,
    )

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # API v1 routes
    for router in (
        auth.router,
        companies.router,
        members.router,
        members.memberships_router,
        question_banks.router,
        jobs.router,
        jobs.public_router,
        applications.router,
        candidate.router,
    ):
        app.include_router(router, prefix=settings.api_v1_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
