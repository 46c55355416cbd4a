"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.api.routes import router as api_router
from app.core.exceptions import StoreUnavailableError
from app.core.logging import RequestLoggingMiddleware, setup_logging
from app.core.result import ErrorKind
from app.db.database import init_db

setup_logging(settings.log_level, json_output=settings.log_json)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if settings.auto_create_tables:
        await init_db()

    yield

    # Shutdown
    logger.info("Shutting down...")


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    """Store failures raised outside a service (e.g. while resolving the caller)."""
    logger.error(f"Store unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": exc.user_message},
        headers={"X-Error-Kind": ErrorKind.STORE_UNAVAILABLE.value},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Anonymous messaging API: verified accounts receive messages from strangers.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Error-Kind"],
    )

    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )
