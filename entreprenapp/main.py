"""
FastAPI Application Entry Point.

This module initializes the application with:
- MongoDB connection via Motor, retried with exponential backoff
- Socket.IO gateway sharing the process-wide presence registry
- CORS, GZip, logging, timeout and rate-limit middleware
- Exception handlers producing the ``{success, message}`` envelope
- Lifespan events (startup/shutdown)
- API routers under ``/api``
"""
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator

import socketio
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from entreprenapp.api.endpoints import health
from entreprenapp.api.router import api_router
from entreprenapp.config import settings, validate_settings
from entreprenapp.core.exceptions import APIException
from entreprenapp.core.middleware import (
    RateLimitMiddleware,
    RateLimitRule,
    RequestLoggingMiddleware,
    RequestTimeoutMiddleware,
)
from entreprenapp.db.mongodb import mongodb
from entreprenapp.realtime.gateway import RealtimeGateway, create_socketio_server
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.publisher import RealtimePublisher
from entreprenapp.schemas.base import ErrorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Error envelope documented on every API route
ERROR_RESPONSES = {
    code: {"model": ErrorResponse}
    for code in (
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_401_UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_429_TOO_MANY_REQUESTS,
    )
}


# =============================================================================
# Lifespan Events (Startup/Shutdown)
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup:
        - Connect to MongoDB (retried, fatal once retries are exhausted)
        - Create indexes

    Shutdown:
        - Close MongoDB connection
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    await mongodb.connect()

    yield

    logger.info("Shutting down application...")
    await mongodb.close()


# =============================================================================
# Exception Handlers
# =============================================================================
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle custom API exceptions."""
    content = {"success": False, "message": exc.message}
    if exc.errors is not None:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors as 400 with per-field messages."""
    errors = []
    for error in exc.errors():
        location = [str(loc) for loc in error["loc"] if loc not in ("body", "query", "path")]
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"path": ".".join(location), "message": message})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation error", "errors": errors},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes and framework-level HTTP errors."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route {request.url.path} non trouvée"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(
        f"Unhandled exception at {datetime.utcnow().isoformat()} | "
        f"Method: {request.method} | Path: {request.url.path} | Error: {exc}"
    )

    message = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": message},
    )


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url=settings.DOCS_URL if not settings.is_production else None,
        redoc_url=None,
        openapi_url=settings.OPENAPI_URL if not settings.is_production else None,
        lifespan=lifespan,
    )

    # Real-time layer: one registry per process, shared by the gateway and the publisher
    app.state.presence = PresenceRegistry()
    app.state.sio = create_socketio_server(settings.cors_origins_list)
    app.state.publisher = RealtimePublisher(app.state.sio, app.state.presence)
    RealtimeGateway(app.state.sio, app.state.presence, app.state.publisher).register()

    # =========================================================================
    # Middleware (last added runs first)
    # =========================================================================
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)

    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            rules=[
                RateLimitRule(
                    name="auth",
                    prefix=f"{settings.API_PREFIX}/auth",
                    limit=settings.rate_limit_auth_requests,
                    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
                ),
                RateLimitRule(
                    name="api",
                    prefix=settings.API_PREFIX,
                    limit=settings.rate_limit_api_requests,
                    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
                ),
            ],
        )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=settings.cors_headers_list,
    )

    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # =========================================================================
    # Routers
    # =========================================================================
    app.include_router(health.router)
    app.include_router(api_router, prefix=settings.API_PREFIX, responses=ERROR_RESPONSES)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - API information."""
        return {
            "success": True,
            "message": f"Welcome to {settings.APP_NAME}",
            "data": {
                "version": settings.APP_VERSION,
                "environment": settings.ENVIRONMENT,
                "docs": settings.DOCS_URL,
                "health": "/health",
            },
        }

    return app


app = create_app()

# Served by uvicorn: Socket.IO handles /socket.io, everything else goes to FastAPI
asgi_app = socketio.ASGIApp(app.state.sio, other_asgi_app=app, socketio_path=settings.SOCKETIO_PATH)


# =============================================================================
# Server
# =============================================================================
def run() -> None:
    """Validate configuration, then serve; exits 1 on fatal configuration or startup failure."""
    report = validate_settings(settings)
    for warning in report.warnings:
        logger.warning(f"Configuration: {warning}")
    if not report.ok:
        for error in report.errors:
            logger.critical(f"Configuration: {error}")
        sys.exit(1)

    server = uvicorn.Server(uvicorn.Config(
        asgi_app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        lifespan="on",
    ))
    server.run()
    if not server.started:
        logger.critical("Server failed to start")
        sys.exit(1)


if __name__ == "__main__":
    run()
