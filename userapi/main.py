"""
Users API — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn imports `userapi.main:app`; `userapi` console script calls run().

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                     FastAPI App                      │
    │                                                      │
    │  Middleware:   Request ID → Logging                  │
    │                                                      │
    │  Routes:       POST /createUser   GET /users         │
    │                PUT /updateUser/{id}                  │
    │                DELETE /deleteUser/{id}               │
    │                GET /  GET /api-docs  GET /health     │
    │                                                      │
    │  Exception Handlers:                                 │
    │    Validation→400  NotFound→404  Conflict→409        │
    │    Storage→500     anything else→500                 │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, build the MongoDB client, ping it and try to
              create the unique email index. Neither failure is fatal: the
              server still answers, /health reports 503, and the index is
              retried by /health and by every write until it exists.
    Shutdown: close the client (only if the lifespan created it).
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from userapi import __version__
from userapi.config import Settings, settings as default_settings
from userapi.database import EmailIndex, create_client, get_users_collection, ping
from userapi.exceptions import (
    ConflictError,
    NotFoundError,
    StorageError,
    UserAPIError,
    ValidationError,
)
from userapi.middleware.logging import RequestLoggingMiddleware
from userapi.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from userapi.routes import docs, health, home, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure root logging once at startup.

    Format: 2024-01-15T12:00:00 [INFO] userapi.access: GET /users 200 3.1ms ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # The driver logs every heartbeat at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

def build_lifespan(config: Settings, client: Optional[AsyncMongoClient] = None):
    """
    Returns a lifespan bound to `config`.

    If `client` is given the caller owns it and it is not closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # ── Startup ───────────────────────────────────────────────────────
        setup_logging(config.log_level)
        logger.info("Users API %s starting up...", __version__)

        owns_client = client is None
        mongo_client = client if client is not None else create_client(config)
        collection = get_users_collection(mongo_client, config)
        app.state.mongo_client = mongo_client
        app.state.users_collection = collection
        app.state.email_index = EmailIndex(collection)

        try:
            await ping(mongo_client)
            logger.info("Connection has been established successfully (database=%s)",
                        config.database_name)
        except PyMongoError as e:
            logger.error("Unable to connect to the database: %s", str(e))

        try:
            await app.state.email_index.ensure()
        except StorageError:
            # Already logged; /health and the next write try again
            pass

        logger.info("Server is running on port %d", config.port)
        logger.info("API docs: http://%s:%d/api-docs", config.host, config.port)

        yield  # Application runs here

        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("Users API shutting down...")
        if owns_client:
            await mongo_client.close()
        logger.info("Shutdown complete.")

    return lifespan


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and error bodies.

    Handler hierarchy:
        ValidationError         → 400 Bad Request
        RequestValidationError  → 400 Bad Request (body is not a JSON object)
        NotFoundError           → 404 Not Found
        ConflictError           → 409 Conflict
        StorageError            → 500 Internal Server Error (opaque)
        UserAPIError (base)     → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error

    Server-side details (driver errors, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        logger.warning("[%s] Malformed request: %s", request_id_var.get(""), exc.errors())
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Request body must be a JSON object."),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.warning("[%s] Conflict: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, {"field": exc.field}),
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        rid = request_id_var.get("")
        logger.error("[%s] Storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(UserAPIError)
    async def handle_app_error(request: Request, exc: UserAPIError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=exc)
        # Runs in Starlette's ServerErrorMiddleware, outside RequestIDMiddleware,
        # so the header has to be set here
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
            headers={REQUEST_ID_HEADER: rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    client: Optional[AsyncMongoClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to use; defaults to the environment-loaded settings.
        client: An already-built MongoDB client (tests, embedding). When
                omitted the lifespan builds and owns one.
    """
    config = config or default_settings

    app = FastAPI(
        title="Users API",
        description="CRUD API for managing users stored in MongoDB.",
        version=__version__,
        # Documentation is served from the static openapi.json by routes/docs.py
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=build_lifespan(config, client),
    )
    app.state.settings = config

    # Middleware executes in REVERSE order of addition: Request ID runs first
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(home.router)
    app.include_router(users.router)
    app.include_router(docs.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console-script entry point: serve the app on the configured host/port."""
    uvicorn.run(
        "userapi.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


# uvicorn expects `userapi.main:app` to be importable
app = create_app()
