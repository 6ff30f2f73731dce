"""
Dogsfy Backend — FastAPI Application Factory
==============================================

What:  Creates the FastAPI application that hosts the partitioned core.
How:   create_app() wires middleware, exception handlers and routes; the
       lifespan opens the three partitions and builds the core components.
Who:   uvicorn (`uvicorn dogsfy.main:app`) and the test suite.

Composition Root:
    lifespan
    ├── PartitionRegistry (north, south, friends)     → app.state.partitions
    ├── UserDirectory(north, south)                   → app.state.directory
    ├── FriendshipGraph(friends, directory)           → app.state.graph
    └── AccountService(directory, graph)              → app.state.accounts

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate the partition layout
    3. Open partitions (unless injected) and create missing tables
    4. Build the core components

    Shutdown:
    1. Dispose partitions that the lifespan opened
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dogsfy import __version__
from dogsfy.config import settings
from dogsfy.database import PartitionRegistry, open_partitions
from dogsfy.exceptions import (
    AlreadyExistsError,
    ConflictError,
    DogsfyError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from dogsfy.middleware.logging import RequestLoggingMiddleware
from dogsfy.middleware.request_id import RequestIDMiddleware, current_request_id
from dogsfy.routes import health
from dogsfy.schema import create_schema
from dogsfy.schemas.user import ErrorResponse
from dogsfy.services.account_service import AccountService
from dogsfy.services.friendship_graph import FriendshipGraph
from dogsfy.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def build_components(app: FastAPI, partitions: PartitionRegistry) -> None:
    """Attach the registry and the core components to app.state."""
    directory = UserDirectory(partitions.north, partitions.south)
    graph = FriendshipGraph(partitions.friends, directory)
    app.state.partitions = partitions
    app.state.directory = directory
    app.state.graph = graph
    app.state.accounts = AccountService(directory, graph, max_page_limit=settings.max_page_limit)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Dogsfy backend %s starting up...", __version__)

    settings.validate_partition_layout()

    partitions: Optional[PartitionRegistry] = getattr(app.state, "partitions", None)
    owns_partitions = partitions is None
    if owns_partitions:
        partitions = open_partitions(settings)

    if settings.auto_create_schema:
        await create_schema(partitions)

    build_components(app, partitions)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Dogsfy backend shutting down...")
    if owns_partitions:
        await partitions.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(code: str, message: str, details: Optional[dict] = None) -> dict:
    body = ErrorResponse(
        error=code,
        message=message,
        details=details or None,
        request_id=current_request_id(),
    )
    return body.model_dump(exclude_none=True)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception taxonomy to HTTP responses.

    Handler hierarchy:
        ValidationError (+ InvalidCoordinate, MalformedIdentifier) → 400
        NotFoundError                                              → 404
        AlreadyExistsError                                         → 409
        ConflictError                                              → 409
        StorageError (+ ConstraintViolation)                       → 500
        DogsfyError (base)                                         → 500
        Exception (fallback)                                       → 500

    Storage and unexpected errors never expose their context in the body.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", current_request_id(), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(AlreadyExistsError)
    async def handle_already_exists(request: Request, exc: AlreadyExistsError):
        return JSONResponse(
            status_code=409,
            content=_error_body("already_exists", exc.message, exc.context),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error("[%s] Storage error: %s | Context: %s", current_request_id(), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(DogsfyError)
    async def handle_app_error(request: Request, exc: DogsfyError):
        logger.error("[%s] Application error: %s | Context: %s", current_request_id(), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", current_request_id(), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(partitions: Optional[PartitionRegistry] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        partitions: Pre-built registry (tests, embedding). When given, the
                    components are built immediately and the lifespan will
                    not dispose it.
    """
    app = FastAPI(
        title="Dogsfy API",
        description="Hemisphere-partitioned user directory and friendship graph.",
        version=__version__,
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → Logging → handler
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)

    if partitions is not None:
        build_components(app, partitions)

    return app


app = create_app()
