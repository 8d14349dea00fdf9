"""
Bus Pass Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       lifespan() handles startup and shutdown.
Who:   uvicorn (`uvicorn buspass.main:app`) and the API test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware:   Request ID → Access Log → GZip → CORS         │
    │                                                              │
    │  Routers:      /health                                       │
    │                /api/v1/passenger   (PASSENGER)               │
    │                /api/v1/admin       (ADMIN)                   │
    │                /api/v1/conductor   (CONDUCTOR)               │
    │                /api/v1/files       (ADMIN, PASSENGER)        │
    │                                                              │
    │  Exception handlers → {success: false, message, statusCode,  │
    │                        error, request_id}                    │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, create the storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from buspass import __version__
from buspass.config import settings
from buspass.database import dispose_engine
from buspass.exceptions import BusPassError
from buspass.middleware.logging import RequestLoggingMiddleware
from buspass.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from buspass.routes import admin, conductor, files, health, passenger
from buspass.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging once for the whole process.

    Single stdout handler (containers collect stdout), one line per record:
        2024-01-15T12:00:00 [INFO] buspass.access: POST /api/v1/... 201 12.3ms [a1b2c3d4]
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Bus Pass Backend %s starting up...", __version__)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Document storage: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Bus Pass Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Builds the failure envelope; every handler below goes through here."""
    body = ErrorResponse(
        message=message,
        status_code=status_code,
        error=error,
        details=details or None,
        request_id=request_id_var.get("") or None,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(by_alias=True, exclude_none=True)),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions onto the failure envelope.

    Handler hierarchy:
        BusPassError subclasses  → their own status_code / error_code
                                   (400, 401, 403, 404, 409, 500)
        RequestValidationError   → 422, field errors in `details`
        HTTPException            → its status (unknown route, wrong method)
        Exception (fallback)     → 500, generic message, stack trace logged

    5xx responses never carry context; it is logged server-side only.
    """

    @app.exception_handler(BusPassError)
    async def handle_buspass_error(request: Request, exc: BusPassError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context
            )
            return error_response(exc.status_code, exc.error_code, exc.message)

        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return error_response(exc.status_code, exc.error_code, exc.message, details=exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return error_response(
            422,
            "request_validation_error",
            "Request validation failed",
            details={"errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(
            exc.status_code,
            "http_error",
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Bus Pass API",
        description=(
            "Bus pass management: passengers apply and pay, admins approve and "
            "manage pass types, conductors verify passes in the field."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(passenger.router, prefix=API_PREFIX)
    app.include_router(admin.router, prefix=API_PREFIX)
    app.include_router(conductor.router, prefix=API_PREFIX)
    app.include_router(files.router, prefix=API_PREFIX)

    return app


app = create_app()
