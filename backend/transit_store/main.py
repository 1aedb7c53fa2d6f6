"""
Transit Store Backend - FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn transit_store.main:app) or the
       `transit-store` console script.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │  Middleware:  Request ID → Logging → CORS                 │
    │  Routes:      /data   /folders[/{name}/projects]  /health │
    │  Handlers:    typed TransitStoreError → status code       │
    │  app.state:   storage (StorageAdapter)                    │
    │               transit (TransitClient)                     │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → storage.connect() → transit client
    Shutdown: transit.aclose() → storage.dispose()
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from transit_store import __version__
from transit_store.config import settings
from transit_store.database import StorageAdapter
from transit_store.exceptions import (
    AuthenticationRequiredError,
    ConnectionNotReadyError,
    DecryptionKeyNotFoundError,
    DecryptionUnavailableError,
    DuplicateNameError,
    EncryptionKeyNotFoundError,
    EncryptionUnavailableError,
    NotFoundError,
    PersistenceError,
    ReferentialIntegrityError,
    TransitStoreError,
)
from transit_store.middleware.logging import RequestLoggingMiddleware
from transit_store.middleware.request_id import RequestIDMiddleware, request_id_var
from transit_store.routes import data, folders, health
from transit_store.services.vault_transit import VaultTransitClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure root logging once at startup.

    Format: 2024-01-15T12:00:00 [INFO] transit_store.services.record_service: ...
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
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Create the process-wide storage handle and transit client.

    Both are created exactly once and stored on app.state before the first
    request is accepted. A missing oracle configuration is logged but does
    not stop startup; encrypt/decrypt calls fail until it is fixed.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Transit Store starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    storage = StorageAdapter(
        settings.resolved_database_url,
        echo=settings.log_level == "DEBUG",
    )
    await storage.connect()
    transit = VaultTransitClient.from_settings(settings)

    app.state.storage = storage
    app.state.transit = transit

    logger.info("App started - HOST: %s PORT: %d", settings.host, settings.port)
    logger.info("=" * 60)

    yield

    logger.info("Transit Store shutting down...")
    await transit.aclose()
    await storage.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "request_id": request_id_var.get(""),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

        ConnectionNotReadyError     → 503
        EncryptionUnavailableError  → 500  (EncryptionKeyNotFoundError: transit_key_not_found)
        DecryptionUnavailableError  → 500  (DecryptionKeyNotFoundError: transit_key_not_found)
        NotFoundError               → 404
        DuplicateNameError          → 409
        ReferentialIntegrityError   → 400
        PersistenceError            → 500  (generic message)
        AuthenticationRequiredError → 401
        Exception                   → 500  (generic message, stack trace logged)

    Driver and oracle details stay in the server log (exc.context).
    """

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(DuplicateNameError)
    async def handle_duplicate_name(request: Request, exc: DuplicateNameError):
        return _error_response(409, "duplicate_name", exc.message)

    @app.exception_handler(ReferentialIntegrityError)
    async def handle_referential_integrity(request: Request, exc: ReferentialIntegrityError):
        return _error_response(400, "referential_integrity_violation", exc.message)

    @app.exception_handler(AuthenticationRequiredError)
    async def handle_unauthorized(request: Request, exc: AuthenticationRequiredError):
        response = _error_response(401, "unauthorized", exc.message)
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.exception_handler(EncryptionKeyNotFoundError)
    @app.exception_handler(DecryptionKeyNotFoundError)
    async def handle_key_not_found(request: Request, exc: TransitStoreError):
        logger.warning("[%s] Transit key not found: %s", request_id_var.get(""), exc.context)
        return _error_response(500, "transit_key_not_found", exc.message)

    @app.exception_handler(EncryptionUnavailableError)
    async def handle_encryption_unavailable(request: Request, exc: EncryptionUnavailableError):
        logger.error("[%s] Encryption failed: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "encryption_unavailable", exc.message)

    @app.exception_handler(DecryptionUnavailableError)
    async def handle_decryption_unavailable(request: Request, exc: DecryptionUnavailableError):
        logger.error("[%s] Decryption failed: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "decryption_unavailable", exc.message)

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error("[%s] Persistence failure: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "persistence_failure", exc.message)

    @app.exception_handler(ConnectionNotReadyError)
    async def handle_connection_not_ready(request: Request, exc: ConnectionNotReadyError):
        logger.error("[%s] %s", request_id_var.get(""), exc.message)
        return _error_response(503, "connection_not_ready", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers."""
    app = FastAPI(
        title="Transit Store API",
        description=(
            "Stores values encrypted by a remote transit encryption service, "
            "and manages folders with their projects."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition.
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(data.router)
    app.include_router(folders.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run(
        "transit_store.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
