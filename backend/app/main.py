"""
BeeBark Backend — Application Factory
=======================================

What:  Builds the FastAPI app and mounts the Socket.IO server in front of it.
Who:   uvicorn app.main:app

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │ socketio.ASGIApp                                      │
    │   /socket.io/*  → AsyncServer (register, disconnect)  │
    │   everything else ↓                                   │
    │ ┌───────────────────────────────────────────────────┐ │
    │ │ FastAPI                                           │ │
    │ │  Middleware: RateLimit → RequestID → Log → GZip   │ │
    │ │  Routes: /api/connection  /api/post               │ │
    │ │          /api/notification  /health               │ │
    │ │  Errors: BeeBarkError → ERROR_STATUS[kind]        │ │
    │ └───────────────────────────────────────────────────┘ │
    └───────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, staging directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict

import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import BeeBarkError, ErrorKind
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.realtime import sio
from app.routes import connection, health, notification, post

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, before anything else logs."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request / per-packet chatter
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "socketio", "engineio", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("BeeBark Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: connections, feed and notifications work without it
        logger.error("Configuration error: %s", str(e))

    staging = Path(settings.upload_tmp_dir)
    staging.mkdir(parents=True, exist_ok=True)
    logger.info("Upload staging directory: %s", staging.resolve())
    logger.info("Socket.IO path: /%s", settings.socketio_path.strip("/"))
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("BeeBark Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Error Translation
# ══════════════════════════════════════════════════════════════════════════

# The only place an error kind becomes an HTTP status
ERROR_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.VALIDATION: 400,
    ErrorKind.SELF_REQUEST: 400,
    ErrorKind.ALREADY_CONNECTED: 400,
    ErrorKind.DUPLICATE_PENDING: 400,
    ErrorKind.REQUEST_NOT_FOUND: 400,
    ErrorKind.ALREADY_PROCESSED: 400,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.MEDIA_UPLOAD: 500,
    ErrorKind.DATABASE: 500,
    ErrorKind.INTERNAL: 500,
}


def status_for(exc: BeeBarkError) -> int:
    return ERROR_STATUS.get(exc.kind, 500)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application errors to JSON responses.

    Client errors (< 500) return the error's message and context. Server
    errors return their message only; context stays in the log.
    """

    @app.exception_handler(BeeBarkError)
    async def handle_beebark_error(request: Request, exc: BeeBarkError):
        rid = request_id_var.get("")
        status = status_for(exc)
        content = {
            "error": exc.kind.value,
            "message": exc.message,
            "request_id": rid,
        }
        if status < 500:
            logger.info("[%s] %s: %s", rid, exc.kind.value, exc.message)
            if exc.context:
                content["details"] = exc.context
        else:
            logger.error(
                "[%s] %s: %s | Context: %s", rid, exc.kind.value, exc.message, exc.context
            )
        return JSONResponse(status_code=status, content=content)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": ErrorKind.INTERNAL.value,
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble the FastAPI application (without the socket layer)."""
    app = FastAPI(
        title="BeeBark API",
        description=(
            "Social backend for the BeeBark feed: connections, posts with likes "
            "and comments, notifications. Real-time updates are delivered over "
            "Socket.IO on the same host."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(connection.router)
    app.include_router(post.router)
    app.include_router(notification.router)
    app.include_router(health.router)

    return app


# ── Application Instances ────────────────────────────────────────────────
# `api` is the plain FastAPI app (dependency overrides in tests go here);
# `app` is what uvicorn serves.
api = create_app()
app = socketio.ASGIApp(sio, other_asgi_app=api, socketio_path=settings.socketio_path)
