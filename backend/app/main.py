"""
Posts API Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn app.main:app) or the `posts-api` script,
       and by tests, which pass in a Services container built around fakes.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌─────────────┐  │
    │  │  Req ID  │→│ Logging  │→│  GZip    │→│   CORS      │  │
    │  └──────────┘ └──────────┘ └──────────┘ └─────────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────────┐ │
    │  │ / /auth  │ │ /users   │ │ /posts   │ │ /comments    │ │
    │  │ /oauth   │ │          │ │          │ │ /health      │ │
    │  └──────────┘ └──────────┘ └──────────┘ └──────────────┘ │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ PostsApiError→status │ Body→400 │ Datastore→502    │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Build the services container unless one was injected
    Shutdown:
    1. Close the shared outbound HTTP client

Every error body has the shape {"Error": "<message>"}.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from google.api_core.exceptions import GoogleAPIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import settings
from app.dependencies import Services, build_services_from_settings
from app.exceptions import MethodNotAllowedError, PostsApiError, ValidationError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import comments, health, home, posts, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    App Engine and Cloud Run collect stdout, so a single StreamHandler is
    enough; each line becomes one log entry.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Access lines come from posts_api.access instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, configuration check, service wiring.
    Shutdown: release the services this lifespan created.

    An app created with an injected Services container keeps it untouched;
    whoever built it owns its resources.
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Posts API Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Sign-in and bearer-token routes will fail until this is fixed.")

    owned: Optional[Services] = None
    if getattr(app.state, "services", None) is None:
        owned = build_services_from_settings(settings)
        app.state.services = owned
        logger.info(
            "Datastore project=%s namespace=%s",
            settings.datastore_project or "<default>",
            settings.datastore_namespace or "<default>",
        )

    logger.info("Server ready on %s:%d", settings.host, settings.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Posts API Backend shutting down...")
    if owned is not None:
        await owned.aclose()
        app.state.services = None
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"Error": message}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        PostsApiError           → its own status_code (400/401/403/404/405/406/502)
        RequestValidationError  → 400 (body is not a JSON object, bad types)
        HTTPException           → its status (unknown path, unrouted method)
        GoogleAPIError          → 502 (Datastore call failed)
        Exception (fallback)    → 500

    Exception context, upstream errors and stack traces are logged server-side
    only; the response carries the message alone.
    """

    @app.exception_handler(PostsApiError)
    async def handle_api_error(request: Request, exc: PostsApiError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
                exc_info=exc.__cause__ is not None,
            )
        else:
            logger.info("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)

        headers = None
        if isinstance(exc, MethodNotAllowedError):
            headers = {"Allow": ", ".join(exc.allowed)}
        return _error(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        logger.info("[%s] Malformed request: %s", rid, exc.errors())
        return _error(400, ValidationError().message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        # Unknown paths and methods no route declares
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(GoogleAPIError)
    async def handle_datastore_error(request: Request, exc: GoogleAPIError):
        rid = request_id_var.get("")
        logger.error("[%s] Datastore error: %s", rid, str(exc), exc_info=True)
        return _error(502, "The datastore is unavailable. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error(500, "An unexpected error occurred. Please try again later.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Pre-built container (tests). When omitted, the lifespan
                  builds one from settings on startup.
    """
    app = FastAPI(
        title="Posts API",
        description=(
            "Users, posts and comments stored in Google Cloud Datastore. "
            "Sign in with Google at / and send the ID token as a bearer token."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.services = services

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Allow"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(home.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(comments.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console entry point: serve on $PORT, trusting forwarded headers for self-links."""
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
        log_level=settings.log_level.lower(),
    )


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn and gunicorn import `app.main:app`
app = create_app()
