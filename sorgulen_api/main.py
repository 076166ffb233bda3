"""Sørgulen order-intake API - application factory.

Builds the FastAPI app from an immutable Settings value: Firestore stores,
token service, mailer and notification dispatcher are created once and kept
on `app.state`. Before the app accepts traffic the lifespan hook makes sure
an administrator exists.

Usage:
    uvicorn sorgulen_api.main:create_app --factory --host 0.0.0.0 --port 10000
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .bootstrap import ensure_owner
from .config import Settings
from .errors import ApiError, ValidationError
from .mailer import MailTransport, Mailer, SmtpTransport
from .middleware.rate_limit import setup_rate_limiting
from .models import format_validation_errors
from .notifications import NotificationDispatcher
from .routers import admins, auth, health, orders
from .routers.auth import dummy_password_hash
from .security import TokenService
from .stores import AdminStore, OrderStore
from .utils.security_logger import security_logger

API_TITLE = "Sørgulen Order API"

logger = logging.getLogger("sorgulen_api.main")


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
    )


def create_app(
    settings: Optional[Settings] = None,
    db=None,
    transport: Optional[MailTransport] = None,
) -> FastAPI:
    """Create the API application.

    Args:
        settings: configuration; read from the environment when omitted
        db: Firestore client; created from settings when omitted
        transport: mail transport; SMTP from settings when omitted

    Raises:
        ConfigurationError if required configuration is missing.
    """
    if settings is None:
        settings = Settings.from_env()
    _configure_logging(settings.debug)
    security_logger.configure(settings.security_log_dir)

    if db is None:
        from .database import get_firestore
        db = get_firestore(settings)

    order_store = OrderStore(db)
    admin_store = AdminStore(db)
    tokens = TokenService(settings.jwt_secret, settings.token_lifetime_seconds)
    mailer = Mailer(transport or SmtpTransport(settings), settings)
    dispatcher = NotificationDispatcher(mailer, order_store, max_workers=settings.notify_workers)

    # =========================================================================
    # LIFESPAN (Startup/Shutdown)
    # =========================================================================

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {API_TITLE} v{__version__}")
        logger.info(f"Debug mode: {settings.debug}")
        try:
            ensure_owner(admin_store, settings)
            dummy_password_hash(settings.bcrypt_rounds)
        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise

        yield

        logger.info(f"Shutting down {API_TITLE}")
        dispatcher.shutdown()

    # =========================================================================
    # APPLICATION
    # =========================================================================

    if settings.debug:
        app = FastAPI(title=API_TITLE, version=__version__, lifespan=lifespan)
    else:
        # Production: disable docs endpoints
        app = FastAPI(
            title=API_TITLE,
            version=__version__,
            lifespan=lifespan,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )

    app.state.settings = settings
    app.state.orders = order_store
    app.state.admins = admin_store
    app.state.tokens = tokens
    app.state.mailer = mailer
    app.state.dispatcher = dispatcher

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================
    # Last added runs first: CORS, then rate limiting.

    setup_rate_limiting(app, enabled=settings.rate_limit_enabled)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=3600,
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        """Add security headers to all responses."""
        response = await call_next(request)

        if "server" in response.headers:
            del response.headers["server"]

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every request with status and duration."""
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        # Auth header is never logged
        logger.info(
            f"{request.method} {request.url.path} "
            f"-> {response.status_code} ({duration_ms:.0f}ms)"
        )
        return response

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message, "code": exc.code},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError(format_validation_errors(exc.errors()))
        logger.debug(f"Rejected {request.method} {request.url.path}: {error.message}")
        return JSONResponse(
            status_code=error.status_code,
            content={"message": error.message, "code": error.code},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions with generic error response."""
        logger.exception(f"Unhandled exception on {request.url.path}")

        content = {"message": "Internal server error", "code": "INTERNAL_ERROR"}
        if settings.debug:
            content["error"] = str(exc)
            content["type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    # =========================================================================
    # ROUTERS
    # =========================================================================

    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(orders.router, prefix="/api", tags=["Orders"])
    app.include_router(admins.router, prefix="/api", tags=["Administrators"])
    app.include_router(health.router, prefix="/api", tags=["Health"])

    @app.get("/")
    async def root():
        """Root endpoint - API info."""
        return {
            "name": API_TITLE,
            "version": __version__,
            "status": "running"
        }

    return app
