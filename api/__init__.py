"""REST API module for the skill exchange.

This module provides HTTP endpoints for:
- Registration, login and profile management
- Browsing members and skill matching
- Creating and moving swap requests through their lifecycle
- Post-swap feedback and ratings
- The notification inbox and live push over WebSocket
- Admin moderation and broadcast messages
- System health monitoring
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin import AdminManager
from auth import AuthManager
from common import SkillSwapError
from config import load_settings
from database import close_pool, create_pool
from feedback import FeedbackManager
from media import MediaStore
from notifications import NotificationManager, PushHub
from swaps import SwapManager
from users import UserManager

from .responses import error_response, success_response

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
UPLOADS_PATH = "/uploads"
VERSION = "1.0.0"


def _build_services(app: FastAPI, settings: Dict[str, Any], pool) -> None:
    """Wire the domain managers onto app.state around one pool and hub."""
    hub = PushHub()
    notifications = NotificationManager(pool, hub)

    app.state.pool = pool
    app.state.hub = hub
    app.state.notifications = notifications
    app.state.auth = AuthManager(
        pool,
        settings['jwt_secret'],
        algorithm=settings['jwt_algorithm'],
        expiry_days=settings['token_expiry_days']
    )
    app.state.users = UserManager(pool, include_private_in_matches=settings['include_private_in_matches'])
    app.state.swaps = SwapManager(pool, notifications)
    app.state.feedback = FeedbackManager(pool, notifications)
    app.state.admin = AdminManager(pool, notifications)
    app.state.media = MediaStore(
        settings['upload_dir'],
        settings['max_upload_bytes'],
        base_url=UPLOADS_PATH
    )


def _field_errors(exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        # Drop the leading location ("body", "query", "path")
        loc = [str(part) for part in error.get('loc', ())][1:]
        errors.append({
            'field': '.'.join(loc) or None,
            'message': error.get('msg', 'Invalid value')
        })
    return errors


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SkillSwapError)
    async def skillswap_error_handler(request: Request, exc: SkillSwapError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.message, exc.status_code, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response("Validation error", status.HTTP_400_BAD_REQUEST, _field_errors(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = "Route not found"
        return error_response(message, exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return error_response("Server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def create_app(settings: Optional[Dict[str, Any]] = None, pool=None) -> FastAPI:
    """Build the application.

    Args:
        settings: Validated settings; loaded from settings.conf and the
            environment when omitted
        pool: An existing connection pool. When omitted the app creates one
            on startup and closes it on shutdown.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown events."""
        logger.info("Initializing API...")
        owned_pool = None
        active_pool = pool
        if active_pool is None:
            owned_pool = active_pool = await create_pool(settings['db_url'])
        _build_services(app, settings, active_pool)

        yield

        logger.info("Shutting down API...")
        if owned_pool is not None:
            await close_pool(owned_pool)

    app = FastAPI(
        title="Skill Swap API",
        description="REST API for exchanging skills between members",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings

    # Configure CORS
    origins = settings['cors_origins']
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials='*' not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_error_handlers(app)

    os.makedirs(settings['upload_dir'], exist_ok=True)
    app.mount(UPLOADS_PATH, StaticFiles(directory=settings['upload_dir'], check_dir=False), name="uploads")

    # Root endpoint - register this BEFORE other routers
    @app.get("/")
    async def root():
        return success_response(
            {"name": app.title, "version": VERSION},
            message="Skill Swap API is running"
        )

    # Import and include all routers
    from .admin import router as admin_router
    from .auth import router as auth_router
    from .feedback import router as feedback_router
    from .notifications import router as notifications_router
    from .swaps import router as swaps_router
    from .system import router as system_router
    from .users import router as users_router
    from .websockets import router as websocket_router

    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(swaps_router, prefix=API_PREFIX)
    app.include_router(feedback_router, prefix=API_PREFIX)
    app.include_router(notifications_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
    app.include_router(websocket_router)
    app.include_router(system_router)

    return app


__all__ = ['create_app']
