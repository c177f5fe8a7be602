from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from usermgmt.core.config import get_settings
from usermgmt.core.logging import configure_logging
from usermgmt.db.create_tables import create_all
from usermgmt.exception_handlers import register_exception_handlers
from usermgmt.repositories.sql_repository import SQLRepository
from usermgmt.routers import auth as auth_router
from usermgmt.routers import users as users_router
from usermgmt.services.auth_service import AuthService
from usermgmt.services.user_service import UserService

logger = logging.getLogger("usermgmt.app")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Cache-Control", "no-store")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def create_app() -> FastAPI:
    """Build the API application; compatible with uvicorn/gunicorn factories."""
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        create_all()
        yield

    app = FastAPI(title="User Management API", lifespan=lifespan)

    allowed_cors = set(settings.cors_origins)
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:3000", "http://127.0.0.1:3000"})
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    repository = SQLRepository()
    app.state.repository = repository
    app.state.user_service = UserService(repository)
    app.state.auth_service = AuthService(repository)

    register_exception_handlers(app)
    app.include_router(auth_router.router)
    app.include_router(users_router.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    logger.info("User management API configured (env=%s)", settings.app_env)
    return app
