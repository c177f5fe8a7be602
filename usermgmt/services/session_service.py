"""Session helpers (signed claims tokens, cookies, per-request context)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Request, Response

from usermgmt.core.config import get_settings
from usermgmt.repositories.sql_repository import SQLRepository

JWT_ALGORITHM = "HS256"

logger = logging.getLogger("usermgmt.session")


class SessionError(Exception):
    """Base class for authentication/authorization failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(SessionError):
    pass


class ForbiddenError(SessionError):
    pass


@dataclass(frozen=True)
class SessionClaims:
    """Identity and authorization attributes carried by the session token."""

    id: str
    is_admin: bool = False
    access_token: Optional[str] = None

    def to_public(self) -> dict[str, Any]:
        return {"id": self.id, "isAdmin": self.is_admin}


@dataclass
class RequestContext:
    """Claims resolved once for the current request; None when anonymous."""

    claims: Optional[SessionClaims] = None
    token: Optional[str] = None
    reissued: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.claims is not None


def claims_for_user(user: Any, access_token: Optional[str] = None) -> SessionClaims:
    return SessionClaims(id=str(user.id), is_admin=bool(user.is_admin), access_token=access_token)


def issue_session(claims: SessionClaims) -> str:
    """Sign a token carrying the given claims, valid for the configured TTL."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": claims.id,
        "isAdmin": claims.is_admin,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.session_ttl_seconds)).timestamp()),
    }
    if claims.access_token:
        payload["accessToken"] = claims.access_token
    return jwt.encode(payload, settings.session_secret, algorithm=JWT_ALGORITHM)


def decode_session(token: str) -> SessionClaims:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Session expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid session") from exc

    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise UnauthorizedError("Invalid session")
    access_token = payload.get("accessToken")
    return SessionClaims(
        id=user_id,
        is_admin=payload.get("isAdmin") is True,
        access_token=access_token if isinstance(access_token, str) else None,
    )


def refresh_claims(claims: SessionClaims, repository: SQLRepository) -> Optional[SessionClaims]:
    """Re-read the admin flag from the store so privilege changes apply mid-session.

    Returns None when the account behind the claims no longer exists.
    """
    user = repository.get_user(claims.id)
    if user is None:
        return None
    return replace(claims, is_admin=bool(user.is_admin))


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    secure_cookie = settings.app_env == "prod"
    response.set_cookie(
        settings.session_cookie_name,
        token,
        httponly=True,
        secure=secure_cookie,
        samesite="strict",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_settings().session_cookie_name, path="/")


def carry_reissued_cookie(request: Request, response: Response) -> None:
    """Copy a cookie re-signed earlier in this request onto ``response``.

    Error handlers build their own response, dropping the one the dependency wrote to.
    """
    context = getattr(request.state, "context", None)
    if isinstance(context, RequestContext) and context.reissued and context.token:
        set_session_cookie(response, context.token)


def _repository(request: Request) -> SQLRepository:
    repo = getattr(getattr(request.app, "state", None), "repository", None)
    if repo is None:
        raise RuntimeError("Repository not configured")
    return repo


def get_request_context(request: Request, response: Response) -> RequestContext:
    """Resolve and refresh the caller's claims; stored on ``request.state``."""
    cached = getattr(request.state, "context", None)
    if isinstance(cached, RequestContext):
        return cached

    settings = get_settings()
    header_token = _extract_bearer_token(request.headers.get("authorization"))
    cookie_token = request.cookies.get(settings.session_cookie_name)
    token = header_token or cookie_token
    context = RequestContext()
    reissued = False
    if token:
        try:
            claims = decode_session(token)
        except UnauthorizedError as exc:
            logger.info("Ignoring session token: %s", exc.message)
            claims = None
        if claims is not None:
            refreshed = refresh_claims(claims, _repository(request))
            if refreshed is None:
                logger.info("Session refers to missing user %s", claims.id)
            elif refreshed != claims and not header_token:
                token = issue_session(refreshed)
                set_session_cookie(response, token)
                reissued = True
            context = RequestContext(
                claims=refreshed, token=token if refreshed else None, reissued=reissued
            )

    request.state.context = context
    return context


def require_user(context: RequestContext = Depends(get_request_context)) -> SessionClaims:
    if context.claims is None:
        raise UnauthorizedError("Unauthorized")
    return context.claims


def require_admin(claims: SessionClaims = Depends(require_user)) -> SessionClaims:
    if not claims.is_admin:
        raise ForbiddenError("Forbidden")
    return claims
