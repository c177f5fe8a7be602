"""Sign-in, sign-out, session and registration endpoints."""
from __future__ import annotations

from typing import Any, Mapping

from fastapi import APIRouter, Body, Depends, Request, Response

from usermgmt.services.auth_service import AuthService, InvalidCredentialsError
from usermgmt.services.session_service import (
    SessionClaims,
    clear_session_cookie,
    require_user,
    set_session_cookie,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _get_auth_service(request: Request) -> AuthService:
    svc = getattr(getattr(request.app, "state", None), "auth_service", None)
    if not svc:
        raise RuntimeError("AuthService not configured")
    return svc


@router.post("/login")
def login(request: Request, response: Response, payload: Any = Body(None)):
    if not isinstance(payload, Mapping):
        raise InvalidCredentialsError("Invalid credentials")
    result = _get_auth_service(request).sign_in(payload.get("email"), payload.get("password"))
    set_session_cookie(response, result.token)
    return {"user": result.user, "token": result.token}


@router.post("/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/session")
def current_session(claims: SessionClaims = Depends(require_user)):
    return {"user": claims.to_public()}


@router.post("/register", status_code=201)
def register(request: Request, payload: Any = Body(None)):
    return _get_auth_service(request).register(payload)
