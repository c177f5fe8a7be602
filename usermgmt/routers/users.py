"""Admin-only user management endpoints under ``/users``."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from usermgmt.services.session_service import SessionClaims, require_admin
from usermgmt.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_service(request: Request) -> UserService:
    svc = getattr(getattr(request.app, "state", None), "user_service", None)
    if not svc:
        raise RuntimeError("UserService not configured")
    return svc


@router.get("")
def list_users(request: Request, actor: SessionClaims = Depends(require_admin)):
    return _get_user_service(request).list_users()


@router.post("", status_code=201)
def create_user(
    request: Request,
    payload: Any = Body(None),
    actor: SessionClaims = Depends(require_admin),
):
    return _get_user_service(request).create_user(payload)


@router.put("/{user_id}")
def update_user(
    user_id: str,
    request: Request,
    payload: Any = Body(None),
    actor: SessionClaims = Depends(require_admin),
):
    return _get_user_service(request).update_user(actor, user_id, payload)


@router.delete("/{user_id}")
def delete_user(user_id: str, request: Request, actor: SessionClaims = Depends(require_admin)):
    _get_user_service(request).delete_user(actor, user_id)
    return {"message": "User deleted successfully"}
