"""
User management use cases: listing, creation, partial update and deletion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError

from usermgmt.core.security import hash_password
from usermgmt.domain.admin_floor import MutationKind
from usermgmt.domain.users import (
    MIN_PASSWORD_LENGTH,
    PatchError,
    UNSET,
    is_valid_email,
    is_valid_password,
    normalize_email,
    normalize_name,
    parse_user_patch,
    serialize_user,
)
from usermgmt.repositories.sql_repository import SQLRepository
from usermgmt.services.admin_guard import AdminInvariantGuard
from usermgmt.services.session_service import SessionClaims

logger = logging.getLogger("usermgmt.users")


class UserError(Exception):
    """Base class for user management failures surfaced to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(UserError):
    pass


class ConflictError(UserError):
    pass


class NotFoundError(UserError):
    pass


def _require_object(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return payload


@dataclass
class UserService:
    """Validates and applies create/update/delete operations on user records."""

    repository: SQLRepository | None = None

    def __post_init__(self):
        if self.repository is None:
            self.repository = SQLRepository()
        self.guard = AdminInvariantGuard(self.repository)

    # -------------------------------------- reads --------------------------------------
    def list_users(self) -> list[dict[str, Any]]:
        return [serialize_user(user) for user in self.repository.list_users()]

    def get_user(self, user_id: str) -> dict[str, Any]:
        user = self.repository.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return serialize_user(user)

    # -------------------------------------- create --------------------------------------
    def create_user(self, payload: Any, *, allow_admin_flag: bool = True) -> dict[str, Any]:
        """Create a user from ``{email, password, name?, isAdmin?}``.

        With ``allow_admin_flag`` off (self-registration) the requested flag is
        ignored; the repository still promotes the very first account.
        """
        data = _require_object(payload)
        email = data.get("email")
        password = data.get("password")
        if not email or not password:
            raise ValidationError("Email and password are required")
        if not isinstance(email, str) or not is_valid_email(email):
            raise ValidationError("Invalid email format")
        if not is_valid_password(password):
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ValidationError("Invalid name format")
        is_admin = data.get("isAdmin", False)
        if is_admin is None:
            is_admin = False
        if not isinstance(is_admin, bool):
            raise ValidationError("isAdmin must be a boolean")
        if not allow_admin_flag:
            is_admin = False

        normalized = normalize_email(email)
        if self.repository.get_user_by_email(normalized) is not None:
            raise ConflictError("User already exists")
        try:
            user = self.repository.create_user(
                normalized,
                hash_password(password),
                name=normalize_name(name),
                is_admin=is_admin,
            )
        except IntegrityError as exc:
            raise ConflictError("User already exists") from exc
        logger.info("Created user %s (admin=%s)", user.id, user.is_admin)
        return serialize_user(user)

    # -------------------------------------- update --------------------------------------
    def update_user(self, actor: SessionClaims, user_id: str, payload: Any) -> dict[str, Any]:
        """Apply a partial update; absent fields are left unchanged.

        An admin turning off their own admin flag goes through the admin floor
        check, and a rejection aborts the whole update.
        """
        data = _require_object(payload)
        if not data:
            raise ValidationError("Request body cannot be empty")
        try:
            patch = parse_user_patch(data)
        except PatchError as exc:
            raise ValidationError(str(exc)) from exc
        if patch.is_empty:
            raise ValidationError("Request body cannot be empty")

        target = self.repository.get_user(user_id)
        if target is None:
            raise NotFoundError("User not found")

        if patch.has("email") and patch.email != target.email:
            existing = self.repository.get_user_by_email(patch.email)
            if existing is not None and existing.id != target.id:
                raise ConflictError("Email already in use by another account.")

        floor_check = None
        if actor.id == target.id and patch.demotes:
            floor_check = MutationKind.DEMOTE
            self.guard.check(target.id, floor_check)

        values: dict[str, Any] = {}
        if patch.name is not UNSET:
            values["name"] = patch.name
        if patch.email is not UNSET:
            values["email"] = patch.email
        if patch.is_admin is not UNSET:
            values["is_admin"] = patch.is_admin
        if patch.password is not UNSET:
            values["password_hash"] = hash_password(patch.password)

        try:
            updated = self.repository.update_user(target.id, values, floor_check=floor_check)
        except IntegrityError as exc:
            raise ConflictError("Email already in use by another account.") from exc
        if updated is None:
            raise NotFoundError("User not found")
        changed = sorted("password" if column == "password_hash" else column for column in values)
        logger.info("User %s updated by %s (fields=%s)", updated.id, actor.id, ",".join(changed))
        return serialize_user(updated)

    # -------------------------------------- delete --------------------------------------
    def delete_user(self, actor: SessionClaims, user_id: str) -> None:
        floor_check = None
        if actor.id == user_id:
            floor_check = MutationKind.DELETE
            self.guard.check(user_id, floor_check)
        if not self.repository.delete_user(user_id, floor_check=floor_check):
            raise NotFoundError("User not found")
        logger.info("User %s deleted by %s", user_id, actor.id)
