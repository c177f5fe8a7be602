"""Domain helpers for user validation, partial updates and serialization."""
from __future__ import annotations

import re
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Mapping

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
MIN_PASSWORD_LENGTH = 8


class _Unset:
    """Marker for a field that was absent from an update request."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class PatchError(ValueError):
    """Raised when an update payload carries a field of the wrong shape."""


def normalize_email(value: str | None) -> str:
    """Emails are compared and stored stripped and lower-cased."""
    return (value or "").strip().lower()


def normalize_name(value: str | None) -> str | None:
    """Names are stored stripped; a blank name is stored as None."""
    if value is None:
        return None
    return value.strip() or None


def is_valid_email(value: str | None) -> bool:
    if not value:
        return False
    return bool(EMAIL_PATTERN.fullmatch(value.strip()))


def is_valid_password(value: Any) -> bool:
    return isinstance(value, str) and len(value) >= MIN_PASSWORD_LENGTH


@dataclass(frozen=True)
class UserPatch:
    """Partial update with explicit presence: UNSET means "leave unchanged"."""

    name: Any = UNSET
    email: Any = UNSET
    is_admin: Any = UNSET
    password: Any = UNSET

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is UNSET for f in fields(self))

    def has(self, field_name: str) -> bool:
        return getattr(self, field_name) is not UNSET

    @property
    def demotes(self) -> bool:
        return self.is_admin is False


_PATCH_KEYS = {"name": "name", "email": "email", "isAdmin": "is_admin", "password": "password"}


def parse_user_patch(payload: Mapping[str, Any]) -> UserPatch:
    """Build a UserPatch from a JSON object, validating each present field.

    Keys outside ``name``, ``email``, ``isAdmin`` and ``password`` are ignored,
    so a payload made only of unknown keys yields an empty patch.
    """
    values: dict[str, Any] = {}
    for key, attr in _PATCH_KEYS.items():
        if key in payload:
            values[attr] = payload[key]

    name = values.get("name", UNSET)
    if name is not UNSET and name is not None and not isinstance(name, str):
        raise PatchError("Invalid name format")
    if name is not UNSET:
        values["name"] = normalize_name(name)

    email = values.get("email", UNSET)
    if email is not UNSET:
        if not isinstance(email, str) or not is_valid_email(email):
            raise PatchError("Invalid email format")
        values["email"] = normalize_email(email)

    password = values.get("password", UNSET)
    if password is not UNSET and not is_valid_password(password):
        raise PatchError(
            f"Password must be a string and at least {MIN_PASSWORD_LENGTH} characters long"
        )

    is_admin = values.get("is_admin", UNSET)
    if is_admin is not UNSET and not isinstance(is_admin, bool):
        raise PatchError("isAdmin must be a boolean")

    return UserPatch(**values)


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def serialize_user(user: Any) -> dict[str, Any]:
    """Public JSON shape of a user record; the password hash never leaves here."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "isAdmin": bool(user.is_admin),
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }
