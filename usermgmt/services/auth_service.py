"""
Authentication use cases: credential sign-in and self-registration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from usermgmt.core.config import get_settings
from usermgmt.core.security import hash_password, needs_rehash, verify_password
from usermgmt.domain.users import normalize_email, serialize_user
from usermgmt.repositories.sql_repository import SQLRepository
from usermgmt.services.session_service import SessionClaims, claims_for_user, issue_session
from usermgmt.services.user_service import UserService

logger = logging.getLogger("usermgmt.auth")


class AuthError(Exception):
    """Base class for authentication-related exceptions."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCredentialsError(AuthError):
    pass


class RegistrationClosedError(AuthError):
    pass


@dataclass
class SignInResult:
    user: dict[str, Any]
    claims: SessionClaims
    token: str


@dataclass
class AuthService:
    """Handles credential sign-in and optional self-registration."""

    repository: SQLRepository | None = None

    def __post_init__(self):
        if self.repository is None:
            self.repository = SQLRepository()
        self.users = UserService(self.repository)

    def sign_in(self, email: Any, password: Any) -> SignInResult:
        if not isinstance(email, str) or not isinstance(password, str):
            raise InvalidCredentialsError("Invalid credentials")
        raw_email = normalize_email(email)
        if not raw_email or not password:
            raise InvalidCredentialsError("Invalid credentials")
        user = self.repository.get_user_by_email(raw_email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("Failed sign-in for %s", raw_email)
            raise InvalidCredentialsError("Invalid credentials")
        if needs_rehash(user.password_hash):
            self.repository.update_user_password(user.id, hash_password(password))

        claims = claims_for_user(user)
        token = issue_session(claims)
        logger.info("User %s signed in (admin=%s)", user.id, claims.is_admin)
        return SignInResult(user=serialize_user(user), claims=claims, token=token)

    def register(self, payload: Any) -> dict[str, Any]:
        """Create an account for an anonymous caller when registration is open."""
        if not get_settings().allow_registration:
            raise RegistrationClosedError("Registration is disabled")
        return self.users.create_user(payload, allow_admin_flag=False)
