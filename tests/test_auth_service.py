from __future__ import annotations

import pytest
from argon2 import PasswordHasher

from usermgmt.core import config as core_config
from usermgmt.core.security import verify_password
from usermgmt.services.auth_service import AuthService, InvalidCredentialsError, RegistrationClosedError
from usermgmt.services.session_service import decode_session
from usermgmt.services.user_service import ConflictError

from conftest import DEFAULT_PASSWORD


def test_sign_in_issues_claims(make_user, repo):
    admin = make_user("a@example.com", is_admin=True)
    result = AuthService(repo).sign_in("A@Example.com ", DEFAULT_PASSWORD)
    assert result.user["id"] == admin.id
    assert result.claims.id == admin.id
    assert result.claims.is_admin is True
    assert decode_session(result.token) == result.claims


@pytest.mark.parametrize(
    "email,password",
    [
        ("a@example.com", "wrong-password"),
        ("nobody@example.com", DEFAULT_PASSWORD),
        ("", DEFAULT_PASSWORD),
        ("a@example.com", ""),
        (None, None),
        (123, DEFAULT_PASSWORD),
    ],
)
def test_sign_in_rejects_bad_credentials(make_user, repo, email, password):
    make_user("a@example.com", is_admin=True)
    with pytest.raises(InvalidCredentialsError):
        AuthService(repo).sign_in(email, password)


def test_sign_in_upgrades_outdated_hash(repo):
    weak = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)
    user = repo.create_user("a@example.com", weak.hash(DEFAULT_PASSWORD), is_admin=True)
    AuthService(repo).sign_in("a@example.com", DEFAULT_PASSWORD)
    upgraded = repo.get_user(user.id).password_hash
    assert upgraded != user.password_hash
    assert verify_password(DEFAULT_PASSWORD, upgraded)


def test_register_is_closed_by_default(repo):
    with pytest.raises(RegistrationClosedError):
        AuthService(repo).register({"email": "x@example.com", "password": "longenough"})


def test_register_when_open(repo, make_user, monkeypatch):
    monkeypatch.setenv("ALLOW_REGISTRATION", "true")
    core_config.get_settings.cache_clear()
    make_user("root@example.com", is_admin=True)
    svc = AuthService(repo)
    created = svc.register({"email": "x@example.com", "password": "longenough", "isAdmin": True})
    assert created["isAdmin"] is False
    with pytest.raises(ConflictError):
        svc.register({"email": "X@example.com", "password": "longenough"})
