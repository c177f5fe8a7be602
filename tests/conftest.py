from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Keep the package importable when running the suite from a source checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from usermgmt.core import config as core_config  # noqa: E402
from usermgmt.core.security import hash_password  # noqa: E402
from usermgmt.db import models  # noqa: E402
from usermgmt.db import session as db_session  # noqa: E402
from usermgmt.repositories.sql_repository import SQLRepository  # noqa: E402
from usermgmt.services.session_service import claims_for_user, issue_session  # noqa: E402

DEFAULT_PASSWORD = "correct-horse"


def _reset_caches() -> None:
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def db_env(tmp_path, monkeypatch):
    """Point the app at a temporary SQLite file and reset settings/engine caches."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("SESSION_SECRET", "test-session-secret-with-enough-entropy")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("ALLOW_REGISTRATION", raising=False)
    monkeypatch.delenv("SESSION_TTL_SECONDS", raising=False)
    _reset_caches()

    engine = db_session.get_engine()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)

    yield db_file

    try:
        models.Base.metadata.drop_all(bind=engine)
    finally:
        engine.dispose()
        _reset_caches()


@pytest.fixture()
def repo(db_env) -> SQLRepository:
    return SQLRepository()


@pytest.fixture()
def make_user(repo):
    """Insert a user directly through the repository (password: DEFAULT_PASSWORD)."""

    def _make(email: str, *, is_admin: bool = False, name: str | None = None, password: str = DEFAULT_PASSWORD):
        return repo.create_user(email, hash_password(password), name=name, is_admin=is_admin)

    return _make


@pytest.fixture()
def client(db_env):
    from usermgmt.app import create_app

    app = create_app()
    return TestClient(app, raise_server_exceptions=False)


def bearer(user) -> dict[str, str]:
    """Authorization header carrying freshly issued claims for ``user``."""
    return {"Authorization": f"Bearer {issue_session(claims_for_user(user))}"}
