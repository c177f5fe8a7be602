from __future__ import annotations

from usermgmt.core import config as core_config
from usermgmt.services.session_service import decode_session

from conftest import DEFAULT_PASSWORD, bearer


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Frame-Options"] == "DENY"


def test_users_require_session(client):
    assert client.get("/users").status_code == 401
    assert client.post("/users", json={"email": "a@example.com", "password": "longenough"}).status_code == 401
    assert client.put("/users/x", json={"name": "n"}).status_code == 401
    response = client.delete("/users/x")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token_is_unauthorized(client):
    response = client.get("/users", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_non_admin_is_forbidden(client, make_user):
    make_user("root@example.com", is_admin=True)
    member = make_user("m@example.com")
    headers = bearer(member)
    assert client.get("/users", headers=headers).status_code == 403
    assert client.put(f"/users/{member.id}", json={"name": "x"}, headers=headers).status_code == 403
    response = client.delete(f"/users/{member.id}", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_create_then_list_hides_password(client, make_user):
    admin = make_user("root@example.com", is_admin=True)
    headers = bearer(admin)
    created = client.post("/users", json={"email": "new@example.com", "password": "longenough"}, headers=headers)
    assert created.status_code == 201
    body = created.json()
    assert body["email"] == "new@example.com"
    assert "passwordHash" not in body and "password" not in body

    listed = client.get("/users", headers=headers)
    assert listed.status_code == 200
    emails = [u["email"] for u in listed.json()]
    assert "new@example.com" in emails
    assert "passwordHash" not in listed.text
    assert "longenough" not in listed.text


def test_create_rejects_bad_email(client, make_user):
    admin = make_user("root@example.com", is_admin=True)
    response = client.post("/users", json={"email": "bad", "password": "longenough"}, headers=bearer(admin))
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid email format"}


def test_create_password_boundary(client, make_user):
    admin = make_user("root@example.com", is_admin=True)
    headers = bearer(admin)
    short = client.post("/users", json={"email": "s@example.com", "password": "1234567"}, headers=headers)
    assert short.status_code == 400
    ok = client.post("/users", json={"email": "s@example.com", "password": "12345678"}, headers=headers)
    assert ok.status_code == 201


def test_create_duplicate_is_conflict(client, make_user):
    admin = make_user("root@example.com", is_admin=True)
    response = client.post("/users", json={"email": "ROOT@example.com", "password": "longenough"}, headers=bearer(admin))
    assert response.status_code == 409


def test_malformed_json_is_bad_request(client, make_user):
    admin = make_user("root@example.com", is_admin=True)
    headers = {**bearer(admin), "Content-Type": "application/json"}
    response = client.post("/users", content=b"{not json", headers=headers)
    assert response.status_code == 400
    assert "error" in response.json()


def test_last_admin_self_demotion_scenario(client, make_user):
    a = make_user("a@example.com", is_admin=True)
    headers = bearer(a)

    rejected = client.put(f"/users/{a.id}", json={"isAdmin": False}, headers=headers)
    assert rejected.status_code == 400
    assert rejected.json() == {"error": "Cannot remove admin status from the only admin user."}

    created = client.post(
        "/users",
        json={"email": "b@example.com", "password": "longenough", "isAdmin": True},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["isAdmin"] is True

    accepted = client.put(f"/users/{a.id}", json={"isAdmin": False}, headers=headers)
    assert accepted.status_code == 200
    assert accepted.json()["isAdmin"] is False


def test_last_admin_self_delete_scenario(client, make_user, repo):
    a = make_user("a@example.com", is_admin=True)
    rejected = client.delete(f"/users/{a.id}", headers=bearer(a))
    assert rejected.status_code == 400
    assert rejected.json() == {"error": "Cannot delete the only admin user."}
    assert repo.get_user(a.id) is not None

    b = make_user("b@example.com", is_admin=True)
    accepted = client.delete(f"/users/{a.id}", headers=bearer(a))
    assert accepted.status_code == 200
    assert accepted.json() == {"message": "User deleted successfully"}
    assert repo.get_user(a.id) is None
    assert repo.get_user(b.id).is_admin is True


def test_update_errors(client, make_user):
    admin = make_user("a@example.com", is_admin=True)
    make_user("taken@example.com")
    headers = bearer(admin)
    assert client.put(f"/users/{admin.id}", json={}, headers=headers).status_code == 400
    assert client.put(f"/users/{admin.id}", json={"isAdmin": "no"}, headers=headers).status_code == 400
    assert client.put("/users/missing", json={"name": "x"}, headers=headers).status_code == 404
    assert client.put(f"/users/{admin.id}", json={"email": "taken@example.com"}, headers=headers).status_code == 409


def test_update_returns_record_without_hash(client, make_user):
    admin = make_user("a@example.com", is_admin=True)
    member = make_user("m@example.com")
    response = client.put(
        f"/users/{member.id}",
        json={"name": "Max", "password": "another-secret"},
        headers=bearer(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Max"
    assert set(body) == {"id", "name", "email", "isAdmin", "createdAt", "updatedAt"}


def test_delete_missing_user(client, make_user):
    admin = make_user("a@example.com", is_admin=True)
    response = client.delete("/users/missing", headers=bearer(admin))
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_demoted_admin_loses_access_with_same_token(client, make_user, repo):
    a = make_user("a@example.com", is_admin=True)
    b = make_user("b@example.com", is_admin=True)
    stale_headers = bearer(a)
    assert client.get("/users", headers=stale_headers).status_code == 200

    demoted = client.put(f"/users/{a.id}", json={"isAdmin": False}, headers=bearer(b))
    assert demoted.status_code == 200

    assert client.get("/users", headers=stale_headers).status_code == 403


def test_deleted_user_token_is_unauthorized(client, make_user):
    a = make_user("a@example.com", is_admin=True)
    b = make_user("b@example.com", is_admin=True)
    stale_headers = bearer(a)
    assert client.delete(f"/users/{a.id}", headers=bearer(b)).status_code == 200
    assert client.get("/users", headers=stale_headers).status_code == 401


def test_unexpected_failure_is_opaque_500(client, make_user, monkeypatch):
    admin = make_user("a@example.com", is_admin=True)

    def _boom():
        raise RuntimeError("database exploded with secrets")

    monkeypatch.setattr(client.app.state.user_service, "list_users", _boom)
    response = client.get("/users", headers=bearer(admin))
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}
    assert "secrets" not in response.text


# ------------------------------ auth ------------------------------
def test_login_sets_cookie_and_cookie_authenticates(client, make_user):
    make_user("a@example.com", is_admin=True)
    response = client.post("/auth/login", json={"email": "a@example.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "a@example.com"
    assert body["token"]
    assert "session" in response.cookies

    session = client.get("/auth/session")
    assert session.status_code == 200
    assert session.json()["user"]["isAdmin"] is True
    assert client.get("/users").status_code == 200

    client.post("/auth/logout")
    client.cookies.clear()
    assert client.get("/auth/session").status_code == 401


def test_forbidden_response_still_refreshes_cookie(client, make_user):
    a = make_user("a@example.com", is_admin=True)
    b = make_user("b@example.com", is_admin=True)
    login = client.post("/auth/login", json={"email": "a@example.com", "password": DEFAULT_PASSWORD})
    assert decode_session(login.cookies["session"]).is_admin is True

    assert client.put(f"/users/{a.id}", json={"isAdmin": False}, headers=bearer(b)).status_code == 200

    response = client.get("/users")
    assert response.status_code == 403
    assert decode_session(response.cookies["session"]).is_admin is False


def test_login_with_bad_credentials(client, make_user):
    make_user("a@example.com", is_admin=True)
    response = client.post("/auth/login", json={"email": "a@example.com", "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}
    assert client.post("/auth/login", json=["a"]).status_code == 401


def test_session_reflects_demotion(client, make_user):
    a = make_user("a@example.com", is_admin=True)
    b = make_user("b@example.com", is_admin=True)
    headers = bearer(a)
    client.put(f"/users/{a.id}", json={"isAdmin": False}, headers=bearer(b))
    response = client.get("/auth/session", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"user": {"id": a.id, "isAdmin": False}}


def test_register_closed_and_open(client, make_user, monkeypatch):
    make_user("root@example.com", is_admin=True)
    closed = client.post("/auth/register", json={"email": "x@example.com", "password": "longenough"})
    assert closed.status_code == 403

    monkeypatch.setenv("ALLOW_REGISTRATION", "1")
    core_config.get_settings.cache_clear()
    opened = client.post("/auth/register", json={"email": "x@example.com", "password": "longenough", "isAdmin": True})
    assert opened.status_code == 201
    assert opened.json()["isAdmin"] is False
