"""
tests/test_api_routes.py -- Integration tests for the account and user routes.

These tests exercise the full stack: FastAPI routing -> bearer dependency ->
UserStore operations -> response model serialization.

Coverage:
  - Auth failures: 401 on protected routes without, with malformed, tampered,
    expired, or foreign-key tokens
  - Account flow: register 201 -> token works; duplicate 409; login 200/401
  - Register input rules: username trimmed, password verbatim, 72-byte cap,
    reserved "me"
  - Users: public list, /me, detail 200/404
  - CORS preflight from the SPA origin

Fixtures used (from conftest.py):
  - api_client: (client, token, username) -- user "testuser" / "testpass123"
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from auth.models import User
from auth.tokens import TokenService
from core.config import get_settings


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestBearerAuthFailure:
    """Requests to protected routes without a valid bearer token must return 401."""

    def test_me_without_header(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.get("/api/users/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_detail_without_header(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, username = api_client
        resp = client.get(f"/api/users/{username}")
        assert resp.status_code == 401

    def test_wrong_scheme(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, _username = api_client
        resp = client.get("/api/users/me", headers={"Authorization": f"Basic {token}"})
        assert resp.status_code == 401

    def test_malformed_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.get("/api/users/me", headers=_bearer("not.a.token"))
        assert resp.status_code == 401

    def test_tampered_signature(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, _username = api_client
        header, payload, signature = token.split(".")
        middle = len(signature) // 2
        flipped = "A" if signature[middle] != "A" else "B"
        forged = f"{header}.{payload}.{signature[:middle]}{flipped}{signature[middle + 1:]}"
        resp = client.get("/api/users/me", headers=_bearer(forged))
        assert resp.status_code == 401

    def test_expired_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, username = api_client
        eight_days_ago = datetime.now(timezone.utc) - timedelta(days=8)
        expired = TokenService(get_settings().token_key, clock=lambda: eight_days_ago).create_token(
            User(username=username)
        )
        resp = client.get("/api/users/me", headers=_bearer(expired))
        assert resp.status_code == 401

    def test_token_signed_with_other_key(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, username = api_client
        foreign = TokenService("q" * 64).create_token(User(username=username))
        resp = client.get("/api/users/me", headers=_bearer(foreign))
        assert resp.status_code == 401

    def test_valid_token_for_unknown_user(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        ghost = TokenService(get_settings().token_key).create_token(User(username="ghost"))
        resp = client.get("/api/users/me", headers=_bearer(ghost))
        assert resp.status_code == 401


class TestAccountRoutes:
    def test_register_returns_usable_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.post("/api/account/register", json={"username": "Alice", "password": "pa55word"})
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["username"] == "alice"
        assert len(data["token"].split(".")) == 3
        assert resp.headers["cache-control"] == "no-store"

        me = client.get("/api/users/me", headers=_bearer(data["token"]))
        assert me.status_code == 200
        assert me.json()["username"] == "alice"

    def test_register_duplicate_is_conflict(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        body = {"username": "dupe", "password": "pa55word"}
        assert client.post("/api/account/register", json=body).status_code == 201
        resp = client.post("/api/account/register", json={"username": "DUPE", "password": "other"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "username_taken"

    def test_register_invalid_body(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.post("/api/account/register", json={"username": "has space", "password": "pa55word"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_password_whitespace_survives_register_and_login(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.post("/api/account/register", json={"username": "  spacey ", "password": " secret1 "})
        assert resp.status_code == 201, resp.text
        assert resp.json()["username"] == "spacey"

        ok = client.post("/api/account/login", json={"username": "spacey", "password": " secret1 "})
        assert ok.status_code == 200
        trimmed = client.post("/api/account/login", json={"username": "spacey", "password": "secret1"})
        assert trimmed.status_code == 401

    def test_register_password_over_72_bytes_rejected(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        # 40 characters, 80 bytes in UTF-8.
        resp = client.post("/api/account/register", json={"username": "accented", "password": "é" * 40})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_register_password_of_exactly_72_bytes_accepted(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        password = "é" * 36
        resp = client.post("/api/account/register", json={"username": "accented72", "password": password})
        assert resp.status_code == 201, resp.text
        login = client.post("/api/account/login", json={"username": "accented72", "password": password})
        assert login.status_code == 200

    def test_register_reserved_username_rejected(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        for name in ("me", "ME"):
            resp = client.post("/api/account/register", json={"username": name, "password": "pa55word"})
            assert resp.status_code == 422
            assert resp.json()["error"]["code"] == "validation_error"

    def test_login_valid_credentials(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, username = api_client
        resp = client.post("/api/account/login", json={"username": username, "password": "testpass123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["username"] == username
        assert client.get("/api/users/me", headers=_bearer(data["token"])).status_code == 200

    def test_login_wrong_password(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, username = api_client
        resp = client.post("/api/account/login", json={"username": username, "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "bad_credentials"
        assert resp.headers["cache-control"] == "no-store"

    def test_login_unknown_user_same_error(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.post("/api/account/login", json={"username": "nobody", "password": "whatever"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "bad_credentials"


class TestUserRoutes:
    def test_list_is_public(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, username = api_client
        resp = client.get("/api/users")
        assert resp.status_code == 200
        data = resp.json()
        assert isinstance(data, list)
        assert username in [u["username"] for u in data]
        assert all("hashed_password" not in u for u in data)

    def test_me(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, username = api_client
        resp = client.get("/api/users/me", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["username"] == username

    def test_detail(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, username = api_client
        resp = client.get(f"/api/users/{username}", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["username"] == username

    def test_detail_not_found(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, _username = api_client
        resp = client.get("/api/users/nobody-here", headers=_bearer(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"


class TestCors:
    def test_preflight_from_spa_origin(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.options(
            "/api/users",
            headers={
                "Origin": "http://localhost:4200",
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "Authorization",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:4200"

    def test_unknown_origin_gets_no_cors_header(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _username = api_client
        resp = client.get("/api/users", headers={"Origin": "http://evil.example"})
        assert "access-control-allow-origin" not in resp.headers
