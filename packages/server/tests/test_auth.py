"""
Tests for authentication and request middleware.

Covers:
- JWT creation and decoding
- Owner bearer auth (get_authenticated_user)
- Watcher shared-secret auth (require_watcher)
- Security headers and request id middleware
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import jwt as pyjwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.core.auth import (
    AuthenticatedUser,
    create_jwt,
    decode_jwt,
    get_authenticated_user,
    require_watcher,
)
from app.core.errors import register_exception_handlers
from app.core.middleware import SECURITY_HEADERS, RequestContextMiddleware, SecurityHeadersMiddleware


def _make_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/me")
    async def me(auth: AuthenticatedUser = Depends(get_authenticated_user)):
        return {"user_id": str(auth.user_id)}

    @app.get("/watcher", dependencies=[Depends(require_watcher)])
    async def watcher():
        return {"ok": True}

    return app


# ---------------------------------------------------------------------------
# Unit Tests: JWT
# ---------------------------------------------------------------------------


class TestJWT:
    def test_create_and_decode(self):
        uid = uuid.uuid4()
        token, jti = create_jwt(uid)
        payload = decode_jwt(token)
        assert payload["sub"] == str(uid)
        assert payload["jti"] == jti

    def test_expired_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_jwt(token)

    def test_tampered_jwt_raises(self):
        token, _ = create_jwt(uuid.uuid4())
        with pytest.raises(pyjwt.PyJWTError):
            decode_jwt(token[:-5] + "XXXXX")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


class TestOwnerAuth:
    def test_valid_token(self):
        uid = uuid.uuid4()
        token, _ = create_jwt(uid)
        resp = TestClient(_make_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == {"user_id": str(uid)}

    def test_missing_header(self):
        resp = TestClient(_make_app()).get("/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    def test_not_bearer(self):
        resp = TestClient(_make_app()).get("/me", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401

    def test_expired(self):
        token, _ = create_jwt(uuid.uuid4(), expires_delta=timedelta(seconds=-1))
        resp = TestClient(_make_app()).get("/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Session has expired"


class TestWatcherAuth:
    def test_accepts_configured_token(self, watcher_token):
        resp = TestClient(_make_app()).get(
            "/watcher", headers={"Authorization": f"Bearer {watcher_token}"}
        )
        assert resp.status_code == 200

    def test_rejects_wrong_token(self, watcher_token):
        resp = TestClient(_make_app()).get("/watcher", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_owner_jwt_is_not_a_watcher_token(self, watcher_token):
        token, _ = create_jwt(uuid.uuid4())
        resp = TestClient(_make_app()).get("/watcher", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_unconfigured_rejects_everything(self, monkeypatch):
        from app.core.config import get_settings

        monkeypatch.setenv("AISP_WATCHER_TOKEN", "")
        get_settings.cache_clear()
        try:
            resp = TestClient(_make_app()).get("/watcher", headers={"Authorization": "Bearer "})
            assert resp.status_code == 401
        finally:
            get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        resp = TestClient(app).get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestRequestContextMiddleware:
    def _app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        return app

    def test_echoes_request_id(self):
        resp = TestClient(self._app()).get("/test", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"

    def test_generates_request_id(self):
        resp = TestClient(self._app()).get("/test")
        assert len(resp.headers["X-Request-ID"]) == 32
