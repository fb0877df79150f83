"""Unit tests for the AppError hierarchy and the registered exception handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from config import AppSettings, DatabaseSettings, EndorsementAccessSettings
from errors import (
    AppError,
    AuthenticationError,
    InvalidCodeError,
    RateLimitError,
    ServiceUnavailableError,
    SessionRevokedError,
    ValidationError,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    @pytest.mark.parametrize(
        "cls, status, code",
        [
            (ValidationError, 400, "validation_error"),
            (InvalidCodeError, 400, "invalid_code"),
            (AuthenticationError, 401, "authentication_error"),
            (SessionRevokedError, 401, "session_revoked"),
            (RateLimitError, 429, "rate_limit_exceeded"),
            (ServiceUnavailableError, 503, "service_unavailable"),
        ],
        ids=["validation", "invalid_code", "auth", "revoked", "rate_limit", "unavailable"],
    )
    def test_status_and_code(self, cls, status, code):
        e = cls("msg")
        assert e.status_code == status
        assert e.error_code == code
        assert e.message == "msg"

    def test_only_revoked_clears_cookie(self):
        assert SessionRevokedError("x").clear_session_cookie is True
        assert AuthenticationError("x").clear_session_cookie is False
        assert isinstance(SessionRevokedError("x"), AuthenticationError)


class TestAppErrorToDict:
    def test_basic(self):
        e = InvalidCodeError("bad code")
        assert e.to_dict() == {
            "success": False,
            "error": "bad code",
            "errors": ["bad code"],
            "code": "invalid_code",
        }

    def test_error_list(self):
        e = ValidationError("first", errors=["first", "second"])
        assert e.to_dict()["errors"] == ["first", "second"]
        assert e.to_dict()["error"] == "first"

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            ({"details": {"min": 40}}, "details", {"min": 40}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = AppError("boom").to_dict()
        assert "field" not in d
        assert "details" not in d


class TestRateLimitHeaders:
    def test_retry_after(self):
        assert RateLimitError("slow", retry_after_seconds=42).headers() == {
            "Retry-After": "42"
        }

    def test_no_header_without_delay(self):
        assert RateLimitError("slow").headers() is None


# ---------------------------------------------------------------------------
# register_error_handlers
# ---------------------------------------------------------------------------


class _Body(BaseModel):
    value: int


@pytest.fixture
def client():
    app = FastAPI()
    app.state.settings = AppSettings(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        access=EndorsementAccessSettings(endorsement_access_secret="s", endorsement_otp_pepper="p"),
    )
    register_error_handlers(app)

    @app.get("/revoked")
    async def revoked():
        raise SessionRevokedError("gone")

    @app.get("/auth")
    async def auth():
        raise AuthenticationError("verify first")

    @app.get("/limited")
    async def limited():
        raise RateLimitError("slow down", retry_after_seconds=30)

    @app.get("/crash")
    async def crash():
        raise RuntimeError("internal detail")

    @app.post("/body")
    async def body(payload: _Body):
        return {"ok": True}

    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:
    def test_revoked_clears_cookie(self, client):
        resp = client.get("/revoked")
        assert resp.status_code == 401
        assert resp.json()["code"] == "session_revoked"
        cookie = resp.headers["set-cookie"]
        assert "endorsement_manage_session=" in cookie
        assert "Max-Age=0" in cookie

    def test_auth_error_keeps_cookie(self, client):
        resp = client.get("/auth")
        assert resp.status_code == 401
        assert "set-cookie" not in resp.headers

    def test_rate_limit_header(self, client):
        resp = client.get("/limited")
        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "30"

    def test_unhandled_is_generic(self, client):
        resp = client.get("/crash")
        assert resp.status_code == 500
        assert "internal detail" not in resp.text
        assert resp.json()["success"] is False

    def test_request_validation_is_400(self, client):
        resp = client.post("/body", json={"value": "nope"})
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Invalid request body.",
            "errors": ["Invalid request body."],
            "code": "validation_error",
        }
