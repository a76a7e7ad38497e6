"""
Tests for the error taxonomy and the response envelopes.
"""

import logging

import pytest

from api.errors import (
    ApiError,
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    UploadError,
    ValidationError,
)
from api.responses import ApiResponse


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "cls, status",
        [
            (ValidationError, 400),
            (ConflictError, 409),
            (UploadError, 400),
            (NotFoundError, 400),
            (AuthError, 400),
            (UnauthorizedError, 401),
            (InternalError, 500),
        ],
    )
    def test_status_codes(self, cls, status):
        assert cls("x").status_code == status
        assert isinstance(cls("x"), ApiError)

    def test_error_envelope_shape(self):
        body = ValidationError("bad", ["email"]).to_dict()
        assert body == {"statusCode": 400, "message": "bad", "success": False, "errors": ["email"]}

    def test_internal_error_carries_code(self):
        body = InternalError("generic", code="TOKEN_PERSIST_FAILED").to_dict()
        assert body["code"] == "TOKEN_PERSIST_FAILED"
        assert body["message"] == "generic"


class TestApiResponse:
    def test_success_flag_follows_status(self):
        assert ApiResponse(status_code=201, data={"a": 1}).to_dict()["success"] is True
        assert ApiResponse(status_code=404).to_dict()["success"] is False

    def test_envelope_shape(self):
        body = ApiResponse(status_code=200, data={"k": "v"}, message="ok").to_dict()
        assert body == {"statusCode": 200, "data": {"k": "v"}, "message": "ok", "success": True}


class TestEnvelopeOverHttp:
    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_envelope(self, client):
        resp = await client.get("/api/v1/users/nope")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    @pytest.mark.asyncio
    async def test_malformed_json_login(self, client):
        resp = await client.post(
            "/api/v1/users/login",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Malformed JSON body"


class TestRequestContext:
    @pytest.mark.asyncio
    async def test_request_id_generated_and_echoed(self, client):
        resp = await client.get("/")
        assert len(resp.headers["X-Request-ID"]) == 32
        assert "X-Process-Time" in resp.headers

    @pytest.mark.asyncio
    async def test_caller_request_id_is_kept(self, client):
        resp = await client.get("/", headers={"X-Request-ID": "trace-42"})
        assert resp.headers["X-Request-ID"] == "trace-42"

    @pytest.mark.asyncio
    async def test_unsafe_caller_request_id_is_replaced(self, client):
        resp = await client.get("/", headers={"X-Request-ID": "bad id; drop"})
        assert resp.headers["X-Request-ID"] != "bad id; drop"

    @pytest.mark.asyncio
    async def test_rejection_log_carries_request_id(self, client, caplog):
        caplog.set_level(logging.INFO, logger="api.errors")
        resp = await client.post(
            "/api/v1/users/login", json={}, headers={"X-Request-ID": "req-login-1"}
        )
        assert resp.status_code == 400
        assert resp.headers["X-Request-ID"] == "req-login-1"
        assert any(
            "[req-login-1]" in record.getMessage() and "username is required" in record.getMessage()
            for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_unauthenticated_request_is_logged(self, client, caplog):
        caplog.set_level(logging.WARNING, logger="api.middleware")
        resp = await client.get(
            "/api/v1/users/current-user", headers={"X-Request-ID": "req-anon-1"}
        )
        assert resp.status_code == 401
        assert any("[req-anon-1] rejected unauthenticated" in r.getMessage() for r in caplog.records)
