"""
Tests for token signing and the token-issuance step.
"""

import time
import uuid

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy.exc import OperationalError

from api.errors import InternalError, UnauthorizedError
from auth import jwt
from auth.tokens import TOKEN_ISSUE_FAILED, generate_access_and_refresh_tokens


class TestTokenSigning:
    def test_access_token_round_trip_claims(self):
        token = jwt.create_access_token("u-1", email="a@x.io", user_name="alice", full_name="Alice")
        payload = jwt.decode_token(token, jwt.ACCESS)
        assert payload["sub"] == "u-1"
        assert payload["type"] == "access"
        assert payload["userName"] == "alice"
        assert payload["fullName"] == "Alice"
        assert payload["exp"] > payload["iat"]

    def test_refresh_token_lives_longer(self):
        access = jwt.decode_token(jwt.create_access_token("u-1"), jwt.ACCESS)
        refresh = jwt.decode_token(jwt.create_refresh_token("u-1"), jwt.REFRESH)
        assert refresh["exp"] > access["exp"]
        assert "email" not in refresh

    def test_tokens_carry_no_base64_padding(self):
        for user_id in ("u", "u-1", "u-12", "u-123"):
            for token in (jwt.create_access_token(user_id), jwt.create_refresh_token(user_id)):
                assert "=" not in token
                assert '"' not in token

    def test_unpadded_payload_still_decodes(self):
        for user_id in ("u", "u-1", "u-12", "u-123"):
            token = jwt.create_refresh_token(user_id)
            assert jwt.decode_token(token, jwt.REFRESH)["sub"] == user_id

    def test_tokens_are_unique(self):
        assert jwt.create_refresh_token("u-1") != jwt.create_refresh_token("u-1")

    def test_type_confusion_rejected(self):
        refresh = jwt.create_refresh_token("u-1")
        with pytest.raises(ValueError):
            jwt.decode_token(refresh, jwt.ACCESS)

    def test_tampered_signature(self):
        token = jwt.create_access_token("u-1")
        raw, sig = token.split(".")
        with pytest.raises(ValueError, match="bad signature"):
            jwt.decode_token(raw + "." + ("0" * len(sig)), jwt.ACCESS)

    def test_expired_token(self):
        with patch("auth.jwt.time.time", return_value=time.time() - 10 * 86400 * 2):
            token = jwt.create_access_token("u-1")
        with pytest.raises(ValueError, match="expired"):
            jwt.decode_token(token, jwt.ACCESS)

    @pytest.mark.parametrize("garbage", ["", "no-dot", "!!!.abc", "e30.abc", "e30=.éé", "é.abc"])
    def test_verify_token_raises_unauthorized(self, garbage):
        with pytest.raises(UnauthorizedError) as exc_info:
            jwt.verify_token(garbage)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid access token"


def _user():
    user = MagicMock()
    user.generate_access_token.return_value = "access-abc"
    user.generate_refresh_token.return_value = "refresh-xyz"
    return user


class TestTokenIssuance:
    @pytest.mark.asyncio
    async def test_issues_and_persists_pair(self):
        session = AsyncMock()
        user = _user()
        with patch("auth.tokens.find_user_by_id", AsyncMock(return_value=user)), \
             patch("auth.tokens.save_refresh_token", AsyncMock()) as save:
            tokens = await generate_access_and_refresh_tokens(session, uuid.uuid4())

        assert tokens == {"accessToken": "access-abc", "refreshToken": "refresh-xyz"}
        save.assert_awaited_once_with(session, user, "refresh-xyz")

    @pytest.mark.asyncio
    async def test_missing_user_is_generic_internal_error(self):
        with patch("auth.tokens.find_user_by_id", AsyncMock(return_value=None)):
            with pytest.raises(InternalError) as exc_info:
                await generate_access_and_refresh_tokens(AsyncMock(), uuid.uuid4())

        err = exc_info.value
        assert err.status_code == 500
        assert err.message == TOKEN_ISSUE_FAILED
        assert err.code == "USER_LOOKUP_FAILED"

    @pytest.mark.asyncio
    async def test_save_failure_is_generic_internal_error(self):
        session = AsyncMock()
        failing_save = AsyncMock(side_effect=OperationalError("UPDATE users", {}, Exception("db down")))
        with patch("auth.tokens.find_user_by_id", AsyncMock(return_value=_user())), \
             patch("auth.tokens.save_refresh_token", failing_save):
            with pytest.raises(InternalError) as exc_info:
                await generate_access_and_refresh_tokens(session, uuid.uuid4())

        assert exc_info.value.message == TOKEN_ISSUE_FAILED
        assert exc_info.value.code == "TOKEN_PERSIST_FAILED"
        assert "db down" not in exc_info.value.to_dict()["message"]
        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_generation_failure_is_generic_internal_error(self):
        user = _user()
        user.generate_refresh_token.side_effect = RuntimeError("boom")
        with patch("auth.tokens.find_user_by_id", AsyncMock(return_value=user)):
            with pytest.raises(InternalError) as exc_info:
                await generate_access_and_refresh_tokens(AsyncMock(), uuid.uuid4())
        assert exc_info.value.code == "TOKEN_GENERATION_FAILED"
