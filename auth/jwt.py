"""
JWT-style token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256.
Access and refresh tokens use separate secrets
(env vars: ``ACCESS_TOKEN_SECRET`` / ``REFRESH_TOKEN_SECRET``) and carry
a ``type`` claim so one can never be replayed as the other.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Any, Dict

from api.errors import UnauthorizedError
from config.settings import config

ACCESS = "access"
REFRESH = "refresh"


def _secret_for(token_type: str) -> bytes:
    if token_type == ACCESS:
        return config.access_token_secret.encode()
    return config.refresh_token_secret.encode()


def _sign(raw: bytes, token_type: str) -> str:
    return hmac.new(_secret_for(token_type), raw, hashlib.sha256).hexdigest()


def _encode(payload: Dict[str, Any], token_type: str) -> str:
    raw = json.dumps(payload, separators=(",", ":")).encode()
    # Unpadded so the value survives as a cookie without quoting.
    return urlsafe_b64encode(raw).rstrip(b"=").decode() + "." + _sign(raw, token_type)


def create_access_token(user_id: str, **claims: Any) -> str:
    """Short-lived token carrying the user's identity claims."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "type": ACCESS,
        "iat": now,
        "exp": now + config.access_token_expiry_seconds,
        "jti": secrets.token_hex(8),
    }
    if "user_name" in claims:
        claims["userName"] = claims.pop("user_name")
    if "full_name" in claims:
        claims["fullName"] = claims.pop("full_name")
    payload.update(claims)
    return _encode(payload, ACCESS)


def create_refresh_token(user_id: str) -> str:
    """Long-lived token carrying only the user id."""
    now = int(time.time())
    payload = {
        "sub": user_id,
        "type": REFRESH,
        "iat": now,
        "exp": now + config.refresh_token_expiry_seconds,
        "jti": secrets.token_hex(8),
    }
    return _encode(payload, REFRESH)


def decode_token(token: str, token_type: str = ACCESS) -> Dict[str, Any]:
    """
    Verify *token* and return its payload.

    Raises ``ValueError`` describing why the token was rejected.
    """
    parts = token.split(".", 1)
    if len(parts) != 2:
        raise ValueError("bad format")
    try:
        encoded = parts[0] + "=" * (-len(parts[0]) % 4)
        raw = urlsafe_b64decode(encoded.encode())
    except (ValueError, TypeError) as exc:
        raise ValueError("bad encoding") from exc
    if not hmac.compare_digest(parts[1].encode(), _sign(raw, token_type).encode()):
        raise ValueError("bad signature")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("bad payload")
    if payload.get("type") != token_type:
        raise ValueError("wrong token type")
    if payload.get("exp", 0) < time.time():
        raise ValueError("token expired")
    if not payload.get("sub"):
        raise ValueError("missing subject")
    return payload


def verify_token(token: str, token_type: str = ACCESS) -> str:
    """
    Verify token and return the user id (``sub`` claim).

    Raises ``UnauthorizedError(401)`` on invalid or expired tokens.
    """
    try:
        return decode_token(token, token_type)["sub"]
    except ValueError as exc:
        raise UnauthorizedError(f"Invalid {token_type} token", [str(exc)])
