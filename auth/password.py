"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

import bcrypt

from config.settings import config

# bcrypt only reads the first 72 bytes; newer releases reject longer input.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (auto-salted, work factor from config)."""
    return bcrypt.hashpw(
        password.encode()[:_BCRYPT_MAX_BYTES],
        bcrypt.gensalt(rounds=config.bcrypt_rounds),
    ).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    try:
        return bcrypt.checkpw(
            password.encode()[:_BCRYPT_MAX_BYTES], password_hash.encode()
        )
    except (ValueError, TypeError):
        return False
