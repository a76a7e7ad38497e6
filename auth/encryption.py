"""
Refresh-token encryption — encrypt / decrypt the stored refresh token.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The encryption key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``).

If no key is configured, encryption is **disabled** and refresh tokens are
stored as plaintext (with a startup warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import hmac
import logging

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)

_fernet = None
_initialised = False


def _init_fernet() -> None:
    """Lazy-initialise the Fernet cipher once."""
    global _fernet, _initialised

    _initialised = True
    key = config.token_encryption_key
    if not key:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set — refresh tokens will be stored as plaintext."
        )
        _fernet = None
        return

    try:
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
        logger.info("Refresh-token encryption enabled (Fernet/AES-128-CBC)")
    except (ValueError, TypeError) as exc:
        logger.error("Failed to initialise Fernet with provided key: %s", exc)
        _fernet = None


def _cipher():
    if not _initialised:
        _init_fernet()
    return _fernet


def reset() -> None:
    """Forget the cached cipher so the next call re-reads the config."""
    global _fernet, _initialised
    _fernet = None
    _initialised = False


def encrypt_token(plaintext: str) -> str:
    """
    Encrypt a token string for database storage.

    If encryption is disabled, returns the plaintext unchanged.
    """
    cipher = _cipher()
    if cipher is None:
        return plaintext
    return cipher.encrypt(plaintext.encode()).decode()


def decrypt_token(ciphertext: str) -> str:
    """
    Decrypt a token string read from the database.

    Tokens stored before encryption was enabled are not valid Fernet
    tokens and are returned as-is.
    """
    cipher = _cipher()
    if cipher is None:
        return ciphertext
    try:
        return cipher.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        return ciphertext


def tokens_match(presented: str, stored: str | None) -> bool:
    """Constant-time check of a presented refresh token against the stored one."""
    if not stored:
        return False
    return hmac.compare_digest(presented.encode(), decrypt_token(stored).encode())


def is_encryption_enabled() -> bool:
    return _cipher() is not None
