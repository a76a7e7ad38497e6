"""
Avatar staging — write an incoming ``UploadFile`` to the temp directory
so the uploader can work from a local path.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import UploadFile

from api.errors import ValidationError
from config.settings import config

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 8192


def has_file(upload_file: Optional[UploadFile]) -> bool:
    return upload_file is not None and bool(upload_file.filename)


async def save_upload_file(upload_file: UploadFile) -> Path:
    """
    Save *upload_file* under ``config.upload_temp_dir`` and return its path.

    Raises ``ValidationError`` for a disallowed extension or an oversize file.
    """
    suffix = Path(upload_file.filename or "").suffix.lower()
    if suffix not in config.allowed_avatar_formats:
        raise ValidationError(
            f"avatar format '{suffix or '?'}' is not supported",
            list(config.allowed_avatar_formats),
        )

    temp_dir = Path(config.upload_temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    target = temp_dir / f"{uuid.uuid4().hex}{suffix}"
    max_bytes = config.max_avatar_size_mb * 1024 * 1024

    total = 0
    staged = False
    try:
        async with aiofiles.open(target, "wb") as f:
            while True:
                chunk = await upload_file.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if total > max_bytes:
                    raise ValidationError(
                        f"avatar file too large. Maximum size: {config.max_avatar_size_mb}MB"
                    )
                await f.write(chunk)
        staged = True
    finally:
        if not staged:
            target.unlink(missing_ok=True)

    logger.debug("Staged avatar %s (%d bytes) at %s", upload_file.filename, total, target)
    return target
