"""
Cloudinary image upload — push a local file, get back a public URL.

Uses the signed upload REST endpoint directly through ``httpx``:
``POST {upload_url}/{cloud_name}/image/upload`` with
``signature = sha1("timestamp=<ts><api_secret>")``.

The local file is always removed afterwards, uploaded or not.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import httpx

from config.settings import config

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    url: str
    public_id: str = ""
    raw: Optional[Dict[str, Any]] = None


def is_configured() -> bool:
    return bool(
        config.cloudinary_cloud_name
        and config.cloudinary_api_key
        and config.cloudinary_api_secret
    )


def _signature(params: Dict[str, Any]) -> str:
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1(f"{to_sign}{config.cloudinary_api_secret}".encode()).hexdigest()


def _endpoint() -> str:
    return f"{config.cloudinary_upload_url}/{config.cloudinary_cloud_name}/image/upload"


async def upload_on_cloudinary(local_path: str | Path | None) -> Optional[UploadResult]:
    """
    Upload *local_path* to Cloudinary.

    Returns an ``UploadResult`` on success, ``None`` on any failure
    (no path, not configured, HTTP or transport error).
    """
    if not local_path:
        return None

    path = Path(local_path)
    try:
        if not is_configured():
            logger.error("Cloudinary credentials are not configured; upload skipped")
            return None

        async with aiofiles.open(path, "rb") as f:
            content = await f.read()

        params = {"timestamp": int(time.time())}
        form = {
            **params,
            "api_key": config.cloudinary_api_key,
            "signature": _signature(params),
        }
        async with httpx.AsyncClient(timeout=config.cloudinary_timeout_seconds) as client:
            resp = await client.post(
                _endpoint(),
                data=form,
                files={"file": (path.name, content)},
            )
            resp.raise_for_status()
            body = resp.json()

        url = body.get("secure_url") or body.get("url")
        if not url:
            logger.error("Cloudinary response carried no URL: %s", body)
            return None

        logger.info("Uploaded %s to Cloudinary (%s)", path.name, body.get("public_id"))
        return UploadResult(url=url, public_id=body.get("public_id", ""), raw=body)
    except (OSError, httpx.HTTPError, ValueError) as exc:
        logger.error("Cloudinary upload of %s failed: %s", path.name, exc)
        return None
    finally:
        path.unlink(missing_ok=True)
