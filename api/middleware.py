"""
Global middleware: request ids and access logging for the accounts API.

Every request gets an id (the caller's ``X-Request-ID`` when it sends one)
that is echoed back in the response and stamped on the error log lines, so
a client-reported failure can be found in the server log.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def _incoming_request_id(request: Request) -> str:
    candidate = request.headers.get(REQUEST_ID_HEADER, "")
    if _VALID_REQUEST_ID.match(candidate):
        return candidate
    return uuid.uuid4().hex


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request.state.request_id = _incoming_request_id(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        if response.status_code == 401:
            logger.warning(
                "[%s] rejected unauthenticated %s %s from %s",
                request.state.request_id, request.method, request.url.path,
                request.client.host if request.client else "?",
            )
        else:
            logger.debug(
                "[%s] %s %s -> %d (%.3fs)",
                request.state.request_id, request.method, request.url.path,
                response.status_code, elapsed,
            )
        return response
