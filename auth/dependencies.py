"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_current_user`` dependencies that
are used across all protected routes.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import UnauthorizedError
from database.helpers import find_user_by_id
from database.models import User
from database.session import get_db_session

_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    session: AsyncSession = Depends(db_session),
) -> User:
    """
    Resolve the access token (``accessToken`` cookie first, then the
    Bearer header) to the ``User`` it was issued for.
    """
    from auth.jwt import verify_token

    token = request.cookies.get("accessToken")
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise UnauthorizedError("Unauthorized request")

    user_id = verify_token(token)
    user = await find_user_by_id(session, user_id)
    if user is None:
        raise UnauthorizedError("Invalid access token")
    return user
