"""
Access / refresh token issuance for an authenticated user.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import InternalError
from database.helpers import find_user_by_id, save_refresh_token

logger = logging.getLogger(__name__)

TOKEN_ISSUE_FAILED = "something went wrong while generating access and refresh tokens"


async def generate_access_and_refresh_tokens(
    session: AsyncSession, user_id: str | uuid.UUID
) -> Dict[str, str]:
    """
    Re-fetch the user, mint a token pair, persist the refresh token.

    Every failure collapses into ``InternalError`` with a generic message;
    ``code`` tells the log which step broke.
    """
    try:
        user = await find_user_by_id(session, user_id)
    except SQLAlchemyError as exc:
        logger.error("Token issue: lookup of user %s failed: %s", user_id, exc)
        raise InternalError(TOKEN_ISSUE_FAILED, code="USER_LOOKUP_FAILED") from exc
    if user is None:
        logger.error("Token issue: user %s not found", user_id)
        raise InternalError(TOKEN_ISSUE_FAILED, code="USER_LOOKUP_FAILED")

    try:
        access_token = user.generate_access_token()
        refresh_token = user.generate_refresh_token()
    except Exception as exc:
        logger.exception("Token issue: generation failed for user %s", user_id)
        raise InternalError(TOKEN_ISSUE_FAILED, code="TOKEN_GENERATION_FAILED") from exc

    try:
        await save_refresh_token(session, user, refresh_token)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Token issue: saving refresh token for %s failed: %s", user_id, exc)
        raise InternalError(TOKEN_ISSUE_FAILED, code="TOKEN_PERSIST_FAILED") from exc

    return {"accessToken": access_token, "refreshToken": refresh_token}
