"""
Database helper functions — the user store used by the auth routes.

All lookups take an explicit ``AsyncSession`` so a request runs on the
single session handed out by ``get_db_session``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User

logger = logging.getLogger(__name__)


class DuplicateUserError(Exception):
    """Raised by ``create_user`` when a unique constraint rejects the insert."""


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


def normalise_user_name(user_name: str) -> str:
    return user_name.strip().lower()


def normalise_email(email: str) -> str:
    return email.strip().lower()


async def find_user_by_id(
    session: AsyncSession, user_id: str | uuid.UUID
) -> Optional[User]:
    try:
        uid = _to_uuid(user_id)
    except ValueError:
        return None
    return await session.get(User, uid, populate_existing=True)


async def find_user_by_username(session: AsyncSession, user_name: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.user_name == normalise_user_name(user_name))
    )
    return result.scalar_one_or_none()


async def find_user_by_email_or_username(
    session: AsyncSession, email: str, user_name: str
) -> Optional[User]:
    """Return the first user whose email OR user name matches."""
    result = await session.execute(
        select(User)
        .where(
            or_(
                User.email == normalise_email(email),
                User.user_name == normalise_user_name(user_name),
            )
        )
        .limit(1)
    )
    return result.scalars().first()


async def identity_collisions(
    session: AsyncSession, email: str, user_name: str
) -> Tuple[bool, bool]:
    """``(email_taken, user_name_taken)``, each checked against every user."""
    email_taken = await session.scalar(
        select(exists().where(User.email == normalise_email(email)))
    )
    name_taken = await session.scalar(
        select(exists().where(User.user_name == normalise_user_name(user_name)))
    )
    return bool(email_taken), bool(name_taken)


async def create_user(
    session: AsyncSession,
    *,
    user_name: str,
    email: str,
    full_name: str,
    password_hash: str,
    avatar: str,
) -> User:
    """
    Insert a new ``User`` row and commit it.

    The unique constraints on ``user_name`` and ``email`` are the source of
    truth; a violation surfaces as ``DuplicateUserError``.
    """
    user = User(
        id=uuid.uuid4(),
        user_name=normalise_user_name(user_name),
        email=normalise_email(email),
        full_name=full_name.strip(),
        password_hash=password_hash,
        avatar=avatar,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info("Insert for %s rejected by unique constraint", user.user_name)
        raise DuplicateUserError(str(exc.orig)) from exc
    return user


async def save_refresh_token(
    session: AsyncSession, user: User, refresh_token: Optional[str]
) -> None:
    """Write only the refresh-token column and commit."""
    from auth.encryption import encrypt_token

    user.refresh_token = encrypt_token(refresh_token) if refresh_token else None
    await session.commit()


async def clear_refresh_token(session: AsyncSession, user: User) -> None:
    await save_refresh_token(session, user, None)
