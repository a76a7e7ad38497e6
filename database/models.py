"""
SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_name = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(128), nullable=False)
    avatar = Column(Text, nullable=False)
    password_hash = Column(String(255), nullable=False)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def is_password_correct(self, password: str | None) -> bool:
        from auth.password import verify_password

        if not password:
            return False
        return verify_password(password, self.password_hash)

    def generate_access_token(self) -> str:
        from auth.jwt import create_access_token

        return create_access_token(
            str(self.id),
            email=self.email,
            user_name=self.user_name,
            full_name=self.full_name,
        )

    def generate_refresh_token(self) -> str:
        from auth.jwt import create_refresh_token

        return create_refresh_token(str(self.id))

    def __repr__(self) -> str:
        return f"<User {self.user_name} ({self.id})>"
