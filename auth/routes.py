"""
Auth API routes — register, login, logout, refresh, current user.

Route prefix: /api/v1/users
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.errors import (
    AuthError,
    ConflictError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    UploadError,
    ValidationError,
)
from api.responses import ApiResponse, UserPublic
from auth.dependencies import db_session, get_current_user
from auth.encryption import tokens_match
from auth.jwt import REFRESH, verify_token
from auth.password import hash_password
from auth.tokens import generate_access_and_refresh_tokens
from config.settings import config
from connectors.cloudinary import upload_on_cloudinary
from database.helpers import (
    DuplicateUserError,
    clear_refresh_token,
    create_user,
    find_user_by_email_or_username,
    find_user_by_id,
    find_user_by_username,
    identity_collisions,
)
from database.models import User
from utils.file_handler import has_file, save_upload_file

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

_REQUIRED_REGISTER_FIELDS = ("userName", "email", "fullName", "password")


# ── Helpers ────────────────────────────────────────────────────────────


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _missing_fields(fields: Dict[str, Any]) -> List[str]:
    return [name for name in _REQUIRED_REGISTER_FIELDS if not _text(fields.get(name))]


async def _conflict_for(session: AsyncSession, email: str, user_name: str) -> ConflictError:
    # The colliding email and user name may belong to two different users.
    email_taken, name_taken = await identity_collisions(session, email, user_name)
    if email_taken and name_taken:
        return ConflictError("userName and email already exists", ["userName", "email"])
    if email_taken:
        return ConflictError("email is already used", ["email"])
    if name_taken:
        return ConflictError("userName must be unique", ["userName"])
    return ConflictError("userName or email already exists")


async def _read_payload(request: Request) -> Dict[str, Any]:
    """Body fields from either a JSON or a form-encoded request."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Malformed JSON body")
        return body if isinstance(body, dict) else {}
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        return dict(form)
    return {}


def _set_token_cookies(response: JSONResponse, tokens: Dict[str, str]) -> JSONResponse:
    options = config.cookie_options()
    response.set_cookie(
        "accessToken", tokens["accessToken"],
        max_age=config.access_token_expiry_seconds, **options,
    )
    response.set_cookie(
        "refreshToken", tokens["refreshToken"],
        max_age=config.refresh_token_expiry_seconds, **options,
    )
    return response


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_name: Optional[str] = Form(None, alias="userName"),
    email: Optional[str] = Form(None),
    full_name: Optional[str] = Form(None, alias="fullName"),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    session: AsyncSession = Depends(db_session),
) -> JSONResponse:
    """Register a new user with an avatar image."""
    missing = _missing_fields(
        {"userName": user_name, "email": email, "fullName": full_name, "password": password}
    )
    if missing:
        raise ValidationError(
            f"The following fields are required: {', '.join(missing)}", missing
        )

    existing = await find_user_by_email_or_username(session, email, user_name)
    if existing is not None:
        raise await _conflict_for(session, email, user_name)

    if not has_file(avatar):
        raise ValidationError("avatar file is required", ["avatar"])

    local_path = await save_upload_file(avatar)
    uploaded = await upload_on_cloudinary(local_path)
    if not uploaded:
        raise UploadError("Failed to upload avatar on cloudinary")

    try:
        user = await create_user(
            session,
            user_name=user_name,
            email=email,
            full_name=full_name,
            password_hash=hash_password(password),
            avatar=uploaded.url,
        )
    except DuplicateUserError:
        # Lost a race with a concurrent registration for the same identity.
        existing = await find_user_by_email_or_username(session, email, user_name)
        if existing is not None:
            raise await _conflict_for(session, email, user_name)
        raise ConflictError("userName or email already exists")

    created = await find_user_by_id(session, user.id)
    if created is None:
        logger.error("User %s missing right after insert", user.id)
        raise InternalError("user not created in db", code="USER_NOT_PERSISTED")

    logger.info("Registered user %s (%s)", created.user_name, created.id)
    return ApiResponse(
        status_code=status.HTTP_201_CREATED,
        data=UserPublic.model_validate(created),
        message="User registered successfully",
    ).to_response()


@router.post("/login")
async def login(
    request: Request,
    session: AsyncSession = Depends(db_session),
) -> JSONResponse:
    """Login with userName + password (JSON or form body)."""
    payload = await _read_payload(request)
    user_name = _text(payload.get("userName"))
    password = payload.get("password")
    if not user_name:
        raise ValidationError("username is required", ["userName"])

    user = await find_user_by_username(session, user_name)
    if user is None:
        raise NotFoundError("User does not exist")

    if not user.is_password_correct(password if isinstance(password, str) else None):
        raise AuthError("Password is incorrect")

    tokens = await generate_access_and_refresh_tokens(session, user.id)
    logged_in = await find_user_by_id(session, user.id)
    logger.info("Login: %s (%s)", user.user_name, user.id)

    response = ApiResponse(
        status_code=status.HTTP_200_OK,
        data={"user": UserPublic.model_validate(logged_in), **tokens},
        message="User logged In Successfully",
    ).to_response()
    return _set_token_cookies(response, tokens)


@router.post("/logout")
async def logout(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> JSONResponse:
    """Revoke the stored refresh token and clear both cookies."""
    await clear_refresh_token(session, user)
    logger.info("Logout: %s (%s)", user.user_name, user.id)

    response = ApiResponse(
        status_code=status.HTTP_200_OK, data={}, message="User logged Out"
    ).to_response()
    options = config.cookie_options()
    response.delete_cookie("accessToken", **options)
    response.delete_cookie("refreshToken", **options)
    return response


@router.post("/refresh-token")
async def refresh_access_token(
    request: Request,
    session: AsyncSession = Depends(db_session),
) -> JSONResponse:
    """Rotate the token pair using a still-valid refresh token."""
    incoming = request.cookies.get("refreshToken")
    if not incoming:
        incoming = _text((await _read_payload(request)).get("refreshToken"))
    if not incoming:
        raise UnauthorizedError("unauthorized request")

    user_id = verify_token(incoming, REFRESH)
    user = await find_user_by_id(session, user_id)
    if user is None:
        raise UnauthorizedError("Invalid refresh token")
    if not tokens_match(incoming, user.refresh_token):
        raise UnauthorizedError("Refresh token is expired or used")

    tokens = await generate_access_and_refresh_tokens(session, user.id)
    response = ApiResponse(
        status_code=status.HTTP_200_OK,
        data=tokens,
        message="Access token refreshed",
    ).to_response()
    return _set_token_cookies(response, tokens)


@router.get("/current-user")
async def current_user(user: User = Depends(get_current_user)) -> JSONResponse:
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data=UserPublic.model_validate(user),
        message="User fetched successfully",
    ).to_response()
