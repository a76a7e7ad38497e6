"""
Success envelope and public (sanitised) schemas returned by the API.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class UserPublic(BaseModel):
    """A user as the outside world sees it: no password hash, no refresh token."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    user_name: str = Field(..., serialization_alias="userName")
    email: str
    full_name: str = Field(..., serialization_alias="fullName")
    avatar: str
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")


class ApiResponse(BaseModel):
    status_code: int = Field(..., serialization_alias="statusCode")
    data: Any = None
    message: str = "Success"

    @property
    def success(self) -> bool:
        return self.status_code < 400

    def to_dict(self) -> dict:
        data = self.data
        if isinstance(data, BaseModel):
            data = data.model_dump(by_alias=True)
        elif isinstance(data, dict):
            data = {
                key: value.model_dump(by_alias=True) if isinstance(value, BaseModel) else value
                for key, value in data.items()
            }
        return {
            "statusCode": self.status_code,
            "data": jsonable_encoder(data),
            "message": self.message,
            "success": self.success,
        }

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())
