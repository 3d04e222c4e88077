"""
Users API schemas (request/response models).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UserPayload(BaseModel):
    # Every field is optional here so a missing one reaches the service
    # and is reported as a 400 naming the field, not a generic 422.
    name: str | None = None
    lastname: str | None = None
    email: str | None = None


class UserResponse(BaseModel):
    id: int
    name: str
    lastname: str
    email: str
    created_at: datetime
    updated_at: datetime


class DeleteUserResponse(BaseModel):
    message: str
    user: UserResponse
