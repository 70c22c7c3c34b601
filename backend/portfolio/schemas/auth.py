"""
Photography Portfolio Backend — Auth Schemas
=============================================

What:  Request/response models for /api/auth/*.
Note:  UserResponse never carries password_hash.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255, description="Account email")
    password: str = Field(min_length=1, max_length=256, description="Account password")


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    user: UserResponse
    token: str = Field(description="Bearer token for the Authorization header")


class TokenResponse(BaseModel):
    token: str
