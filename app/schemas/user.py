"""User-related Pydantic schemas for request/response validation."""

from typing import Optional

from pydantic import Field

from .base import BaseModelSchema, BaseSchema


class UserLoginRequest(BaseSchema):
    """Schema for user login request."""

    token: str = Field(..., description="Clerk JWT token")


class UserResponse(BaseModelSchema):
    """Schema for user response data."""

    clerk_user_id: str
    email: str
    username: Optional[str]
    full_name: Optional[str] = None
    plan_name: Optional[str] = None
    is_active: bool
    messaging_enabled: bool = False


class AuthResponse(BaseSchema):
    """Schema for authentication response."""

    user: UserResponse
    message: str = "Authentication successful"
