"""
Password Reset Use Case DTOs (Data Transfer Objects)

Response classes returned by the password reset use cases.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class UserInfo(BaseModel):
    """Public profile of the user whose password was reset"""

    id: UUID
    email: str
    full_name: str
    created_at: datetime


class RequestPasswordResetResponse(BaseModel):
    """
    Response for request password reset use case

    token is the plaintext reset token. It is set only when a token was
    issued and is handed out exactly once, for delivery to the user.
    """

    success: bool
    message: str
    token: Optional[str] = None
    token_expires_in: Optional[int] = None  # minutes
    is_new_token_generated: bool = False


class ValidateResetTokenResponse(BaseModel):
    """Response for validate reset token use case"""

    success: bool
    message: str
    minutes_remaining: int


class ConfirmPasswordResetResponse(BaseModel):
    """Response for confirm password reset use case"""

    success: bool
    message: str
    user: UserInfo
