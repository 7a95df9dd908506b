"""
Password Reset Use Cases

Token issuance, validation and redemption.
"""

from .request_password_reset_use_case import RequestPasswordResetUseCase
from .validate_reset_token_use_case import ValidateResetTokenUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .dtos import (
    UserInfo,
    RequestPasswordResetResponse,
    ValidateResetTokenResponse,
    ConfirmPasswordResetResponse,
)

__all__ = [
    # Use Cases
    "RequestPasswordResetUseCase",
    "ValidateResetTokenUseCase",
    "ConfirmPasswordResetUseCase",
    # DTOs - Responses
    "RequestPasswordResetResponse",
    "ValidateResetTokenResponse",
    "ConfirmPasswordResetResponse",
    # DTOs - Nested Models
    "UserInfo",
]
