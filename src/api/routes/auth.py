from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from config import ApplicationConfig
from src.api.error import ClientError, ServerError
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.password_reset import (
    RequestPasswordResetUseCase,
    ValidateResetTokenUseCase,
    ConfirmPasswordResetUseCase,
    RequestPasswordResetResponse,
    ValidateResetTokenResponse,
    ConfirmPasswordResetResponse,
)
from src.depends import get_clock, get_unit_of_work

router = APIRouter(prefix="/auth", tags=["Authentication"])

TOKEN_ERROR_STATUS = {
    "TOKEN_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_400_BAD_REQUEST,
    "TOKEN_EXPIRED": status.HTTP_410_GONE,
    "TOKEN_ALREADY_USED": status.HTTP_409_CONFLICT,
    "TOO_MANY_ATTEMPTS": status.HTTP_429_TOO_MANY_REQUESTS,
}

PASSWORD_ERROR_STATUS = {
    "PASSWORD_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "PASSWORD_MISMATCH": status.HTTP_400_BAD_REQUEST,
    "PASSWORD_TOO_SHORT": status.HTTP_400_BAD_REQUEST,
    "PASSWORD_TOO_LONG": status.HTTP_400_BAD_REQUEST,
}


class RequestPasswordResetRequest(BaseModel):
    """
    Request password reset HTTP request payload

    Email is deliberately not validated or length-bounded here: malformed,
    blank and oversized values get the same generic answer as every other email.
    """

    email: str = Field("", description="User email address")


@router.post(
    "/request-password-reset",
    status_code=status.HTTP_200_OK,
    response_model=RequestPasswordResetResponse,
    response_model_exclude_none=True,
)
async def request_password_reset(
    request: RequestPasswordResetRequest,
    http_request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Request Password Reset

    Generates a single-use reset token for the account behind the email.
    Token expires in 1 hour and is stored as a SHA-256 hash.

    Security:
        - No email enumeration (same response for valid/invalid/rate-limited emails)
        - At most 3 requests per account per 24 hours
        - Token is cryptographically secure (32 bytes)
        - Plaintext token is only included when EXPOSE_RESET_TOKEN is enabled

    Returns:
        - 200 OK: Always returns success (no enumeration)
        - 500 Internal Server Error: Server error
    """
    use_case = RequestPasswordResetUseCase(uow, clock=clock)
    result = await use_case.execute(
        request.email,
        request_ip=http_request.client.host if http_request.client else None,
        user_agent=http_request.headers.get("user-agent"),
    )

    # Handle errors
    if result.is_err():
        raise ServerError(result.error)

    response = result.value
    if not ApplicationConfig.EXPOSE_RESET_TOKEN:
        # NOTE: the token goes to the user by e-mail; the HTTP caller only
        # ever sees the generic answer
        return RequestPasswordResetResponse(success=response.success, message=response.message)

    return response


class ValidateResetTokenRequest(BaseModel):
    """Validate reset token HTTP request payload"""

    token: Optional[str] = Field(None, description="Password reset token from email")


@router.post(
    "/validate-reset-token",
    status_code=status.HTTP_200_OK,
    response_model=ValidateResetTokenResponse,
)
async def validate_reset_token(
    request: ValidateResetTokenRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Validate Reset Token

    Checks a reset token before the new-password form is shown.
    Each successful check counts as an attempt; the 6th check burns the token.

    Raises:
        - 400 Bad Request: Missing or invalid token
        - 409 Conflict: Token already used
        - 410 Gone: Expired token
        - 429 Too Many Requests: Attempt limit reached
        - 500 Internal Server Error: Server error
    """
    use_case = ValidateResetTokenUseCase(uow, clock=clock)
    result = await use_case.execute(request.token)

    # Handle errors
    if result.is_err():
        error = result.error
        if error.code in TOKEN_ERROR_STATUS:
            raise ClientError(error, status_code=TOKEN_ERROR_STATUS[error.code])
        raise ServerError(error)

    return result.value


class ConfirmPasswordResetRequest(BaseModel):
    """
    Confirm password reset HTTP request payload

    Length and match rules are enforced by the use case so that every
    rejection comes back in the same error format.
    """

    token: Optional[str] = Field(None, description="Password reset token from email")
    new_password: Optional[str] = Field(None, description="New password (min 6 chars)")
    confirm_password: Optional[str] = Field(None, description="New password, repeated")


@router.post(
    "/confirm-password-reset",
    status_code=status.HTTP_200_OK,
    response_model=ConfirmPasswordResetResponse,
)
async def confirm_password_reset(
    request: ConfirmPasswordResetRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Confirm Password Reset

    Validates reset token and updates user password.

    Security:
        - Token must not be expired (1 hour window)
        - Token must not be already used
        - Token is claimed atomically, so it can be redeemed only once
        - Rate-limit counters of the user are cleared

    Raises:
        - 400 Bad Request: Invalid token or password validation failed
        - 409 Conflict: Token already used
        - 410 Gone: Expired token
        - 429 Too Many Requests: Attempt limit reached
        - 500 Internal Server Error: Server error
    """
    use_case = ConfirmPasswordResetUseCase(uow, clock=clock)
    result = await use_case.execute(
        request.token, request.new_password, request.confirm_password
    )

    # Handle errors
    if result.is_err():
        error = result.error
        if error.code in TOKEN_ERROR_STATUS:
            raise ClientError(error, status_code=TOKEN_ERROR_STATUS[error.code])
        elif error.code in PASSWORD_ERROR_STATUS:
            raise ClientError(error, status_code=PASSWORD_ERROR_STATUS[error.code])
        raise ServerError(error)

    # Return Pydantic model directly (FastAPI auto-serializes)
    return result.value
