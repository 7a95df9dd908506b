"""
Password reset error catalogue.

Codes are stable and used by the API layer for status mapping; messages
are safe to show to end users.
"""

from libs.result import Error

GENERIC_REQUEST_MESSAGE = "If the email exists in our system, a password reset link will be sent"

TOKEN_REQUIRED = Error("TOKEN_REQUIRED", "Reset token is required")
PASSWORD_REQUIRED = Error("PASSWORD_REQUIRED", "New password is required")
PASSWORD_MISMATCH = Error("PASSWORD_MISMATCH", "Passwords do not match")
PASSWORD_TOO_LONG = Error("PASSWORD_TOO_LONG", "Password must be at most 72 bytes long")

INVALID_TOKEN = Error("INVALID_TOKEN", "Invalid reset token")
TOKEN_ALREADY_USED = Error(
    "TOKEN_ALREADY_USED", "This reset link has already been used. Please request a new one."
)
TOKEN_EXPIRED = Error("TOKEN_EXPIRED", "This reset link has expired. Please request a new one.")
TOO_MANY_ATTEMPTS = Error("TOO_MANY_ATTEMPTS", "Too many attempts. Please request a new reset link.")

INTERNAL_ERROR = Error("INTERNAL_ERROR", "An error occurred while processing your request")


def password_too_short(min_length: int) -> Error:
    return Error("PASSWORD_TOO_SHORT", f"Password must be at least {min_length} characters long")
