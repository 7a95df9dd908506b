"""
Confirm Password Reset Use Case

Sets a new password using a reset token. The token is consumed and the
password replaced in one transaction.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from config import ApplicationConfig
from libs.result import Result, Return
from src.app.services.password_security import hash_password, hash_reset_token
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, PasswordResetToken
from . import errors
from .dtos import ConfirmPasswordResetResponse, UserInfo

logger = logging.getLogger(__name__)

BCRYPT_MAX_PASSWORD_BYTES = 72


class ConfirmPasswordResetUseCase:
    """
    Use case for confirming password reset.

    Business Rules:
    - Input is validated before any store access: token and password are
      required, password and confirmation must match, minimum 6 characters
    - Token is validated by hashing and comparing with stored hash
    - Token must not be used, expired or past the attempt limit
    - The token is claimed with a conditional update (used=False -> True),
      so concurrent confirmations with one token succeed at most once
    - Password is hashed with bcrypt
    - The user's reset rate-limit counters are cleared
    - Token claim, password change and counter reset commit together
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self.clock = clock
        self.max_attempts = ApplicationConfig.PASSWORD_RESET_MAX_ATTEMPTS
        self.min_password_length = ApplicationConfig.PASSWORD_MIN_LENGTH

    def _validate_input(
        self, token: Optional[str], new_password: Optional[str], confirm_password: Optional[str]
    ) -> Result[None]:
        if not token or not token.strip():
            return Return.err(errors.TOKEN_REQUIRED)

        if not new_password or not new_password.strip():
            return Return.err(errors.PASSWORD_REQUIRED)

        if new_password != confirm_password:
            return Return.err(errors.PASSWORD_MISMATCH)

        if len(new_password) < self.min_password_length:
            return Return.err(errors.password_too_short(self.min_password_length))

        if len(new_password.encode()) > BCRYPT_MAX_PASSWORD_BYTES:
            return Return.err(errors.PASSWORD_TOO_LONG)

        return Return.ok(None)

    async def _lock_out(self, reset_token: PasswordResetToken, now: datetime) -> Result:
        await self.uow.password_reset_tokens.mark_used(reset_token.id, now)
        await self.uow.audit_events.create(
            AuditEvent(
                user_id=reset_token.user_id,
                action="password_reset_token_locked",
                event_metadata={
                    "token_id": str(reset_token.id),
                    "max_attempts": self.max_attempts,
                },
                created_at=now,
            )
        )
        await self.uow.commit()
        logger.warning(f"Too many attempts on reset token {reset_token.id}, token burned")
        return Return.err(errors.TOO_MANY_ATTEMPTS)

    async def execute(
        self,
        token: Optional[str],
        new_password: Optional[str],
        confirm_password: Optional[str],
    ) -> Result[ConfirmPasswordResetResponse]:
        """
        Execute confirm password reset use case.

        Args:
            token: Password reset token (plain text from email)
            new_password: New password to set
            confirm_password: Repetition of the new password

        Returns:
            Result with the updated user's public profile, or Error

        Errors:
            - TOKEN_REQUIRED, PASSWORD_REQUIRED: Missing input
            - PASSWORD_MISMATCH: Confirmation differs
            - PASSWORD_TOO_SHORT, PASSWORD_TOO_LONG: Length outside bounds
            - INVALID_TOKEN: Token not found or invalid
            - TOKEN_ALREADY_USED: Token has already been used
            - TOKEN_EXPIRED: Token has expired
            - TOO_MANY_ATTEMPTS: Attempt limit reached, token is now burned
            - INTERNAL_ERROR: Storage failure, nothing was changed
        """
        validation = self._validate_input(token, new_password, confirm_password)
        if validation.is_err():
            return Return.err(validation.error)

        now = self.clock()

        try:
            async with self.uow:
                reset_token = await self.uow.password_reset_tokens.get_by_token_hash(
                    hash_reset_token(token)
                )

                if reset_token is None:
                    logger.warning("Invalid reset token provided for password reset")
                    return Return.err(errors.INVALID_TOKEN)

                if reset_token.used:
                    logger.warning(f"Attempt to reuse reset token {reset_token.id}")
                    return Return.err(errors.TOKEN_ALREADY_USED)

                if reset_token.is_expired(now):
                    logger.warning(f"Expired reset token {reset_token.id} used for password reset")
                    return Return.err(errors.TOKEN_EXPIRED)

                if reset_token.attempts >= self.max_attempts:
                    return await self._lock_out(reset_token, now)

                counted = await self.uow.password_reset_tokens.record_attempt(
                    reset_token.id, now, self.max_attempts
                )
                if not counted:
                    return await self._lock_out(reset_token, now)

                user = await self.uow.users.get_by_id(reset_token.user_id)
                if user is None:
                    # Foreign key makes this unreachable in practice
                    logger.error(f"Reset token {reset_token.id} points to a missing user")
                    return Return.err(errors.INVALID_TOKEN)

                profile = UserInfo(
                    id=user.id,
                    email=user.email,
                    full_name=user.full_name,
                    created_at=user.created_at,
                )

                # Single-use claim; losing the race means another request consumed it
                claimed = await self.uow.password_reset_tokens.mark_used(reset_token.id, now)
                if not claimed:
                    logger.warning(f"Reset token {reset_token.id} consumed by a concurrent request")
                    return Return.err(errors.TOKEN_ALREADY_USED)

                await self.uow.users.update_password_hash(profile.id, hash_password(new_password), now)

                # Do not count the successful request against the user
                await self.uow.users.update_rate_limit_counters(profile.id, 0, None)

                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=profile.id,
                        action="password_reset_completed",
                        event_metadata={"token_id": str(reset_token.id)},
                        created_at=now,
                    )
                )

                await self.uow.commit()
                logger.info(f"Password reset successfully for user {profile.id}")

                return Return.ok(
                    ConfirmPasswordResetResponse(
                        success=True,
                        message="Password reset successfully",
                        user=profile,
                    )
                )
        except SQLAlchemyError:
            logger.exception("Error during password reset")
            return Return.err(errors.INTERNAL_ERROR)
