"""
Validate Reset Token Use Case

Pre-check of a reset token, used before showing the new-password form.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from config import ApplicationConfig
from libs.result import Result, Return
from src.app.services.password_security import hash_reset_token
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, PasswordResetToken
from . import errors
from .dtos import ValidateResetTokenResponse

logger = logging.getLogger(__name__)


class ValidateResetTokenUseCase:
    """
    Use case for validating a password reset token.

    Business Rules:
    - Token is looked up by its SHA-256 hash
    - Used and expired tokens are rejected
    - Every successful validation counts as an attempt (conditional
      increment, so the cap holds under concurrency); once a token has
      5 attempts it is burned (marked used) on the next check, so merely
      checking a token 5 times consumes it
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self.clock = clock
        self.max_attempts = ApplicationConfig.PASSWORD_RESET_MAX_ATTEMPTS

    async def _lock_out(self, reset_token: PasswordResetToken, now: datetime) -> Result:
        """Burn a token that ran out of attempts and commit the lockout"""
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

    async def execute(self, token: Optional[str]) -> Result[ValidateResetTokenResponse]:
        """
        Execute validate reset token use case.

        Args:
            token: Plaintext reset token

        Returns:
            Result with minutes of validity left, or Error

        Errors:
            - TOKEN_REQUIRED: Blank token
            - INVALID_TOKEN: No token with this hash
            - TOKEN_ALREADY_USED: Token was used or invalidated
            - TOKEN_EXPIRED: Token is past its expiry
            - TOO_MANY_ATTEMPTS: Attempt limit reached, token is now burned
            - INTERNAL_ERROR: Storage failure
        """
        if not token or not token.strip():
            logger.warning("Empty token provided for validation")
            return Return.err(errors.TOKEN_REQUIRED)

        now = self.clock()

        try:
            async with self.uow:
                reset_token = await self.uow.password_reset_tokens.get_by_token_hash(
                    hash_reset_token(token)
                )

                if reset_token is None:
                    logger.warning("Invalid reset token provided for validation")
                    return Return.err(errors.INVALID_TOKEN)

                if reset_token.used:
                    logger.warning(f"Attempt to reuse reset token {reset_token.id}")
                    return Return.err(errors.TOKEN_ALREADY_USED)

                if reset_token.is_expired(now):
                    logger.warning(f"Expired reset token {reset_token.id} provided for validation")
                    return Return.err(errors.TOKEN_EXPIRED)

                if reset_token.attempts >= self.max_attempts:
                    return await self._lock_out(reset_token, now)

                # Conditional increment: concurrent checks cannot go past the limit
                counted = await self.uow.password_reset_tokens.record_attempt(
                    reset_token.id, now, self.max_attempts
                )
                if not counted:
                    return await self._lock_out(reset_token, now)

                minutes_remaining = int((reset_token.expires_at - now).total_seconds() // 60)

                await self.uow.commit()

                return Return.ok(
                    ValidateResetTokenResponse(
                        success=True,
                        message="Token is valid",
                        minutes_remaining=minutes_remaining,
                    )
                )
        except SQLAlchemyError:
            logger.exception("Error validating reset token")
            return Return.err(errors.INTERNAL_ERROR)
