"""
Request Password Reset Use Case

Issues a single-use password reset token without revealing whether the
email is registered.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from config import ApplicationConfig
from libs.result import Result, Return
from src.app.services.password_security import generate_reset_token, hash_reset_token
from src.app.services.reset_rate_limiter import ResetRateLimiter
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditEvent, PasswordResetToken
from . import errors
from .dtos import RequestPasswordResetResponse

logger = logging.getLogger(__name__)


class RequestPasswordResetUseCase:
    """
    Use case for requesting password reset.

    Business Rules:
    - Email is normalized (trimmed, lowercased) before lookup
    - No email enumeration: blank, unknown and rate-limited emails get the
      same response as a successful request, with no side effects
    - At most 3 requests per user per rolling 24 hours, claimed with a
      conditional counter update so concurrent requests cannot exceed it
    - Live tokens of the user are invalidated before a new one is issued
    - Token is 32 random bytes, stored only as its SHA-256 hash
    - Token expires in 1 hour
    - The plaintext token is returned exactly once, for out-of-band delivery
    """

    def __init__(
        self,
        uow: UnitOfWork,
        rate_limiter: Optional[ResetRateLimiter] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.rate_limiter = rate_limiter or ResetRateLimiter()
        self.clock = clock
        self.token_ttl = timedelta(hours=ApplicationConfig.PASSWORD_RESET_TOKEN_EXPIRY_HOURS)

    @staticmethod
    def _generic_response() -> RequestPasswordResetResponse:
        return RequestPasswordResetResponse(success=True, message=errors.GENERIC_REQUEST_MESSAGE)

    async def execute(
        self,
        email: Optional[str],
        request_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Result[RequestPasswordResetResponse]:
        """
        Execute request password reset use case.

        Args:
            email: Email address as typed by the user
            request_ip: Caller IP, stored on the token for audit
            user_agent: Caller User-Agent, stored on the token for audit

        Returns:
            Result with the generic response (plus the plaintext token when
            one was issued), or Error(INTERNAL_ERROR) on storage failure
        """
        normalized_email = (email or "").strip().lower()
        if not normalized_email:
            logger.warning("Empty email provided for password reset")
            return Return.ok(self._generic_response())

        now = self.clock()

        try:
            async with self.uow:
                user = await self.uow.users.get_by_email(normalized_email)
                if user is None:
                    logger.info("Password reset requested for unknown email")
                    return Return.ok(self._generic_response())

                window_reset = await self.rate_limiter.reconcile_window(self.uow.users, user, now)
                if self.rate_limiter.is_limited(user, now):
                    logger.warning(f"Password reset rate limit exceeded for user {user.id}")
                    return Return.ok(self._generic_response())

                # A concurrent request may have taken the last slot since the check above
                counted = await self.uow.users.record_reset_request(
                    user.id,
                    now,
                    self.rate_limiter.window_start(now),
                    self.rate_limiter.max_requests,
                )
                if not counted:
                    logger.warning(f"Password reset rate limit exceeded for user {user.id}")
                    return Return.ok(self._generic_response())

                # At most one live token per user
                invalidated = await self.uow.password_reset_tokens.invalidate_live_by_user_id(
                    user.id, now
                )

                plain_token = generate_reset_token()
                reset_token = PasswordResetToken(
                    user_id=user.id,
                    token_hash=hash_reset_token(plain_token),
                    used=False,
                    attempts=0,
                    created_at=now,
                    expires_at=now + self.token_ttl,
                    request_ip=request_ip,
                    request_user_agent=user_agent,
                )
                await self.uow.password_reset_tokens.create(reset_token)

                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=user.id,
                        action="password_reset_requested",
                        event_metadata={
                            "token_id": str(reset_token.id),
                            "invalidated_tokens": invalidated,
                            "rate_window_reset": window_reset,
                        },
                        created_at=now,
                    )
                )

                await self.uow.commit()
                logger.info(f"Password reset token issued for user {user.id}")

                return Return.ok(
                    RequestPasswordResetResponse(
                        success=True,
                        message=errors.GENERIC_REQUEST_MESSAGE,
                        token=plain_token,
                        token_expires_in=int(self.token_ttl.total_seconds() // 60),
                        is_new_token_generated=True,
                    )
                )
        except SQLAlchemyError:
            logger.exception("Error during password reset request")
            return Return.err(errors.INTERNAL_ERROR)
