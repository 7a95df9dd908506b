"""
Per-user rate limiting of password reset requests.

The counters live on the user row: password_reset_request_count and
last_password_reset_request_at. A window is anchored at the last request;
once it is older than the window length the counters start over.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from config import ApplicationConfig
from src.app.repositories.user_repository import IUserRepository
from src.domain.entities import User

logger = logging.getLogger(__name__)


class ResetRateLimiter:
    """
    Reset request policy: at most max_requests per rolling window.

    The check is split in two steps: reconcile_window() applies the
    window expiry to the stored counters, is_limited() is a pure predicate
    over the reconciled user. is_rate_limited() runs both.
    """

    def __init__(self, max_requests: Optional[int] = None, window: Optional[timedelta] = None):
        self.max_requests = (
            max_requests
            if max_requests is not None
            else ApplicationConfig.PASSWORD_RESET_RATE_LIMIT_REQUESTS
        )
        self.window = window or timedelta(hours=ApplicationConfig.PASSWORD_RESET_RATE_LIMIT_HOURS)

    def window_start(self, now: datetime) -> datetime:
        return now - self.window

    def window_expired(self, user: User, now: datetime) -> bool:
        last_request = user.last_password_reset_request_at
        if last_request is None:
            return False
        return now - last_request >= self.window

    def is_limited(self, user: User, now: datetime) -> bool:
        if user.last_password_reset_request_at is None:
            return False
        if self.window_expired(user, now):
            return False
        return user.password_reset_request_count >= self.max_requests

    async def reconcile_window(self, users: IUserRepository, user: User, now: datetime) -> bool:
        """
        Reset the counters of an expired window.

        Returns True when the stored counters were changed.
        """
        if not self.window_expired(user, now):
            return False

        await users.update_rate_limit_counters(user.id, 0, None)
        user.password_reset_request_count = 0
        user.last_password_reset_request_at = None
        return True

    async def is_rate_limited(self, users: IUserRepository, email: str, now: datetime) -> bool:
        """
        Check whether the user behind email may not request another reset.

        Unknown users are never limited. Callers own the transaction that
        persists a window reset.
        """
        user = await users.get_by_email(email.strip().lower())
        if user is None:
            return False

        await self.reconcile_window(users, user, now)

        if self.is_limited(user, now):
            logger.warning(
                f"Password reset rate limit exceeded for user {user.id} "
                f"({user.password_reset_request_count} requests)"
            )
            return True
        return False
