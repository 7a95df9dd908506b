from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import User


class IUserRepository(ABC):
    """User repository interface - application layer"""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalized) email address"""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """Create a new user"""
        pass

    @abstractmethod
    async def update_password_hash(self, user_id: UUID, password_hash: str, now: datetime) -> None:
        """Replace the user's password hash"""
        pass

    @abstractmethod
    async def update_rate_limit_counters(
        self, user_id: UUID, count: int, last_request_at: Optional[datetime]
    ) -> None:
        """Overwrite the reset request counters"""
        pass

    @abstractmethod
    async def record_reset_request(
        self, user_id: UUID, now: datetime, window_start: datetime, max_requests: int
    ) -> bool:
        """
        Atomically count a reset request if the user is under the limit.

        Increments the counter while the last request is newer than
        window_start, otherwise restarts it at 1. Sets the last request
        time to now in both cases. Nothing is written when the window is
        open and already holds max_requests.

        Returns True when the request was counted.
        """
        pass
