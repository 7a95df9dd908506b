from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import PasswordResetToken


class IPasswordResetTokenRepository(ABC):
    """PasswordResetToken repository interface - application layer"""

    @abstractmethod
    async def create(self, token: PasswordResetToken) -> PasswordResetToken:
        """Create a new password reset token"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[PasswordResetToken]:
        """Get password reset token by token hash"""
        pass

    @abstractmethod
    async def record_attempt(self, token_id: UUID, now: datetime, max_attempts: int) -> bool:
        """
        Atomically increment the attempt counter while it is below max_attempts.

        Returns False when the token has no attempts left.
        """
        pass

    @abstractmethod
    async def mark_used(self, token_id: UUID, now: datetime) -> bool:
        """
        Compare-and-swap used=False -> True.

        Returns False when the token was already used.
        """
        pass

    @abstractmethod
    async def invalidate_live_by_user_id(self, user_id: UUID, now: datetime) -> int:
        """Mark every unused, unexpired token of the user as used"""
        pass
