from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import case, or_
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.user_repository import IUserRepository
from src.domain.entities import User


class UserRepository(IUserRepository):
    """User repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by (normalized) email address"""
        stmt = select(User).where(User.email == email)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, user: User) -> User:
        """Create a new user"""
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def update_password_hash(self, user_id: UUID, password_hash: str, now: datetime) -> None:
        """Replace the user's password hash"""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash, updated_at=now)
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def update_rate_limit_counters(
        self, user_id: UUID, count: int, last_request_at: Optional[datetime]
    ) -> None:
        """Overwrite the reset request counters"""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                password_reset_request_count=count,
                last_password_reset_request_at=last_request_at,
            )
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def record_reset_request(
        self, user_id: UUID, now: datetime, window_start: datetime, max_requests: int
    ) -> bool:
        """Count a reset request in a single conditional UPDATE; False when the limit is reached"""
        window_closed = or_(
            User.last_password_reset_request_at.is_(None),
            User.last_password_reset_request_at <= window_start,
        )
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                or_(window_closed, User.password_reset_request_count < max_requests),
            )
            .values(
                password_reset_request_count=case(
                    (window_closed, 1),
                    else_=User.password_reset_request_count + 1,
                ),
                last_password_reset_request_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0
