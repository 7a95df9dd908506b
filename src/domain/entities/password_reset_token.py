"""
PasswordResetToken Entity

Single-use, time-limited reset credentials.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow


class PasswordResetToken(SQLModel, table=True):
    """
    PasswordResetToken entity - secure password reset tokens.

    Business Rules:
    - Expires after 1 hour
    - Only the SHA-256 hash of the random token is stored, never the plaintext
    - Single-use: once used it can never become usable again
    - Burned after 5 validation attempts (brute force lockout)
    - A new request invalidates all live tokens of the same user
    - Never deleted; old rows stay for audit
    """

    __tablename__ = "password_reset_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: UUID = Field(foreign_key="users.id")
    token_hash: str = Field(max_length=64, unique=True)  # SHA-256 hex output

    used: bool = Field(default=False)
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))

    attempts: int = Field(default=0)
    last_attempt_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime, nullable=True)
    )

    # Provenance, audit only
    request_ip: Optional[str] = Field(default=None, max_length=64)
    request_user_agent: Optional[str] = Field(default=None, max_length=512)

    # Timestamps
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_password_reset_expires_at", "expires_at"),
        Index("idx_password_reset_user_id", "user_id"),
        Index("idx_password_reset_used", "used"),
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
