"""
User Entity

Account whose password can be reset. Owned by the wider user store;
this service only reads it and mutates the password and reset counters.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, SQLModel

from src.domain.base import utcnow


class User(SQLModel, table=True):
    """
    User entity - account that owns password reset tokens.

    Business Rules:
    - Email is unique and stored lowercase
    - Password stored as bcrypt hash
    - At most 3 reset requests per rolling 24 hours, tracked by
      password_reset_request_count and last_password_reset_request_at
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars
    full_name: str = Field(default="", max_length=255)

    # Reset rate limiting
    password_reset_request_count: int = Field(default=0)
    last_password_reset_request_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime, nullable=True)
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
