from unittest.mock import AsyncMock, MagicMock

import pytest

from config import ApplicationConfig
from tests.fixtures.clock import FakeClock
from tests.fixtures.memory_uow import MemoryStore, MemoryUnitOfWork


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt cost so password hashing does not dominate test time"""
    monkeypatch.setattr(ApplicationConfig, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_uow():
    """Mock UnitOfWork with all password reset repositories"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_email = AsyncMock(return_value=None)
    uow.users.get_by_id = AsyncMock(return_value=None)
    uow.users.update_password_hash = AsyncMock()
    uow.users.update_rate_limit_counters = AsyncMock()
    uow.users.record_reset_request = AsyncMock(return_value=True)

    uow.password_reset_tokens = MagicMock()
    uow.password_reset_tokens.create = AsyncMock(side_effect=lambda token: token)
    uow.password_reset_tokens.get_by_token_hash = AsyncMock(return_value=None)
    uow.password_reset_tokens.record_attempt = AsyncMock(return_value=True)
    uow.password_reset_tokens.mark_used = AsyncMock(return_value=True)
    uow.password_reset_tokens.invalidate_live_by_user_id = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock(side_effect=lambda event: event)

    return uow


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def memory_uow_factory(memory_store):
    """Fresh UnitOfWork per use case call, all sharing one store"""

    def factory():
        return MemoryUnitOfWork(memory_store)

    return factory
