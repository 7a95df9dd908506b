"""
Unit tests for RequestPasswordResetUseCase

Tests all business logic with mocked dependencies.
"""
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from src.app.services.password_security import hash_reset_token
from src.app.use_cases.password_reset.errors import GENERIC_REQUEST_MESSAGE
from src.app.use_cases.password_reset.request_password_reset_use_case import (
    RequestPasswordResetUseCase,
)
from src.domain.entities import User


def make_user(email="user@example.com", count=0, last_request_at=None):
    return User(
        id=uuid4(),
        email=email,
        password_hash="hashed_password",
        full_name="Test User",
        password_reset_request_count=count,
        last_password_reset_request_at=last_request_at,
    )


def capture_created_token(mock_uow):
    created = []

    async def capture(token):
        created.append(token)
        return token

    mock_uow.password_reset_tokens.create.side_effect = capture
    return created


@pytest.mark.asyncio
async def test_successful_password_reset_request(mock_uow, clock):
    """A known email gets a fresh hashed token valid for one hour"""
    # Arrange
    user = make_user()
    mock_uow.users.get_by_email.return_value = user
    created = capture_created_token(mock_uow)

    use_case = RequestPasswordResetUseCase(mock_uow, clock=clock)

    # Act
    result = await use_case.execute("user@example.com")

    # Assert
    assert result.is_ok()
    data = result.value
    assert data.success is True
    assert data.message == GENERIC_REQUEST_MESSAGE
    assert data.is_new_token_generated is True
    assert data.token_expires_in == 60

    assert len(created) == 1
    token = created[0]
    assert token.user_id == user.id
    assert token.used is False
    assert token.attempts == 0
    assert token.created_at == clock.now
    assert token.expires_at == clock.now + timedelta(hours=1)

    # Only the hash is stored, and it matches the plaintext handed out
    assert token.token_hash == hash_reset_token(data.token)
    assert token.token_hash != data.token

    mock_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_password_reset_token_is_hashed_with_sha256(mock_uow, clock):
    """Stored token hash is a SHA-256 hex digest"""
    mock_uow.users.get_by_email.return_value = make_user()
    created = capture_created_token(mock_uow)

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert result.is_ok()
    assert len(created[0].token_hash) == 64
    int(created[0].token_hash, 16)


@pytest.mark.asyncio
async def test_password_reset_token_has_256_bits_of_entropy(mock_uow, clock):
    """32 random bytes encode to at least 43 URL-safe base64 characters"""
    mock_uow.users.get_by_email.return_value = make_user()

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert len(result.value.token) >= 43


@pytest.mark.asyncio
async def test_password_reset_non_existent_email(mock_uow, clock):
    """Unknown email - same answer, no token, no writes"""
    mock_uow.users.get_by_email.return_value = None

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute(
        "nonexistent@example.com"
    )

    assert result.is_ok()
    assert result.value.success is True
    assert result.value.message == GENERIC_REQUEST_MESSAGE
    assert result.value.token is None

    mock_uow.password_reset_tokens.create.assert_not_called()
    mock_uow.password_reset_tokens.invalidate_live_by_user_id.assert_not_called()
    mock_uow.users.record_reset_request.assert_not_called()
    mock_uow.audit_events.create.assert_not_called()
    mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["", "   ", None])
async def test_blank_email_short_circuits(mock_uow, clock, email):
    """Blank email never touches the store"""
    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute(email)

    assert result.is_ok()
    assert result.value.message == GENERIC_REQUEST_MESSAGE
    mock_uow.__aenter__.assert_not_called()
    mock_uow.users.get_by_email.assert_not_called()


@pytest.mark.asyncio
async def test_email_is_normalized_before_lookup(mock_uow, clock):
    """Lookup uses the trimmed, lowercased email"""
    await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("  User@Example.COM \n")

    mock_uow.users.get_by_email.assert_called_once_with("user@example.com")


@pytest.mark.asyncio
async def test_live_tokens_are_invalidated_before_issuing(mock_uow, clock):
    """Previous live tokens of the user are burned in the same transaction"""
    user = make_user()
    mock_uow.users.get_by_email.return_value = user
    mock_uow.password_reset_tokens.invalidate_live_by_user_id.return_value = 2

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert result.is_ok()
    mock_uow.password_reset_tokens.invalidate_live_by_user_id.assert_called_once_with(
        user.id, clock.now
    )
    audit_event = mock_uow.audit_events.create.call_args.args[0]
    assert audit_event.event_metadata["invalidated_tokens"] == 2


@pytest.mark.asyncio
async def test_request_is_counted_with_atomic_primitive(mock_uow, clock):
    """The rate counter is bumped through the store, not read-modify-write"""
    user = make_user()
    mock_uow.users.get_by_email.return_value = user

    await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    mock_uow.users.record_reset_request.assert_called_once_with(
        user.id, clock.now, clock.now - timedelta(hours=24), 3
    )


@pytest.mark.asyncio
async def test_rate_limited_user_gets_generic_answer(mock_uow, clock):
    """Fourth request inside 24 hours issues nothing but looks the same"""
    user = make_user(count=3, last_request_at=clock.now - timedelta(hours=1))
    mock_uow.users.get_by_email.return_value = user

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert result.is_ok()
    assert result.value.message == GENERIC_REQUEST_MESSAGE
    assert result.value.token is None
    assert result.value.is_new_token_generated is False
    mock_uow.password_reset_tokens.create.assert_not_called()
    mock_uow.password_reset_tokens.invalidate_live_by_user_id.assert_not_called()
    mock_uow.users.record_reset_request.assert_not_called()
    mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_expired_rate_window_is_reset_and_token_issued(mock_uow, clock):
    """After 24 hours the counters restart and a token is issued again"""
    user = make_user(count=3, last_request_at=clock.now - timedelta(hours=24))
    mock_uow.users.get_by_email.return_value = user

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert result.is_ok()
    assert result.value.token is not None
    mock_uow.users.update_rate_limit_counters.assert_called_once_with(user.id, 0, None)
    mock_uow.password_reset_tokens.create.assert_called_once()


@pytest.mark.asyncio
async def test_request_provenance_is_recorded(mock_uow, clock):
    """Caller IP and user agent are stored on the token"""
    mock_uow.users.get_by_email.return_value = make_user()
    created = capture_created_token(mock_uow)

    await RequestPasswordResetUseCase(mock_uow, clock=clock).execute(
        "user@example.com", request_ip="203.0.113.7", user_agent="pytest-agent"
    )

    assert created[0].request_ip == "203.0.113.7"
    assert created[0].request_user_agent == "pytest-agent"


@pytest.mark.asyncio
async def test_password_reset_creates_audit_event(mock_uow, clock):
    """An audit event is created, without the plaintext token"""
    user = make_user()
    mock_uow.users.get_by_email.return_value = user

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    mock_uow.audit_events.create.assert_called_once()
    audit_event = mock_uow.audit_events.create.call_args.args[0]
    assert audit_event.user_id == user.id
    assert audit_event.action == "password_reset_requested"
    assert "token_id" in audit_event.event_metadata
    assert result.value.token not in str(audit_event.event_metadata)


@pytest.mark.asyncio
async def test_password_reset_no_enumeration_same_message(mock_uow, clock):
    """Valid and invalid emails return the same status and message"""
    valid_user = make_user(email="valid@example.com")

    async def get_user_by_email(email):
        return valid_user if email == "valid@example.com" else None

    mock_uow.users.get_by_email.side_effect = get_user_by_email
    use_case = RequestPasswordResetUseCase(mock_uow, clock=clock)

    result_valid = await use_case.execute("valid@example.com")
    result_invalid = await use_case.execute("invalid@example.com")

    assert result_valid.value.success == result_invalid.value.success
    assert result_valid.value.message == result_invalid.value.message


@pytest.mark.asyncio
async def test_storage_failure_returns_internal_error(mock_uow, clock):
    """Database errors become a generic INTERNAL_ERROR result"""
    mock_uow.users.get_by_email.return_value = make_user()
    mock_uow.password_reset_tokens.create.side_effect = SQLAlchemyError("connection lost")

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert result.is_err()
    assert result.error.code == "INTERNAL_ERROR"
    assert "connection lost" not in result.error.message
    mock_uow.commit.assert_not_called()
    mock_uow.__aexit__.assert_called_once()


@pytest.mark.asyncio
async def test_lost_rate_slot_issues_no_token(mock_uow, clock):
    """When the conditional counter update matches no row, nothing is issued"""
    user = make_user(count=2, last_request_at=clock.now - timedelta(hours=1))
    mock_uow.users.get_by_email.return_value = user
    mock_uow.users.record_reset_request.return_value = False

    result = await RequestPasswordResetUseCase(mock_uow, clock=clock).execute("user@example.com")

    assert result.is_ok()
    assert result.value.message == GENERIC_REQUEST_MESSAGE
    assert result.value.token is None
    mock_uow.password_reset_tokens.invalidate_live_by_user_id.assert_not_called()
    mock_uow.password_reset_tokens.create.assert_not_called()
    mock_uow.audit_events.create.assert_not_called()
    mock_uow.commit.assert_not_called()
