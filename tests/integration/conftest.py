from typing import Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.password_security import hash_password
from src.depends import get_clock, get_unit_of_work
from src.domain.entities import User
from tests.fixtures.clock import FakeClock
from tests.fixtures.json_loader import FixtureData


@pytest.fixture
def test_data():
    return FixtureData


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(ApplicationConfig, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def expose_token(monkeypatch):
    """Return the plaintext token in the HTTP response, as in development"""
    monkeypatch.setattr(ApplicationConfig, "EXPOSE_RESET_TOKEN", True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
async def registered_user(db_session, clock) -> Dict:
    """
    Persist the fixture user and return its plain attributes.

    The app rolls back the shared session after each request, which expires
    ORM instances, so tests work with the returned values instead.
    """
    data = FixtureData.user()
    user = User(
        email=data["email"],
        password_hash=hash_password(data["password"]),
        full_name=data["full_name"],
        created_at=clock.now,
        updated_at=clock.now,
    )
    db_session.add(user)
    await db_session.commit()
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "password": data["password"],
    }


@pytest_asyncio.fixture
async def client(db_session, clock):
    from src.api.app import create_app

    app = create_app(ApplicationConfig)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
