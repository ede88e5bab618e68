"""
Pytest fixtures for test database, client, and authentication.

Tables are created before and dropped after every test. Each HTTP request
gets its own session that commits or rolls back, exactly like `get_db` in
production. Set TEST_DATABASE_URL to run against PostgreSQL; the default is a
throwaway SQLite file.
"""

import os
import tempfile
from datetime import datetime, timezone, timedelta
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from madsocial.main import app
from madsocial.db.base import Base
from madsocial.db.session import get_db, create_session_factory
from madsocial.core.security import create_access_token, hash_password
from madsocial.models.user import User
from madsocial.models.event import Event
from madsocial.models.pregame import Pregame, AccessType, pregame_attendees
from madsocial.models.join_request import JoinRequest

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'madsocial_test.db'}",
)

# NullPool: every test runs on its own event loop, connections must not be reused across loops
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = create_session_factory(test_engine)

IS_POSTGRES = test_engine.dialect.name == "postgresql"
TEST_PASSWORD = "testpassword123"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_session: AsyncSession):
    """Factory for fresh sessions, used to call services the way a request would."""
    return TestSessionLocal


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with per-request test sessions."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Create a user with the given profile attributes."""
    counter = {"n": 0}

    async def _make_user(
        name: str = None,
        year: str = "Junior",
        major: str = "Computer Science",
        dorm: str = "Witte",
        email: str = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"user{n}@wisc.edu",
            hashed_password=hash_password(TEST_PASSWORD),
            name=name or f"User {n}",
            year=year,
            major=major,
            dorm=dorm,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_event(db_session: AsyncSession):
    async def _make_event(
        title: str = "Badgers vs. Wolverines",
        date: datetime = None,
        category: str = "Game",
        vibe_tags: list = None,
    ) -> Event:
        event = Event(
            title=title,
            date=date or datetime.now(timezone.utc),
            location="Camp Randall",
            vibe_tags=vibe_tags if vibe_tags is not None else ["football", "tailgate"],
            category=category,
        )
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def make_pregame(db_session: AsyncSession):
    async def _make_pregame(
        event: Event,
        host: User,
        access_type: AccessType = AccessType.OPEN,
        capacity: int = None,
        title: str = "Tailgate at Mifflin",
        meeting_time: datetime = None,
    ) -> Pregame:
        pregame = Pregame(
            event_id=event.id,
            host_id=host.id,
            title=title,
            meeting_time=meeting_time or datetime.now(timezone.utc) + timedelta(hours=2),
            meeting_location="Mifflin St",
            access_type=access_type.value,
            capacity=capacity,
            attendee_count=0,
            phone_number="(608) 555-0100",
        )
        db_session.add(pregame)
        await db_session.commit()
        await db_session.refresh(pregame)
        return pregame

    return _make_pregame


@pytest.fixture
def fetch_attendee_ids(db_session: AsyncSession):
    """Read the committed attendee set and denormalized count of a pregame."""

    async def _fetch(pregame_id: int) -> tuple[set, int]:
        async with TestSessionLocal() as session:
            rows = await session.execute(
                select(pregame_attendees.c.user_id).where(pregame_attendees.c.pregame_id == pregame_id)
            )
            count = await session.scalar(select(Pregame.attendee_count).where(Pregame.id == pregame_id))
            return set(rows.scalars().all()), count

    return _fetch


@pytest.fixture
def fetch_join_requests(db_session: AsyncSession):
    async def _fetch(pregame_id: int) -> list[JoinRequest]:
        async with TestSessionLocal() as session:
            result = await session.execute(
                select(JoinRequest).where(JoinRequest.pregame_id == pregame_id).order_by(JoinRequest.id)
            )
            return list(result.scalars().all())

    return _fetch


@pytest_asyncio.fixture
async def host_user(make_user) -> User:
    return await make_user(name="Hannah Host", email="host@wisc.edu")


@pytest_asyncio.fixture
async def test_user(make_user) -> User:
    return await make_user(name="Alice", email="alice@wisc.edu", dorm="Sellery", major="Biology", year="Freshman")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token for test_user."""
    return auth_headers_for(test_user)


@pytest_asyncio.fixture
async def host_headers(host_user: User) -> dict:
    return auth_headers_for(host_user)


@pytest_asyncio.fixture
async def test_event(make_event) -> Event:
    return await make_event()


@pytest.fixture
def join_info() -> dict:
    """A valid join payload."""
    return {
        "bringing": ["chips", "speaker"],
        "group_size": 2,
        "message": "Can't wait!",
        "phone_number": "(608) 555-1234",
    }
