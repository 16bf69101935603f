# tests/conftest.py
import os

# Settings are read at import time; configure them before importing the app
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ.setdefault("APP_ENV", "development")

import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from helpdesk import models  # noqa: F401  (registers tables)
from helpdesk.core.constants import UserRole
from helpdesk.db.engine import build_engine, build_session_maker, create_all
from helpdesk.models.ticket import Queue, Ticket
from helpdesk.models.user import User
from helpdesk.utils.timeutils import utcnow


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(session):
    async def _make_user(role: str = UserRole.USER.value, name: str = None, email: str = None) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=email or f"{role}-{suffix}@example.com",
            hashed_password="not-a-real-hash",
            name=name or f"{role.title()} {suffix}",
            role=role,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_queue(session):
    async def _make_queue(name: str) -> Queue:
        queue = Queue(name=name)
        session.add(queue)
        await session.commit()
        await session.refresh(queue)
        return queue

    return _make_queue


@pytest.fixture
def make_ticket(session):
    """Inserts a ticket row directly, bypassing the service (ids chosen by the test)."""

    async def _make_ticket(ticket_id: str, created_by: uuid.UUID, **fields) -> Ticket:
        fields.setdefault("title", f"Chamado {ticket_id}")
        fields.setdefault("description", "Descrição")
        ticket = Ticket(id=ticket_id, created_by=created_by, **fields)
        session.add(ticket)
        await session.commit()
        return ticket

    return _make_ticket


@pytest.fixture
def erp_ticket_payload():
    due = (utcnow() + timedelta(days=30)).date().isoformat()
    return {
        "erpId": "TEST-1",
        "erpType": "contaazul",
        "title": "Mensalidade março",
        "amount": 100.00,
        "dueDate": due,
        "clientEmail": "a@b.com",
        "clientName": "A B",
    }


# --- HTTP ---


@pytest_asyncio.fixture
async def app(session_maker):
    from helpdesk.core.limiter import limiter
    from helpdesk.db.engine import get_session
    from helpdesk.main import app

    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    limiter.enabled = False
    yield app
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def login_as(app):
    """Authenticates every following request as `user`."""
    from helpdesk.core.users import current_active_user

    def _login_as(user: User) -> None:
        app.dependency_overrides[current_active_user] = lambda: user

    return _login_as


@pytest_asyncio.fixture
async def client(app):
    # TrustedHostMiddleware only accepts the configured hosts
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as ac:
        yield ac
