"""
Centralized Test Configuration.
"""

import pytest
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import List, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from dinkup.app.main import app
from dinkup.app.db.session import get_db, Base
from dinkup.app.core.config import settings
from dinkup.app.core.dependencies import get_message_sender
from dinkup.app.core.exceptions import NotificationDeliveryError
from dinkup.app.core.reliability import notification_circuit_breaker
from dinkup.app.models.enums import ParticipantStatus
from dinkup.app.models.player import Player
from dinkup.app.models.pool import Pool
from dinkup.app.models.play_session import PlaySession
from dinkup.app.models.session_participant import SessionParticipant

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

WEBHOOK_SECRET = "test-webhook-secret"
ADMIN_KEY = "test-admin-key"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool as ConnectionPool

@event.listens_for(ConnectionPool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class FakeSender:
    """Records sent messages; addresses in `failing` raise a delivery error."""

    def __init__(self):
        self.sent = []
        self.failing = set()

    async def send(self, to, subject, body):
        if to in self.failing:
            raise NotificationDeliveryError("mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})


@pytest.fixture(scope="session")
def fake_sender_session():
    return FakeSender()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(fake_sender_session):
    """Apply overrides once for the session.
    Global override is safer here than per-test override to avoid app state flux.
    """
    original_secret = settings.webhook_secret
    original_admin_key = settings.admin_api_key
    settings.webhook_secret = WEBHOOK_SECRET
    settings.admin_api_key = ADMIN_KEY

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_message_sender] = lambda: fake_sender_session
    yield

    # Restore and clear
    app.dependency_overrides = {}
    settings.webhook_secret = original_secret
    settings.admin_api_key = original_admin_key


@pytest.fixture(autouse=True)
async def setup_database(fake_sender_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    fake_sender_session.sent.clear()
    fake_sender_session.failing.clear()
    notification_circuit_breaker.reset_state()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """Fresh sessions for reading back what the API committed."""
    return TestingSessionLocal


@pytest.fixture
def fake_sender(fake_sender_session):
    return fake_sender_session


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def webhook_headers():
    return {"X-Webhook-Secret": WEBHOOK_SECRET}


@dataclass
class SeededSession:
    session: PlaySession
    pool: Pool
    admin: Player
    guests: List[Player] = field(default_factory=list)
    participants: List[SessionParticipant] = field(default_factory=list)


async def seed_session(
    db: AsyncSession,
    guests=(("Jane Smith", "@jsmith", "jane@example.com"),
            ("Michael Chen", "@mchen", "michael@example.com"),
            ("Robert Jones", None, "rob@example.com")),
    courts_needed: int = 1,
    guest_pool_per_court: str = "48.00",
    admin_cost_per_court: str = "20.00",
    admin_venmo: Optional[str] = "@pool-admin",
    extra_statuses=(),
) -> SeededSession:
    """
    Admin + guests committed to one session on Sat Jan 10 2026 at 1:00 PM.

    extra_statuses adds one non-owing participant per status given.
    """
    admin = Player(name="Pat Admin", venmo_account=admin_venmo, email="admin@example.com")
    pool = Pool(name="Weekend Warriors", owner=admin)
    play_session = PlaySession(
        pool=pool,
        proposed_date=date(2026, 1, 10),
        proposed_time=time(13, 0),
        courts_needed=courts_needed,
        admin_cost_per_court=Decimal(admin_cost_per_court),
        guest_pool_per_court=Decimal(guest_pool_per_court),
    )
    seeded = SeededSession(session=play_session, pool=pool, admin=admin)
    seeded.participants.append(SessionParticipant(
        session=play_session, player=admin, is_admin=True, status=ParticipantStatus.COMMITTED
    ))

    for name, venmo, email in guests:
        player = Player(name=name, venmo_account=venmo, email=email)
        seeded.guests.append(player)
        seeded.participants.append(SessionParticipant(
            session=play_session, player=player, status=ParticipantStatus.COMMITTED
        ))

    for i, status in enumerate(extra_statuses):
        player = Player(name=f"Extra {i}", email=f"extra{i}@example.com")
        seeded.participants.append(SessionParticipant(session=play_session, player=player, status=status))

    db.add_all([admin, pool, play_session, *seeded.guests, *seeded.participants])
    await db.commit()
    return seeded


@pytest.fixture
def seed():
    return seed_session
