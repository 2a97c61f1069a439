"""Service test fixtures — async DB, FastAPI test client and seeded team data.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - db_manager patched so get_db and background tasks share the test DB
    - Rate limiter state is cleared between tests
    - Outbound email and webhooks are captured, never sent

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Fake clients patched where notifications imports them, not at their source
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

import papermark.infrastructure.database as db_module
from papermark.db.base import Base
from papermark.infrastructure.database import get_db, DatabaseSessionManager
from papermark.infrastructure.security import create_access_token, hash_password
from papermark.main import app
from papermark.models.dataroom import Dataroom, DataroomDocument, DataroomFolder
from papermark.models.user import Team, User, UserTeam
from papermark.services import rate_limits
from tests.services.factories import add_document, add_link


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limits.rate_limiter.reset()
    yield
    rate_limits.rate_limiter.reset()


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async def override_get_db():
        async with fake_manager.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


# ─── Outbound fakes ──────────────────────────────────────────────

class FakeEmailClient:
    def __init__(self):
        self.sent: list[dict] = []

    async def send_otp(self, email: str, code: str, is_dataroom: bool = False) -> bool:
        self.sent.append({"email": email, "code": code, "is_dataroom": is_dataroom})
        return True

    def last_code(self) -> str:
        return self.sent[-1]["code"]


class FakeWebhookClient:
    def __init__(self):
        self.deliveries: list[dict] = []

    async def deliver(self, url: str, event: str, data: dict) -> None:
        self.deliveries.append({"url": url, "event": event, "data": data})


@pytest.fixture
def outbox(monkeypatch):
    fake = FakeEmailClient()
    monkeypatch.setattr("papermark.services.notifications.get_email_client", lambda: fake)
    return fake


@pytest.fixture
def webhooks(monkeypatch):
    fake = FakeWebhookClient()
    monkeypatch.setattr("papermark.services.notifications.get_webhook_client", lambda: fake)
    return fake


# ─── Seed data ───────────────────────────────────────────────────

@pytest.fixture
async def seed_user(test_db):
    user = User(email="owner@papermark.test", name="Owner", password_hash=hash_password("s3cret-pass"))
    test_db.add(user)
    await test_db.commit()
    return user


@pytest.fixture
async def seed_team(test_db, seed_user):
    team = Team(name="Acme", plan="pro", global_block_list=[])
    test_db.add(team)
    await test_db.flush()
    test_db.add(UserTeam(user_id=seed_user.id, team_id=team.id, role="ADMIN"))
    await test_db.commit()
    return team


@pytest.fixture
def auth_headers(seed_user):
    return {"Authorization": f"Bearer {create_access_token(seed_user.id)}"}


@pytest.fixture
async def seed_document(test_db, seed_team):
    document, _ = await add_document(test_db, seed_team)
    return document


@pytest.fixture
async def seed_link(test_db, seed_team, seed_document):
    return await add_link(
        test_db, seed_team, link_type="DOCUMENT_LINK", document_id=seed_document.id,
    )


@pytest.fixture
async def seed_dataroom(test_db, seed_team):
    """Room with Finance/ (term-sheet) and a top-level readme."""
    dataroom = Dataroom(team_id=seed_team.id, name="Series A")
    test_db.add(dataroom)
    await test_db.flush()
    folder = DataroomFolder(dataroom_id=dataroom.id, name="Finance", order_index=0)
    test_db.add(folder)
    await test_db.flush()
    term_sheet, _ = await add_document(test_db, seed_team, name="Term Sheet")
    readme, _ = await add_document(test_db, seed_team, name="Readme", pages=False)
    inside = DataroomDocument(
        dataroom_id=dataroom.id, document_id=term_sheet.id, folder_id=folder.id,
    )
    top = DataroomDocument(dataroom_id=dataroom.id, document_id=readme.id, order_index=1)
    test_db.add_all([inside, top])
    await test_db.commit()
    return {
        "dataroom": dataroom,
        "folder": folder,
        "term_sheet": term_sheet,
        "readme": readme,
        "term_sheet_item": inside,
        "readme_item": top,
    }
