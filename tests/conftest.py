import pytest
from fastapi.testclient import TestClient

from pocketbook.services.database.models.user import User
from pocketbook.services.deps import get_db_service
from pocketbook.services.manager import service_manager


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_services():
    service_manager.services.clear()
    yield
    service_manager.services.clear()


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("JWT_SECRET", "test-secret-for-hs256-signing-0123456789")
    monkeypatch.setenv("ADMIN_EMAILS", " Admin@Pocketbook.test ")
    monkeypatch.setenv("AVATAR_DIR", str(tmp_path / "avatars"))
    return tmp_path


@pytest.fixture
def client(env):
    from pocketbook.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
async def session(env):
    db_service = get_db_service()
    await db_service.create_db_and_tables()
    async with db_service.with_session() as db:
        yield db
    await db_service.teardown()


@pytest.fixture
def make_user(session):
    """Insert a user directly; the password hash is irrelevant for ledger tests."""

    async def _make_user(email: str, name: str = "Someone") -> User:
        user = User(name=name, email=email, password="not-a-real-hash")
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make_user
