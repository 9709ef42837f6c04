import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("MONGODB_DB_NAME", "inkgenius_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("WHOP_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
# Remote providers stay unconfigured unless a test builds its own chain
os.environ.setdefault("GOOGLE_CLOUD_PROJECT_ID", "")


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[None, None]:
    """Fresh in-memory database per test."""
    from inkgenius.db.init import close_db, init_db
    await init_db(AsyncMongoMockClient())
    yield
    await close_db()


@pytest_asyncio.fixture
async def user(db):
    from inkgenius.models.user import User
    from inkgenius.services import credits as credits_service
    u = User(email="artist@example.com", name="Ink Artist", google_id="google-sub-1")
    await u.insert()
    await credits_service.ensure_user_credits(u)
    return u


@pytest_asyncio.fixture
async def admin(db):
    from inkgenius.models.user import User
    u = User(email="admin@example.com", name="Admin")
    await u.insert()
    return u


@pytest.fixture
def login(client):
    """Attach a valid session cookie for the given user to the test client."""
    from inkgenius.core.security import create_session_cookie
    from inkgenius.deps import SESSION_COOKIE_NAME
    from inkgenius.services.users import session_payload_for_user

    def _login(u):
        client.headers["Cookie"] = f"{SESSION_COOKIE_NAME}={create_session_cookie(session_payload_for_user(u))}"
        return client

    return _login


@pytest.fixture
def app():
    """App without lifespan; rate limiting off."""
    from inkgenius.deps import rate_limit
    from inkgenius.main import app

    async def no_rate_limit():
        return None

    app.dependency_overrides[rate_limit] = no_rate_limit
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app, db) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
