"""Shared test fixtures: test Postgres, async DB session, FastAPI test client."""

import os

# Cheap hashing and a known external-provider secret for the whole run.
# Must be set before any backend.auth_service module is imported.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-0123456789abcdef0123456789")
os.environ["JWT_SECRET_FILE"] = "/nonexistent/jwt-secret"
os.environ.setdefault("EXTERNAL_JWT_SECRET", "test-external-secret-0123456789abcdef012345")
# The engine binds DATABASE_URL at import, and unit tests import the app during collection
if os.environ.get("TEST_DATABASE_URL"):
    os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Postgres container, started lazily once per session and only for DB tests
_pg_container = None


def pytest_collection_modifyitems(config, items):
    """Add markers based on test location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def pytest_unconfigure(config):
    global _pg_container
    if _pg_container:
        _pg_container.stop()


@pytest.fixture(scope="session")
def database_url():
    """TEST_DATABASE_URL if given, else a throwaway Postgres container."""
    global _pg_container
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        from testcontainers.postgres import PostgresContainer

        _pg_container = PostgresContainer("postgres:16-alpine", dbname="test_rentmycar", username="test", password="test")
        _pg_container.start()
        host = _pg_container.get_container_host_ip()
        port = _pg_container.get_exposed_port(5432)
        url = f"postgresql+asyncpg://test:test@{host}:{port}/test_rentmycar"
    os.environ["DATABASE_URL"] = url
    return url


@pytest_asyncio.fixture
async def db(database_url):
    """Yield a clean DB session. Tables are recreated per-test."""
    # Import after DATABASE_URL is set
    from backend.auth_service.models.database import Base, engine, async_session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled connections are bound to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db):
    """Async HTTP test client for the FastAPI app."""
    from backend.auth_service.main import app
    from backend.auth_service.models.database import get_db, async_session

    async def _override_get_db():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


REGISTRATION = {
    "email": "renter@example.com",
    "password": "SecurePass123",
    "firstName": "Rita",
    "lastName": "Renter",
}


@pytest_asyncio.fixture
async def registered(client):
    """Register a renter and return the 201 response body."""
    resp = await client.post("/auth/register", json=REGISTRATION)
    assert resp.status_code == 201
    return resp.json()


@pytest_asyncio.fixture
async def auth_headers(registered):
    """Auth headers with a valid access token for the registered renter."""
    return {"Authorization": f"Bearer {registered['sessionToken']}"}


@pytest_asyncio.fixture
async def admin_headers(client, db):
    """Create an administrator directly in the DB and log in as them."""
    from backend.auth_service.models.database import User
    from backend.auth_service.services.auth_service import hash_password

    db.add(User(
        email="admin@example.com", password_hash=hash_password("AdminPass123"),
        first_name="Ada", last_name="Admin", role="both", is_admin=True,
    ))
    await db.commit()
    resp = await client.post("/auth/login", json={
        "email": "admin@example.com", "password": "AdminPass123",
    })
    return {"Authorization": f"Bearer {resp.json()['sessionToken']}"}
