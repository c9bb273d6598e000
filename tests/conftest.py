"""
Shared fixtures: an app wired to a throwaway SQLite database and an
in-process HTTP client.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.settings import Settings
from database.session import init_models
from main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        github_token="gh-test-token",
    )


@pytest_asyncio.fixture
async def app(settings):
    application = create_app(settings)
    await init_models(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_user(client):
    """Register a user and return the token issued for them."""

    async def _register(name="A", email="a@x.com", password="123456") -> str:
        resp = await client.post(
            "/api/users",
            json={"name": name, "email": email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["token"]

    return _register


@pytest.fixture
def auth_headers():
    def _headers(token: str) -> dict:
        return {"x-auth-token": token}

    return _headers
