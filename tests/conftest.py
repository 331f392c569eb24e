"""
Shared fixtures: an app wired to a throwaway SQLite database, a stub token
verifier and a temporary uploads directory.
"""
from typing import Any, Dict

import pytest
from httpx import ASGITransport, AsyncClient

from tripboard.app_services import AppServices
from tripboard.auth.providers import TokenVerificationError
from tripboard.infrastructure.database import Database
from tripboard.infrastructure.uploads import UploadStore
from tripboard.main import create_app


class StubTokenVerifier:
    """Maps opaque test tokens to claims; anything else is rejected."""

    def __init__(self):
        self.tokens: Dict[str, Dict[str, Any]] = {}

    def register(self, token: str, **claims) -> str:
        self.tokens[token] = claims
        return token

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def verify_token(self, token: str) -> Dict[str, Any]:
        if token not in self.tokens:
            raise TokenVerificationError("Unknown test token")
        return dict(self.tokens[token])


def auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def verifier():
    stub = StubTokenVerifier()
    stub.register("alice-token", sub="auth0|alice", email="alice@example.com", name="Alice")
    stub.register("bob-token", sub="auth0|bob", email="bob@example.com", name="Bob")
    stub.register("carol-token", sub="auth0|carol", name="Carol")
    stub.register("nosub-token", email="ghost@example.com")
    return stub


@pytest.fixture
async def services(tmp_path, verifier):
    services = AppServices(
        database=Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        token_verifier=verifier,
        upload_store=UploadStore(tmp_path / "uploads", "/uploads", max_file_size=2 * 1024 * 1024),
    )
    await services.start()
    await services.database.create_all()
    yield services
    await services.close()


@pytest.fixture
async def db(services):
    async with services.database.session() as session:
        yield session


@pytest.fixture
async def client(services):
    app = create_app(services)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def create_trip(client):
    """Create a trip as the given token's user and return the trip JSON."""

    async def _create(token: str = "alice-token", **overrides) -> Dict[str, Any]:
        payload = {
            "tripName": "Lisbon long weekend",
            "destinationName": "Lisbon, Portugal",
            "startDate": "2025-06-01",
            "dayCount": 3,
        }
        payload.update(overrides)
        response = await client.post("/api/trips", json=payload, headers=auth(token))
        assert response.status_code == 201, response.text
        return response.json()["trip"]

    return _create


@pytest.fixture
def join_trip(client):
    async def _join(join_code: str, token: str) -> Dict[str, Any]:
        response = await client.post("/api/trips/join", json={"joinCode": join_code}, headers=auth(token))
        assert response.status_code == 200, response.text
        return response.json()

    return _join


@pytest.fixture
def create_post(client):
    """Submit the post form to a trip and return the raw response."""

    async def _create(trip_id: str, token: str = "alice-token", files=None, **fields):
        data = {"postType": "SUGGESTION"}
        data.update({key: str(value) for key, value in fields.items()})
        return await client.post(
            f"/api/trips/{trip_id}/posts",
            data=data,
            files=files,
            headers=auth(token),
        )

    return _create
