import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from server.tripboard.config import Settings
from server.tripboard.main import create_app
from server.tripboard.store import InMemoryTripStore


@pytest.fixture
def settings():
    return Settings(
        geonames_username="geo-user",
        weatherbit_api_key="wb-secret-key",
        pixabay_api_key="px-secret-key",
        run_env="test",
        timeout_ms=1000,
    )


@pytest.fixture
async def make_client():
    """Builds an httpx.AsyncClient whose requests are answered by `handler`."""
    clients = []

    def _make(handler):
        cx = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(cx)
        return cx

    yield _make
    for cx in clients:
        await cx.aclose()


@pytest.fixture
def store():
    return InMemoryTripStore()


@pytest.fixture
async def api_client(settings, store):
    """Async client for the app, upstreams not mocked (canned routes and trips only)."""
    app = create_app(settings, store=store)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
