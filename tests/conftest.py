import httpx
import pytest
from fastapi.testclient import TestClient

from client.api_client import ConsoleApiClient
from core.session import ConsoleSession
from core.settings import get_settings
from tests.fakes import CONNECT_BODY, FakeDriver


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for name in ("CONSOLE_API_PREFIX", "STORAGE_MODE", "STORAGE_PROVIDER", "CONSOLE_STATIC_DIR"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def session(driver) -> ConsoleSession:
    return ConsoleSession(driver_factory=lambda cfg: driver)


@pytest.fixture
def app(session):
    from main import create_app

    return create_app(session=session)


@pytest.fixture
def http(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def connected(http) -> TestClient:
    resp = http.post("/api/connect", json=CONNECT_BODY)
    assert resp.status_code == 200, resp.text
    return http


@pytest.fixture
def make_client(app):
    def _make():
        return ConsoleApiClient("http://test/api", transport=httpx.ASGITransport(app=app))

    return _make
