import sys
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
sys.path[:0] = [p for p in (str(TESTS_DIR.parent), str(TESTS_DIR)) if p not in sys.path]

import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient
from network_blocker import install_network_blocker

from core.http.circuit_breaker import osrm_breaker
from db.models import ALL_DOCUMENT_MODELS


@pytest.fixture(autouse=True)
def _isolated_osrm(monkeypatch: pytest.MonkeyPatch):
    """Point OSRM at the public host, block it, and start with a closed circuit."""
    monkeypatch.setenv("OSRM_BASE_URL", "https://router.project-osrm.org")
    install_network_blocker(monkeypatch)
    osrm_breaker.reset()
    yield
    osrm_breaker.reset()


@pytest.fixture
async def beanie_db():
    database = AsyncMongoMockClient()["route_tracker_test"]
    await init_beanie(database=database, document_models=ALL_DOCUMENT_MODELS)
    return database
