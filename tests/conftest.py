import os

# Pas de Redis ni de rate limiting réel pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Generator, Dict, Any
from fastapi.testclient import TestClient

from clubsphere.app import app as fastapi_app
from clubsphere.ledger.store import CLUBS, EVENTS
from clubsphere.utils.dependencies import get_ledger_store, get_gateway
from clubsphere.utils.security import require_user
from tests.fakes import InMemoryLedgerStore, FakeGateway, CLUB_ID, OTHER_CLUB_ID, EVENT_ID

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/"):
            item.add_marker(pytest.mark.integration)

@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Store en mémoire avec un club et un événement, index uniques déclarés."""
    s = InMemoryLedgerStore()
    s.ensure_indexes()
    s.seed(CLUBS, {"id": CLUB_ID, "club_name": "Chess Club", "membership_fee": 10, "created_at": "2026-01-01"})
    s.seed(CLUBS, {"id": OTHER_CLUB_ID, "club_name": "Hiking Club", "membership_fee": 0, "created_at": "2026-02-01"})
    s.seed(EVENTS, {"id": EVENT_ID, "club_id": CLUB_ID, "title": "Spring Open", "event_fee": 5, "event_date": "2026-04-01"})
    return s

@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture
def client(app, store, gateway) -> Generator[TestClient, None, None]:
    app.state.ledger = store
    app.dependency_overrides[get_ledger_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_ledger_store, None)
        app.dependency_overrides.pop(get_gateway, None)

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture
def fake_user() -> Dict[str, Any]:
    return {"email": "buyer@example.com", "role": "user", "name": "Test User"}

@pytest.fixture
def authenticated(app, fake_user):
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield fake_user
    finally:
        app.dependency_overrides.pop(require_user, None)
