"""
Fixtures for API tests: TestClient wired to the in-memory database
"""
import pytest
from fastapi.testclient import TestClient

from finledger.main import app
from finledger.api.deps import get_db


@pytest.fixture
def client(session_factory):
    """Test client whose requests use the test engine"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def account_id(client):
    response = client.post("/api/v1/accounts/", json={
        "bank": "Banco do Brasil",
        "agency_number": "1234",
        "account_number": "56789-0",
        "account_kind": "CHECKING",
        "holder": "Maria Silva",
    })
    assert response.status_code == 201
    return response.json()["data"]["id"]
