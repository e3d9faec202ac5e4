import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import ElectionDatabase
from main import create_app


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def db(settings):
    return ElectionDatabase(settings)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seeded(client):
    """Two voters and three candidates registered through the API."""
    for voter_id, name, age in [(1, "Alice", 30), (2, "Bob", 41), (3, "Carol", 22)]:
        assert client.post("/api/voters", json={"voter_id": voter_id, "name": name, "age": age}).status_code == 218
    for candidate_id, name, party in [(10, "Dana", "Green"), (11, "Eli", "Blue"), (12, "Fay", "green")]:
        r = client.post("/api/candidates", json={"candidate_id": candidate_id, "name": name, "party": party})
        assert r.status_code == 226
    return client
