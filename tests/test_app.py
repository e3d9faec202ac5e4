from fastapi.testclient import TestClient

from config import Settings
from main import create_app


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == {"message": "Election API running"}


def test_health_reports_collection_sizes(seeded):
    r = seeded.get("/health")
    assert r.status_code == 200
    sizes = r.json()["collections"]
    assert sizes["voters"] == 3 and sizes["candidates"] == 3 and sizes["votes"] == 0


def test_unmatched_route(client):
    r = client.get("/api/nowhere")
    assert r.status_code == 404
    assert r.json() == {"message": "Route GET /api/nowhere not found"}


def test_wrong_method_is_unmatched_route(client):
    r = client.patch("/api/voters")
    assert r.status_code == 404
    assert r.json()["message"] == "Route PATCH /api/voters not found"


def test_body_type_errors_are_400(client):
    r = client.post("/api/voters", json={"voter_id": 1, "name": "A", "age": "old"})
    assert r.status_code == 400
    assert "age" in r.json()["message"]


def test_uncaught_errors_become_500():
    class Broken:
        def verify(self, *args):
            raise RuntimeError("verifier offline")

    with TestClient(create_app(Settings(), proof_verifier=Broken()), raise_server_exceptions=False) as c:
        r = c.post("/api/ballots/encrypted", json={
            "election_id": "e", "ciphertext": "c", "zk_proof": "z", "voter_pubkey": "pk", "nullifier": "n",
            "signature": "s",
        })
    assert r.status_code == 500
    assert r.json() == {"message": "Something went wrong"}


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("ELECTION_DP_MAX_BUDGET", "2.5")
    monkeypatch.setenv("ELECTION_VOTE_ID_START", "1")
    monkeypatch.setenv("ELECTION_CORS_ORIGINS", "https://a.example, https://b.example")
    settings = Settings.from_env()
    assert settings.dp_max_budget == 2.5
    assert settings.cors_origins == ["https://a.example", "https://b.example"]

    with TestClient(create_app(settings)) as c:
        c.post("/api/voters", json={"voter_id": 1, "name": "A", "age": 20})
        c.post("/api/candidates", json={"candidate_id": 1, "name": "C", "party": "P"})
        assert c.post("/api/votes", json={"voter_id": 1, "candidate_id": 1}).json()["vote_id"] == 1
