import json
import random
import threading

import pytest

from analytics import DPAnalyticsBudgetTracker
from capabilities import LaplaceMechanism
from errors import BudgetExceeded, InvalidDelta, InvalidEpsilon
from schemas import DPQuery

QUERY = {"type": "histogram", "dimension": "age_band", "buckets": ["18-29", "30-49", "50+"]}


class FixedNoise:
    def __init__(self):
        self.calls = []

    def histogram(self, buckets, epsilon, delta):
        self.calls.append((epsilon, delta))
        return {b: 7 for b in buckets}


def dp(client, epsilon, election_id="e1", delta=1e-6):
    return client.post("/api/analytics/dp", json={
        "election_id": election_id, "query": QUERY, "epsilon": epsilon, "delta": delta,
    })


def test_query_returns_histogram_and_remaining_budget(client):
    r = dp(client, 0.25)
    assert r.status_code == 200
    body = r.json()
    assert set(body["histogram"]) == {"18-29", "30-49", "50+"}
    assert all(isinstance(v, int) and v >= 0 for v in body["histogram"].values())
    assert body["query_type"] == "histogram" and body["dimension"] == "age_band"
    assert body["epsilon_used"] == 0.25
    assert body["remaining_budget"] == pytest.approx(0.75)


def test_budget_exceeded_then_smaller_query_fits(client):
    assert dp(client, 0.6).status_code == 200
    r = dp(client, 0.5)
    assert r.status_code == 403
    assert r.json() == {"message": "Differential privacy budget exceeded for this election"}
    assert dp(client, 0.4).status_code == 200
    assert client.get("/api/analytics/dp/e1/budget").json()["spent"] == pytest.approx(1.0)


def test_budgets_are_per_election(client):
    assert dp(client, 0.9, election_id="a").status_code == 200
    assert dp(client, 0.9, election_id="b").status_code == 200


def test_validation(client):
    assert dp(client, 0).status_code == 400
    assert dp(client, -1).status_code == 400
    assert dp(client, 0.1, delta=1.5).status_code == 400
    r = client.post("/api/analytics/dp", json={
        "election_id": "e1", "query": {**QUERY, "buckets": []}, "epsilon": 0.1, "delta": 0,
    })
    assert r.status_code == 400
    # rejected queries spend nothing
    assert client.get("/api/analytics/dp/e1/budget").json()["remaining_budget"] == pytest.approx(1.0)


def test_tracker_passes_parameters_to_mechanism():
    noise = FixedNoise()
    tracker = DPAnalyticsBudgetTracker(noise, max_budget=0.5)
    result = tracker.query("e", DPQuery(**QUERY), 0.5, 0.01)
    assert result["histogram"] == {"18-29": 7, "30-49": 7, "50+": 7}
    assert noise.calls == [(0.5, 0.01)]
    with pytest.raises(BudgetExceeded):
        tracker.query("e", DPQuery(**QUERY), 0.01, 0.0)
    assert len(noise.calls) == 1
    assert tracker.spent("e") == 0.5


def test_laplace_mechanism_centres_on_true_count():
    mechanism = LaplaceMechanism(counts=lambda bucket: 1000, rng=random.Random(11))
    samples = [mechanism.histogram(["x"], 1.0, 0)["x"] for _ in range(500)]
    assert abs(sum(samples) / len(samples) - 1000) < 1


def test_non_finite_epsilon_or_delta_never_touches_the_budget():
    noise = FixedNoise()
    tracker = DPAnalyticsBudgetTracker(noise)
    for epsilon, delta, error in [
        (float("nan"), 0.0, InvalidEpsilon),
        (float("inf"), 0.0, InvalidEpsilon),
        (0.1, float("nan"), InvalidDelta),
    ]:
        with pytest.raises(error):
            tracker.query("e", DPQuery(**QUERY), epsilon, delta)
    assert tracker.spent("e") == 0
    assert noise.calls == []
    tracker.query("e", DPQuery(**QUERY), 0.9, 0.0)
    with pytest.raises(BudgetExceeded):
        tracker.query("e", DPQuery(**QUERY), 0.9, 0.0)


def test_nan_literal_in_request_body_is_rejected(client):
    body = '{"election_id": "e1", "query": %s, "epsilon": NaN, "delta": 0}' % json.dumps(QUERY)
    r = client.post("/api/analytics/dp", content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"message": "epsilon must be a positive number"}
    body = '{"election_id": "e1", "query": %s, "epsilon": 0.1, "delta": NaN}' % json.dumps(QUERY)
    r = client.post("/api/analytics/dp", content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert client.get("/api/analytics/dp/e1/budget").json()["spent"] == 0


@pytest.mark.parametrize("field, value", [("epsilon", "0.5"), ("epsilon", True), ("delta", "0"), ("delta", False)])
def test_epsilon_and_delta_must_be_json_numbers(client, field, value):
    body = {"election_id": "e1", "query": QUERY, "epsilon": 0.5, "delta": 0}
    body[field] = value
    assert client.post("/api/analytics/dp", json=body).status_code == 400
    assert client.get("/api/analytics/dp/e1/budget").json()["spent"] == 0


def test_concurrent_queries_cannot_overspend():
    tracker = DPAnalyticsBudgetTracker(FixedNoise(), max_budget=1.0)
    accepted = []
    barrier = threading.Barrier(10)

    def ask():
        barrier.wait()
        try:
            tracker.query("e", DPQuery(**QUERY), 0.3, 0.0)
            accepted.append(1)
        except BudgetExceeded:
            pass

    threads = [threading.Thread(target=ask) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(accepted) == 3
    assert tracker.spent("e") <= 1.0
