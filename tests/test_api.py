import pytest
from fastapi.testclient import TestClient

from quini_engine.api.deps import get_pipeline
from quini_engine.engine.pipeline import ReductionPipeline
from quini_engine.main import app


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def as_json(draws):
    return [d.model_dump(mode="json") for d in draws]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_generate_minimal_system(client):
    response = client.post("/api/v1/wheeling/generate", json={
        "base_numbers": [1, 5, 9, 13, 17, 21],
        "guarantee": {"hits_required": 4, "numbers_drawn": 5},
    })
    assert response.status_code == 200
    body = response.json()
    assert body["system"]["combinations"] == [[1, 5, 9, 13, 17, 21]]
    assert body["validation"]["valid"] is True
    assert body["validation"]["coverage"] == 100.0


def test_generate_rejects_small_base(client):
    response = client.post("/api/v1/wheeling/generate", json={"base_numbers": [1, 2, 3, 4, 5]})
    assert response.status_code == 422
    assert "at least 6" in response.json()["detail"]


def test_validate_partial_system(client):
    response = client.post("/api/v1/wheeling/validate", json={
        "base_numbers": [0, 1, 2, 3, 4, 5, 6, 7],
        "combinations": [[0, 1, 2, 3, 4, 5]],
        "guarantee": {"hits_required": 3, "numbers_drawn": 3},
    })
    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert body["covered"] == 20
    assert body["total"] == 56


def test_entropy_endpoint(client):
    response = client.post("/api/v1/wheeling/entropy", json={
        "combinations": [[5, 10, 15, 20, 25, 30], [0, 1, 3, 6, 10, 15]],
        "entropy_min": 0.3,
        "entropy_max": 0.9,
    })
    assert response.status_code == 200
    first, second = response.json()
    assert first["entropy"] == 0.0
    assert first["valid"] is False
    assert second["valid"] is True


def test_statistics_endpoint(client, small_history):
    response = client.post("/api/v1/analysis/statistics", json={"draws": as_json(small_history)})
    assert response.status_code == 200
    body = response.json()
    assert len(body["numbers"]) == 46
    assert body["period"]["total_draws"] == 4


def test_statistics_requires_draws(client):
    response = client.post("/api/v1/analysis/statistics", json={"draws": []})
    assert response.status_code == 400


def test_out_of_domain_draw_rejected(client, small_history):
    draws = as_json(small_history)
    draws[0]["numbers"] = [0, 1, 2, 3, 4, 46]
    response = client.post("/api/v1/analysis/statistics", json={"draws": draws})
    assert response.status_code == 422
    assert "outside domain" in response.json()["detail"]


def test_bias_endpoint(client, uniform_history):
    response = client.post("/api/v1/analysis/bias", json={"draws": as_json(uniform_history)})
    assert response.status_code == 200
    body = response.json()
    assert body["chi_square"]["biased"] is False
    assert len(body["runs_test"]["per_number"]) == 46


def test_deltas_endpoint(client, small_history):
    response = client.post("/api/v1/analysis/deltas", json={"draws": as_json(small_history)})
    assert response.status_code == 200
    assert response.json()["total"] == 20


def test_filters_endpoint(client):
    response = client.post("/api/v1/filters/apply", json={
        "combinations": [[1, 3, 5, 7, 9, 11], [2, 9, 16, 27, 33, 44]],
        "min_even": 2,
    })
    assert response.status_code == 200
    body = response.json()
    assert body["kept"] == [[2, 9, 16, 27, 33, 44]]
    assert body["applied"] == ["parity"]


def test_full_run_endpoint(client, synthetic_history):
    response = client.post("/api/v1/analysis/run", json={
        "draws": as_json(synthetic_history),
        "base_numbers": [1, 4, 9, 13, 18, 22, 27, 31, 36, 44],
    })
    assert response.status_code == 200
    body = response.json()
    assert body["validation"]["valid"] is True
    assert body["verdict"]["source"] in ("score", "fallback")
    assert len(body["verdict"]["top3"]) == 3
    assert body["ranking"][0]["rank"] == 1


def test_markov_endpoint(client, small_history):
    response = client.post("/api/v1/analysis/markov", json={"draws": as_json(small_history)})
    assert response.status_code == 200
    body = response.json()
    assert body["total_draws"] == 4
    # five transitions inside each draw, one between each consecutive pair
    assert body["total_transitions"] == 23
    assert body["strongest"][0]["probability"] <= 1.0


def test_run_uses_injected_pipeline(client, synthetic_history, sequential_evaluator):
    calls = []

    def pipeline_override():
        calls.append(1)
        return ReductionPipeline(evaluator=sequential_evaluator)

    app.dependency_overrides[get_pipeline] = pipeline_override
    try:
        response = client.post("/api/v1/analysis/run", json={
            "draws": as_json(synthetic_history),
            "base_numbers": [1, 4, 9, 13, 18, 22, 27, 31],
        })
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 200
    assert calls == [1]
    assert response.json()["degraded"] is False


def test_validate_rejects_oversized_draw(client):
    response = client.post("/api/v1/wheeling/validate", json={
        "base_numbers": [0, 1, 2, 3, 4, 5, 6],
        "combinations": [[0, 1, 2, 3, 4, 5]],
        "guarantee": {"hits_required": 3, "numbers_drawn": 8},
    })
    assert response.status_code == 422
    assert "Invalid guarantee" in response.json()["detail"]
