import pytest
from starlette.testclient import TestClient

from midpointfinder.api.app import app

PAYLOAD = {
    "points_a": [{"lat": 0.0, "lon": 0.0}, {"lat": 10.0, "lon": 10.0}],
    "points_b": [{"lat": 0.0, "lon": 90.0}, {"lat": -10.0, "lon": 50.0}, {"lat": 20.0, "lon": 30.0}],
    "target": {"lat": 0.0, "lon": 45.0},
    "top_n": 3,
}


def test_api_combinations_returns_ranked_results():
    with TestClient(app) as c:
        resp = c.post("/api/combinations", json=PAYLOAD)
    assert resp.status_code == 200
    data = resp.json()
    assert data["meta"]["total_combinations"] == 6
    assert len(data["results"]) == 3
    assert data["results"][0]["index_a"] == 0
    assert data["results"][0]["index_b"] == 0
    assert data["results"][0]["score_km"] < 1e-6


def test_api_combinations_rejects_invalid_coordinates():
    bad = {**PAYLOAD, "target": {"lat": 95.0, "lon": 0.0}}
    with TestClient(app) as c:
        resp = c.post("/api/combinations", json=bad)
    assert resp.status_code == 422


def test_api_combinations_maps_value_errors_to_400():
    bad = {**PAYLOAD, "settings_overrides": {"engine": {"max_combinations": 1}}}
    with TestClient(app) as c:
        resp = c.post("/api/combinations", json=bad)
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"
    assert "engine.max_combinations" in resp.json()["detail"]["message"]


def test_api_midpoints_and_count():
    with TestClient(app) as c:
        mids = c.post("/api/midpoints", json={"points_a": PAYLOAD["points_a"], "points_b": PAYLOAD["points_b"]})
        count = c.get("/api/combinations/count", params={"num_a": 3, "num_b": 4})
    assert mids.status_code == 200
    assert len(mids.json()["midpoints"]) == 6
    assert mids.json()["tiles"] is None
    assert count.json()["count"] == 12


def test_api_flat_endpoints():
    body = {"points_a": [0.0, 0.0], "points_b": [0.0, 90.0], "target_lat": 0.0, "target_lon": 45.0, "top_n": 5}
    with TestClient(app) as c:
        ranked = c.post("/api/flat/combinations", json=body)
        odd = c.post("/api/flat/combinations", json={**body, "points_a": [0.0, 0.0, 1.0]})
        mids = c.post("/api/flat/midpoints", json={"points_a": [0.0, 0.0], "points_b": [0.0, 90.0]})
    assert ranked.status_code == 200
    assert ranked.json()["count"] == 1
    assert len(ranked.json()["values"]) == 5
    assert odd.status_code == 400
    assert mids.json()["values"][1] == pytest.approx(45.0)


def test_api_reflections_settings_and_health():
    with TestClient(app) as c:
        refl = c.post(
            "/api/reflections",
            json={"sources": [{"lat": 0.0, "lon": 10.0}], "target": {"lat": 0.0, "lon": 0.0}},
        )
        settings = c.get("/api/settings")
        health = c.get("/api/health")
    assert refl.status_code == 200
    assert len(refl.json()["reflections"]) == 1
    assert settings.json()["engine"]["default_top_n"] >= 0
    assert health.json()["status"] == "ok"
