"""Tests for /api/v1/jobs routes (eval, reeval, clear)."""

import uuid

from fastapi.testclient import TestClient

from shapescript.core.config import settings
from shapescript.core.jobs import get_job_registry
from shapescript.main import app
from tests.utils.scripts import MULTI_HANDLER_SCRIPT, SPHERE_SCRIPT


def _base(job_id: str) -> str:
    return f"{settings.API_V1_STR}/jobs/{job_id}"


def _job_id() -> str:
    return f"job-{uuid.uuid4().hex[:8]}"


def test_eval_returns_geometry_and_schema(client: TestClient) -> None:
    r = client.post(f"{_base(_job_id())}/eval", json={"script": SPHERE_SCRIPT})
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["geometry"] == "Sphere"
    assert data["bounds"]["xmin"] == -5.0
    assert data["bounds"]["zmax"] == 5.0
    assert data["log"] == "radius 5.0\n"
    assert data["error"] is None
    [radius] = data["params"]
    assert radius["name"] == "radius"
    assert radius["type"] == "DOUBLE"
    assert radius["value"] == 5.0
    assert radius["on_change"] == "main"


def test_eval_with_overrides(client: TestClient) -> None:
    r = client.post(
        f"{_base(_job_id())}/eval",
        json={"script": SPHERE_SCRIPT, "params": {"radius": "2"}},
    )
    assert r.status_code == 200
    assert r.json()["bounds"]["xmax"] == 2.0


def test_eval_script_fault_is_not_http_error(client: TestClient) -> None:
    r = client.post(f"{_base(_job_id())}/eval", json={"script": "x = 1\n"})
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is False
    assert data["error"] == "Cannot find main function"
    assert data["geometry"] is None
    assert data["bounds"] is None


def test_reeval_after_eval(client: TestClient) -> None:
    base = _base(_job_id())
    client.post(f"{base}/eval", json={"script": SPHERE_SCRIPT})
    r = client.post(f"{base}/reeval", json={"script": SPHERE_SCRIPT, "params": {"radius": "3"}})
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["bounds"]["ymin"] == -3.0
    assert data["params"][0]["value"] == 3.0


def test_reeval_unknown_job(client: TestClient) -> None:
    job_id = _job_id()
    r = client.post(f"{_base(job_id)}/reeval", json={"script": SPHERE_SCRIPT})
    assert r.status_code == 404
    assert r.json()["detail"] == f"Job not found: {job_id}"


def test_reeval_before_successful_eval(client: TestClient) -> None:
    base = _base(_job_id())
    client.post(f"{base}/eval", json={"script": "x = 1\n"})
    r = client.post(f"{base}/reeval", json={"script": SPHERE_SCRIPT, "params": {"radius": "3"}})
    assert r.status_code == 200
    assert r.json()["success"] is False
    assert r.json()["error"] == "Cannot reeval before a full evaluation"


def test_clear_job(client: TestClient) -> None:
    base = _base(_job_id())
    client.post(f"{base}/eval", json={"script": SPHERE_SCRIPT})
    r = client.delete(base)
    assert r.status_code == 200
    assert r.json() == {"message": "Job cleared"}
    r = client.delete(base)
    assert r.status_code == 404
    r = client.post(f"{base}/reeval", json={"script": SPHERE_SCRIPT})
    assert r.status_code == 404


def test_empty_script_rejected(client: TestClient) -> None:
    r = client.post(f"{_base(_job_id())}/eval", json={"script": ""})
    assert r.status_code == 422
    assert "script" in r.json()["detail"]


def test_unbounded_range_serialized_as_null(client: TestClient) -> None:
    r = client.post(f"{_base(_job_id())}/eval", json={"script": MULTI_HANDLER_SCRIPT})
    assert r.status_code == 200
    a = r.json()["params"][0]
    assert a["name"] == "a"
    assert a["range_min"] is None
    assert a["range_max"] is None


def test_jobs_released_on_shutdown() -> None:
    registry = get_job_registry()
    with TestClient(app) as c:
        c.post(f"{_base(_job_id())}/eval", json={"script": SPHERE_SCRIPT})
        assert len(registry) >= 1
    assert len(registry) == 0
