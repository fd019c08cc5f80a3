"""Tests for /api/v1/utils routes."""

from fastapi.testclient import TestClient

from shapescript.core.config import settings


def test_liveness(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/liveness/")
    assert r.status_code == 200
    assert r.json() is True
