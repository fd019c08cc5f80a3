from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from shapescript.engines.evaluator import ShapeEvaluator
from shapescript.main import app


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    # Leaving the block runs the app lifespan, which releases every job.
    with TestClient(app) as c:
        yield c


@pytest.fixture
def evaluator() -> Generator[ShapeEvaluator, None, None]:
    """Evaluator with the watchdog disabled."""
    ev = ShapeEvaluator(timeout=0)
    yield ev
    ev.clear_job()
