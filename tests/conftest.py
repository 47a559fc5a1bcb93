# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from api.main import app
from ptcdash.data import FLEET_IDS


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture
def locomotive_records():
    """48 locomotives with controlled values; no numeric field contains "805"."""
    return [
        {
            "id": loco_id,
            "runs": (i % 7) + 1,
            "miles": 100.0 + i,
            "ptc_active_percentage": float(85 + (i * 7) % 15),
            "faults": i % 5,
        }
        for i, loco_id in enumerate(FLEET_IDS)
    ]
