import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# CORS stays off unless a test opts in
os.environ.setdefault("ALLOWED_ORIGINS", "")
os.environ.setdefault("ALLOW_CREDENTIALS", "false")


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from app.main import app

    return TestClient(app)
