import importlib
import os
import sys

import pytest
from fastapi.testclient import TestClient


def _cleanup_app_modules():
    for module in [name for name in sys.modules if name == "app" or name.startswith("app.")]:
        sys.modules.pop(module, None)


@pytest.fixture(autouse=True)
def app_import_isolation(monkeypatch):
    app_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    cleanup = _cleanup_app_modules
    cleanup()
    monkeypatch.syspath_prepend(app_path)
    try:
        yield
    finally:
        cleanup()


def test_rejects_wildcard_origin(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "*")
    monkeypatch.setenv("ALLOW_CREDENTIALS", "true")
    with pytest.raises(ValueError):
        importlib.import_module("app.main")


def test_cors_disabled_without_origins(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "")
    main = importlib.import_module("app.main")
    client = TestClient(main.app)
    resp = client.get("/healthz", headers={"Origin": "https://darts.example"})
    assert "access-control-allow-origin" not in resp.headers


def test_cors_allows_configured_origin(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://darts.example, https://admin.example")
    main = importlib.import_module("app.main")
    client = TestClient(main.app)
    resp = client.get("/healthz", headers={"Origin": "https://darts.example"})
    assert resp.headers["access-control-allow-origin"] == "https://darts.example"
