from __future__ import annotations

from fastapi.testclient import TestClient


def test_request_id_header_present(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("NOTES_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("API_AUTH_MODE", raising=False)
    from main import create_app

    client = TestClient(create_app())
    r = client.get("/health")
    assert r.status_code == 200
    assert r.headers.get("x-request-id")

    echoed = client.get("/health", headers={"X-Request-ID": "abc"})
    assert echoed.headers.get("x-request-id") == "abc"


def test_bearer_auth_blocks_when_enabled(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("NOTES_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("API_AUTH_MODE", "bearer")
    monkeypatch.setenv("API_AUTH_TOKEN", "secret")

    from main import create_app

    client = TestClient(create_app())

    # Health is exempt so containers can be checked.
    r0 = client.get("/health")
    assert r0.status_code == 200

    r1 = client.get("/entries")
    assert r1.status_code == 401

    r2 = client.get("/entries", headers={"Authorization": "Bearer secret"})
    assert r2.status_code == 200


def test_memory_backend_leaves_no_files(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("NOTES_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("NOTES_STORE_BACKEND", "memory")
    monkeypatch.delenv("API_AUTH_MODE", raising=False)
    from main import create_app

    client = TestClient(create_app())
    assert client.post("/notes", json={"title": "ephemeral"}).status_code == 200
    assert list(tmp_path.iterdir()) == []
