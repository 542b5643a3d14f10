from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    monkeypatch.setenv("NOTES_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("API_AUTH_MODE", raising=False)
    from main import create_app

    return TestClient(create_app())


def test_folder_and_note_lifecycle(client) -> None:
    f1 = client.post("/folders", json={"title": "Work"}).json()["id"]
    created = client.post("/notes", json={"title": "Plan", "content": "x", "tags": ["a", "b"], "parentId": f1})
    assert created.status_code == 200
    nid = created.json()["id"]

    children = client.get("/entries", params={"parentId": f1}).json()["items"]
    assert [c["id"] for c in children] == [nid]
    assert children[0]["orderIndex"] == 1
    root = client.get("/entries").json()["items"]
    assert [r["id"] for r in root] == [f1]

    r = client.get(f"/entries/{nid}")
    assert r.status_code == 200
    assert r.json()["tags"] == ["a", "b"]
    assert r.json()["parentId"] == f1

    patched = client.patch(f"/entries/{nid}", json={"title": "Plan v2", "sourceUrl": "https://a.test"})
    assert patched.status_code == 200
    assert patched.json()["title"] == "Plan v2"
    assert patched.json()["sourceUrl"] == "https://a.test"
    assert patched.json()["content"] == "x"


def test_errors_map_to_status_codes(client) -> None:
    f1 = client.post("/folders", json={"title": "F1"}).json()["id"]
    nid = client.post("/notes", json={"title": "n"}).json()["id"]

    assert client.get("/entries/ghost").status_code == 404
    assert client.patch("/entries/ghost", json={"title": "x"}).status_code == 404

    cyc = client.post(f"/entries/{f1}/move", json={"targetFolderId": f1})
    assert cyc.status_code == 409
    assert cyc.json()["detail"] == "cycle"

    bad = client.post(f"/entries/{nid}/move", json={"targetFolderId": nid})
    assert bad.status_code == 400
    assert bad.json()["detail"].startswith("invalid_target")

    assert client.post("/notes", json={"title": "x", "parentId": "ghost"}).status_code == 400
    assert client.patch(f"/entries/{nid}", json={"parentId": f1}).status_code == 422


def test_cascade_delete_and_idempotent_delete(client) -> None:
    f1 = client.post("/folders", json={"title": "F1"}).json()["id"]
    n1 = client.post("/notes", json={"title": "N1", "parentId": f1}).json()["id"]
    f2 = client.post("/folders", json={"title": "F2", "parentId": f1}).json()["id"]
    n2 = client.post("/notes", json={"title": "N2", "parentId": f2}).json()["id"]

    first = client.delete(f"/entries/{f1}")
    assert first.status_code == 200
    assert set(first.json()["removed"]) == {f1, n1, f2, n2}

    second = client.delete(f"/entries/{f1}")
    assert second.status_code == 200
    assert second.json()["removed"] == []
    assert client.get("/entries/all").json()["items"] == []


def test_move_and_reorder(client) -> None:
    a = client.post("/folders", json={"title": "A"}).json()["id"]
    b = client.post("/folders", json={"title": "B"}).json()["id"]
    moved = client.post(f"/entries/{b}/move", json={"targetFolderId": a})
    assert moved.status_code == 200
    assert moved.json()["parentId"] == a

    path = client.get(f"/folders/{b}/path").json()["items"]
    assert [p["id"] for p in path] == [a, b]

    back = client.post(f"/entries/{a}/move", json={"targetFolderId": b})
    assert back.status_code == 409

    reordered = client.post(f"/entries/{b}/reorder", json={"orderIndex": 42})
    assert reordered.json()["orderIndex"] == 42


def test_tags_and_graph_endpoints(client) -> None:
    n1 = client.post("/notes", json={"title": "1", "tags": ["a", "b"]}).json()["id"]
    client.post("/notes", json={"title": "2", "tags": ["a", "b", "c"]})

    assert client.get("/tags").json()["items"] == ["a", "b", "c"]

    graph = client.get("/tags/graph").json()
    assert {n["id"] for n in graph["nodes"]} == {"a", "b", "c"}
    links = {(l["source"], l["target"]): l["value"] for l in graph["links"]}
    assert links == {("a", "b"): 2, ("a", "c"): 1, ("b", "c"): 1}

    tagged = client.post(f"/notes/{n1}/tags", json={"tag": "d"})
    assert tagged.json()["tags"] == ["a", "b", "d"]
    untagged = client.delete(f"/notes/{n1}/tags/a")
    assert untagged.json()["tags"] == ["b", "d"]

    by_tag = client.get("/entries", params={"tag": "d"}).json()["items"]
    assert [e["id"] for e in by_tag] == [n1]


def test_sorted_listing_puts_folders_first(client) -> None:
    n = client.post("/notes", json={"title": "b-note"}).json()["id"]
    f = client.post("/folders", json={"title": "z-folder"}).json()["id"]
    items = client.get("/entries", params={"sort": "title_asc"}).json()["items"]
    assert [i["id"] for i in items] == [f, n]
    assert client.get("/entries", params={"sort": "bogus"}).status_code == 422


def test_scratchpad_endpoints(client) -> None:
    pad = client.get("/scratchpad").json()
    assert pad["id"] == "@Scratchpad"
    client.patch("/entries/@Scratchpad", json={"content": "stuff"})
    cleared = client.post("/scratchpad/clear").json()
    assert cleared["content"].startswith("# Scratchpad")


def test_legacy_file_is_migrated_on_startup(tmp_path, monkeypatch) -> None:
    (tmp_path / "storage.json").write_text(
        json.dumps({"extension-notes": [{"id": "old", "title": "Old", "content": "", "createdAt": 1, "updatedAt": 1}]}),
        encoding="utf-8",
    )
    monkeypatch.setenv("NOTES_DATA_DIR", str(tmp_path))
    from main import create_app

    client = TestClient(create_app())

    stored = json.loads((tmp_path / "storage.json").read_text(encoding="utf-8"))["extension-notes"]
    assert stored[0]["type"] == "note"
    assert stored[0]["parentId"] is None
    assert client.get("/entries").json()["items"][0]["id"] == "old"
