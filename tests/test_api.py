"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real TaskIndex with a temp vault.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from cache.task_index import TaskIndex
from utils.marks import render_assignee_mark, render_delegate_mark

ALICE = render_assignee_mark("alice")
BOB = render_assignee_mark("bob")
DELEGATE = render_delegate_mark("carol-int", "Carol", "active", "internal")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()

    (vault / "Sprint.md").write_text(
        "# Sprint\n\n"
        f"- [ ] Write report {ALICE}\n"
        "    - [ ] Draft outline\n"
        f"    - [ ] Review {BOB}\n",
        encoding="utf-8",
    )
    return vault


@pytest.fixture
def vault(tmp_path):
    return _make_vault(tmp_path)


@pytest.fixture
def client(vault):
    index = TaskIndex()
    index.initialize(vault, set())
    return TestClient(create_app(index))


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------

class TestAssign:
    def test_assign(self, client, vault):
        r = client.post("/api/assign", json={"file_path": "Sprint.md", "line": 3, "alias": "bob"})
        assert r.status_code == 200
        data = r.json()
        assert data["edits"] == {"to_set": {"4": "alice"}, "to_remove": [5]}
        assert data["changed_lines"] == [3, 4, 5]

        text = (vault / "Sprint.md").read_text(encoding="utf-8")
        assert f"    - [ ] Draft outline {ALICE} \n" in text
        assert "    - [ ] Review\n" in text

    def test_unassign(self, client):
        r = client.post("/api/assign", json={"file_path": "Sprint.md", "line": 3, "alias": None})
        assert r.status_code == 200
        assert r.json()["new_alias"] is None

    def test_not_a_task_is_400(self, client):
        r = client.post("/api/assign", json={"file_path": "Sprint.md", "line": 1, "alias": "bob"})
        assert r.status_code == 400

    def test_missing_file_is_404(self, client):
        r = client.post("/api/assign", json={"file_path": "Nope.md", "line": 1, "alias": "bob"})
        assert r.status_code == 404

    def test_body_validated(self, client):
        r = client.post("/api/assign", json={"file_path": "Sprint.md"})
        assert r.status_code == 422


class TestCascade:
    def test_cascade_with_before_content(self, client, vault):
        path = vault / "Sprint.md"
        before = path.read_text(encoding="utf-8")
        path.write_text(before.replace(f"Write report {ALICE}", f"Write report {BOB}"), encoding="utf-8")

        r = client.post("/api/cascade", json={
            "file_path": "Sprint.md",
            "line": 3,
            "alias": "bob",
            "before_content": before,
        })
        assert r.status_code == 200
        assert r.json()["old_alias"] == "alice"
        assert f"Draft outline {ALICE}" in path.read_text(encoding="utf-8")

    def test_no_item_is_404(self, client):
        r = client.post("/api/cascade", json={"file_path": "Sprint.md", "line": 1, "alias": "bob"})
        assert r.status_code == 404


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestOwner:
    def test_owner(self, client):
        r = client.get("/api/owner", params={"file_path": "Sprint.md", "line": 4})
        assert r.status_code == 200
        assert r.json()["alias"] == "alice"
        assert r.json()["source_line"] == 3

    def test_line_must_be_positive(self, client):
        r = client.get("/api/owner", params={"file_path": "Sprint.md", "line": 0})
        assert r.status_code == 422

    def test_owned_tasks(self, client):
        r = client.get("/api/owners/bob/tasks")
        assert r.status_code == 200
        assert [t["line"] for t in r.json()] == [5]

    def test_tree(self, client):
        r = client.get("/api/tree", params={"file_path": "Sprint.md"})
        assert r.status_code == 200
        assert [c["line"] for c in r.json()["roots"][0]["children"]] == [4, 5]

    def test_tree_missing(self, client):
        assert client.get("/api/tree", params={"file_path": "Nope.md"}).status_code == 404

    def test_index_status(self, client):
        r = client.get("/api/index/status")
        assert r.status_code == 200
        assert r.json()["files_indexed"] == 1


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_line_untouched_slots(self, client):
        line = f"- [ ] Task {ALICE} → {DELEGATE} "
        r = client.post("/api/normalize/line", json={"line": line})
        assert r.json() == {"line": line, "changed": False}

    def test_line_null_clears(self, client):
        line = f"- [ ] Task {ALICE} → {DELEGATE}"
        r = client.post("/api/normalize/line", json={"line": line, "assignee": None})
        assert r.json()["line"] == "- [ ] Task"

    def test_line_replace_delegate(self, client):
        r = client.post("/api/normalize/line", json={"line": f"- [ ] Task {ALICE}", "delegate": DELEGATE})
        assert r.json()["line"] == f"- [ ] Task {ALICE} → {DELEGATE} "

    def test_file(self, client, vault):
        r = client.post("/api/normalize/file", json={"file_path": "Sprint.md"})
        assert r.status_code == 200
        assert r.json()["changed_lines"] == [3, 5]

    def test_file_missing(self, client):
        assert client.post("/api/normalize/file", json={"file_path": "Nope.md"}).status_code == 404
