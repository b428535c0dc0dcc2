"""
Tests for watcher/vault_watcher.py.

Drives check_for_changes() directly instead of waiting on the poll thread.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import os
from unittest.mock import Mock

import pytest

from cache.task_index import TaskIndex
from watcher.vault_watcher import VaultWatcher, diff_snapshots


def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "A.md").write_text("- [ ] A\n", encoding="utf-8")
    (vault / "notes").mkdir()
    (vault / "notes" / "B.md").write_text("- [ ] B\n", encoding="utf-8")
    (vault / ".trash").mkdir()
    (vault / ".trash" / "Old.md").write_text("- [ ] Old\n", encoding="utf-8")
    return vault


@pytest.fixture
def index(tmp_path):
    idx = TaskIndex()
    idx.initialize(_make_vault(tmp_path), {".trash"})
    idx.enqueue_refresh = Mock()
    return idx


@pytest.fixture
def watcher(index):
    w = VaultWatcher(index, poll_interval=0.1)
    w._known_files = w.snapshot_files()
    return w


def _enqueued(index):
    return {call.args[0].name for call in index.enqueue_refresh.call_args_list}


class TestDiffSnapshots:
    def test_classifies_changes(self):
        a, b, c = Path("a.md"), Path("b.md"), Path("c.md")
        changes = diff_snapshots({a: 1.0, b: 1.0}, {a: 2.0, c: 1.0})
        assert changes.added == [c]
        assert changes.modified == [a]
        assert changes.removed == [b]
        assert len(changes.all()) == 3

    def test_older_mtime_is_not_a_change(self):
        a = Path("a.md")
        assert diff_snapshots({a: 5.0}, {a: 4.0}).all() == []


class TestSnapshot:
    def test_excluded_dirs_skipped(self, watcher, index):
        names = {p.name for p in watcher.snapshot_files()}
        assert names == {"A.md", "B.md"}

    def test_poll_interval(self, index):
        assert VaultWatcher(index, poll_interval=2.5).poll_interval == 2.5

    def test_poll_interval_from_env(self, index, monkeypatch):
        monkeypatch.setenv("POLL_INTERVAL", "7")
        assert VaultWatcher(index).poll_interval == 7.0


class TestCheckForChanges:
    def test_no_changes(self, watcher, index):
        assert watcher.check_for_changes() == 0
        index.enqueue_refresh.assert_not_called()

    def test_first_cycle_enqueues_everything(self, index):
        assert VaultWatcher(index, poll_interval=0.1).check_for_changes() == 2

    def test_modified_file(self, watcher, index):
        path = index.vault_root / "A.md"
        st = path.stat()
        os.utime(path, (st.st_atime, st.st_mtime + 10))
        assert watcher.check_for_changes() == 1
        assert _enqueued(index) == {"A.md"}

    def test_new_file(self, watcher, index):
        (index.vault_root / "C.md").write_text("- [ ] C\n", encoding="utf-8")
        (index.vault_root / "C.txt").write_text("- [ ] ignored\n", encoding="utf-8")
        assert watcher.check_for_changes() == 1
        assert _enqueued(index) == {"C.md"}

    def test_deleted_file(self, watcher, index):
        (index.vault_root / "notes" / "B.md").unlink()
        assert watcher.check_for_changes() == 1
        assert _enqueued(index) == {"B.md"}
        # Not reported twice
        assert watcher.check_for_changes() == 0


class TestLifecycle:
    def test_start_stop(self, index):
        w = VaultWatcher(index, poll_interval=0.05)
        w.start()
        assert {p.name for p in w._known_files} == {"A.md", "B.md"}
        w.stop()
        assert not w._thread.is_alive()
