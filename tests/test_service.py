"""
Tests for cascade/service.py.

Covers:
- apply_assignee_change on an editor buffer (no index) and on a file with an index
- cascade_after_external_change with explicit and inferred previous aliases
- effective_owner, owned_tasks, normalize_file
- Err results: parse-miss, missing-node, missing-index-entry
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from cache.task_index import TaskIndex
from cascade.applicator import EditorBuffer, FileSnapshot
from cascade.service import (
    apply_assignee_change,
    cascade_after_external_change,
    effective_owner,
    normalize_file,
    owned_tasks,
)
from models.edits import CascadeError, Err, Ok
from utils.marks import Team, render_assignee_mark, render_delegate_mark

ALICE = render_assignee_mark("alice")
BOB = render_assignee_mark("bob")
EVERYONE = render_assignee_mark("team")
DELEGATE = render_delegate_mark("carol-int", "Carol", "active", "internal")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()

    (vault / "Sprint.md").write_text(
        "# Sprint\n\n"
        f"- [ ] Root {ALICE}\n"
        "    - [ ] Child\n"
        f"        - [ ] Owned by bob {BOB}\n"
        "- [ ] Unowned\n",
        encoding="utf-8",
    )

    (vault / "projects").mkdir()
    (vault / "projects" / "Launch.md").write_text(
        f"- [x] Ship it {ALICE} ✅ 2026-01-05\n"
        "    - [ ] Follow-up\n",
        encoding="utf-8",
    )
    return vault


@pytest.fixture
def index(tmp_path):
    idx = TaskIndex()
    idx.initialize(_make_vault(tmp_path), set())
    return idx


def _buffer(*lines):
    return EditorBuffer("\n".join(lines))


# ---------------------------------------------------------------------------
# apply_assignee_change on an editor buffer
# ---------------------------------------------------------------------------

class TestApplyOnBuffer:
    def test_reassign_preserves_descendants(self):
        buf = _buffer(
            f"- [ ] Root {ALICE}",
            "    - [ ] Child",
            "        - [ ] Grandchild",
        )
        result = apply_assignee_change(buf, "t.md", 0, "bob")
        assert isinstance(result, Ok)
        report = result.value
        assert report.old_alias == "alice"
        assert report.new_alias == "bob"
        assert buf.get_line(0) == f"- [ ] Root {BOB} "
        assert buf.get_line(1) == f"    - [ ] Child {ALICE} "
        assert report.edits.to_set[1] == "alice"
        assert report.changed_lines[:2] == [0, 1]

    def test_alias_is_lowercased(self):
        buf = _buffer("- [ ] Task")
        report = apply_assignee_change(buf, "t.md", 0, "  Bob ").value
        assert report.new_alias == "bob"
        assert buf.get_line(0) == f"- [ ] Task {BOB} "

    def test_self_redundant_assignment_cleared(self):
        buf = _buffer(
            f"- [ ] Root {ALICE}",
            "    - [ ] Child",
        )
        report = apply_assignee_change(buf, "t.md", 1, "alice").value
        assert report.cleared_self is True
        assert buf.get_line(1) == "    - [ ] Child"
        assert report.changed_lines == []

    def test_unassign_pins_children(self):
        buf = _buffer(
            f"- [ ] Root {ALICE}",
            "    - [ ] Child",
        )
        report = apply_assignee_change(buf, "t.md", 0, None).value
        assert buf.get_line(0) == "- [ ] Root"
        assert buf.get_line(1) == f"    - [ ] Child {ALICE} "
        assert report.changed_lines == [0, 1]

    def test_everyone_clears_delegate(self):
        buf = _buffer(f"- [ ] Plan {ALICE} → {DELEGATE}")
        apply_assignee_change(buf, "t.md", 0, "team")
        assert buf.get_line(0) == f"- [ ] Plan {EVERYONE} "

    def test_everyone_name_assigns_team(self):
        buf = _buffer(
            f"- [ ] Plan {ALICE}",
            "    - [ ] Step",
        )
        report = apply_assignee_change(buf, "t.md", 0, "Everyone").value
        assert report.new_alias == "team"
        assert buf.get_line(0) == f"- [ ] Plan {EVERYONE} "
        assert buf.get_line(1) == f"    - [ ] Step {ALICE} "

    def test_numbered_and_plus_children_pinned(self):
        buf = _buffer(
            f"- [ ] Root {ALICE}",
            "    1. [ ] Numbered child",
            "    + [ ] Plus child",
        )
        report = apply_assignee_change(buf, "t.md", 0, "bob").value
        assert report.edits.to_set == {1: "alice", 2: "alice"}
        assert buf.get_line(1) == f"    1. [ ] Numbered child {ALICE} "
        assert buf.get_line(2) == f"    + [ ] Plus child {ALICE} "

    def test_variant_applies_to_changed_line_only(self):
        buf = _buffer(
            f"- [ ] Root {ALICE}",
            "    - [ ] Child",
        )
        apply_assignee_change(buf, "t.md", 0, "bob", variant="inactive")
        assert 'class="inactive-bob"' in buf.get_line(0)
        assert 'class="active-alice"' in buf.get_line(1)

    def test_team_roster_names(self):
        buf = _buffer("- [ ] Task")
        team = Team(name="Core", members={"jd": "Jane Doe"})
        apply_assignee_change(buf, "t.md", 0, "jd", team=team)
        assert "👋 Jane Doe" in buf.get_line(0)

    def test_explicit_old_alias(self):
        buf = _buffer(
            f"- [ ] Root {BOB}",
            "    - [ ] Child",
        )
        # The buffer already shows bob; the child keeps the previous owner
        report = apply_assignee_change(buf, "t.md", 0, "bob", old_alias="alice").value
        assert report.old_alias == "alice"
        assert buf.get_line(1) == f"    - [ ] Child {ALICE} "


class TestApplyErrors:
    def test_non_task_line(self):
        buf = _buffer("Just text", "- plain")
        for line0 in (0, 1):
            result = apply_assignee_change(buf, "t.md", line0, "bob")
            assert isinstance(result, Err)
            assert result.reason is CascadeError.PARSE_MISS

    def test_out_of_range(self):
        result = apply_assignee_change(_buffer("- [ ] Task"), "t.md", 5, "bob")
        assert result.reason is CascadeError.PARSE_MISS

    def test_task_inside_code_fence(self):
        buf = _buffer("```", "- [ ] In a fence", "```")
        result = apply_assignee_change(buf, "t.md", 1, "bob")
        assert isinstance(result, Err)
        assert result.reason is CascadeError.MISSING_NODE
        assert buf.get_value() == "```\n- [ ] In a fence\n```"

    def test_fenced_task_in_file_left_alone(self, index):
        path = index.vault_root / "Fenced.md"
        content = "```\n- [ ] In a fence\n```\n"
        path.write_text(content, encoding="utf-8")
        result = apply_assignee_change(FileSnapshot(path), path, 1, "bob", index=index)
        assert result.reason is CascadeError.MISSING_NODE
        assert path.read_text(encoding="utf-8") == content

    def test_file_not_indexable(self, index, tmp_path):
        buf = _buffer("- [ ] Task")
        result = apply_assignee_change(buf, tmp_path / "notes.txt", 0, "bob", index=index)
        assert result.reason is CascadeError.MISSING_INDEX_ENTRY
        assert buf.get_value() == "- [ ] Task"


# ---------------------------------------------------------------------------
# apply_assignee_change on a file, with the index
# ---------------------------------------------------------------------------

class TestApplyOnFile:
    def test_written_and_indexed(self, index):
        path = index.vault_root / "Sprint.md"
        result = apply_assignee_change(FileSnapshot(path), path, 2, "bob", index=index)
        report = result.value
        assert report.written is True

        text = path.read_text(encoding="utf-8")
        assert f"- [ ] Root {BOB} " in text
        assert f"    - [ ] Child {ALICE} " in text
        assert f"        - [ ] Owned by bob {BOB}\n" in text

        owner = effective_owner(index, path, 3).value
        assert owner["alias"] == "alice"
        assert owner["explicit"] is True

    def test_no_change_not_written(self, index):
        path = index.vault_root / "Canonical.md"
        path.write_text(f"- [ ] Root {ALICE} \n    - [ ] Child\n", encoding="utf-8")
        before = path.read_text(encoding="utf-8")
        report = apply_assignee_change(FileSnapshot(path), path, 0, "alice", index=index).value
        assert report.edits.is_empty
        assert report.written is False
        assert path.read_text(encoding="utf-8") == before


# ---------------------------------------------------------------------------
# cascade_after_external_change
# ---------------------------------------------------------------------------

class TestExternalChange:
    def _write_bob_root(self, index):
        path = index.vault_root / "Sprint.md"
        before = path.read_text(encoding="utf-8")
        path.write_text(before.replace(f"Root {ALICE}", f"Root {BOB}"), encoding="utf-8")
        return path, before

    def test_with_old_alias(self, index):
        path, _ = self._write_bob_root(index)
        report = cascade_after_external_change(index, "Sprint.md", 2, "bob", old_alias="alice").value
        assert report.edits.to_set[3] == "alice"
        assert report.written is True
        assert f"    - [ ] Child {ALICE} " in path.read_text(encoding="utf-8")

    def test_with_before_content(self, index):
        path, before = self._write_bob_root(index)
        report = cascade_after_external_change(index, path, 2, "bob", before_content=before).value
        assert report.old_alias == "alice"
        assert 3 in report.changed_lines

    def test_without_previous_alias_is_noop(self, index):
        self._write_bob_root(index)
        report = cascade_after_external_change(index, "Sprint.md", 2, "bob").value
        assert report.edits.is_empty
        assert report.written is False

    def test_missing_file(self, index):
        result = cascade_after_external_change(index, "Nope.md", 0, "bob")
        assert result.reason is CascadeError.MISSING_INDEX_ENTRY

    def test_line_without_item(self, index):
        result = cascade_after_external_change(index, "Sprint.md", 0, "bob", old_alias="alice")
        assert result.reason is CascadeError.MISSING_NODE


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestEffectiveOwner:
    def test_inherited(self, index):
        owner = effective_owner(index, "Sprint.md", 3).value
        assert owner == {
            "file_path": str(index.vault_root / "Sprint.md"),
            "line": 4,
            "alias": "alice",
            "source_line": 3,
            "explicit": False,
        }

    def test_unowned(self, index):
        owner = effective_owner(index, "Sprint.md", 5).value
        assert owner["alias"] is None
        assert owner["source_line"] is None

    def test_errors(self, index):
        assert effective_owner(index, "Nope.md", 0).reason is CascadeError.MISSING_INDEX_ENTRY
        assert effective_owner(index, "Sprint.md", 0).reason is CascadeError.MISSING_NODE


class TestOwnedTasks:
    def test_alice(self, index):
        tasks = owned_tasks(index, "Alice")
        lines = sorted((Path(t["file_path"]).name, t["line"]) for t in tasks)
        assert lines == [("Launch.md", 1), ("Launch.md", 2), ("Sprint.md", 3), ("Sprint.md", 4)]

    def test_explicit_flag_and_status(self, index):
        tasks = {t["line"]: t for t in owned_tasks(index, "alice") if t["file_path"].endswith("Launch.md")}
        assert tasks[1]["explicit"] is True
        assert tasks[1]["status"] == "x"
        assert tasks[2]["explicit"] is False
        assert tasks[2]["text"] == "- [ ] Follow-up"

    def test_blank_alias(self, index):
        assert owned_tasks(index, "  ") == []


class TestNormalizeFile:
    def test_rewrites_task_lines(self, index):
        path = index.vault_root / "Messy.md"
        path.write_text(f"Intro\n- [ ] 📅 2026-03-01 {ALICE} Write\n", encoding="utf-8")
        result = normalize_file(index, "Messy.md").value
        assert result["changed_lines"] == [2]
        assert result["written"] is True
        assert path.read_text(encoding="utf-8") == f"Intro\n- [ ] Write {ALICE} 📅 2026-03-01\n"

        again = normalize_file(index, "Messy.md").value
        assert again == {"file_path": str(path), "changed_lines": [], "written": False}

    def test_missing_file(self, index):
        assert normalize_file(index, "Nope.md").reason is CascadeError.MISSING_INDEX_ENTRY
