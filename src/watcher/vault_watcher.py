"""
Keeps the task index in step with Markdown files edited outside the server.

Filesystem events are not reliable on every mount the vault may live on
(network shares, container bind mounts), so changes are found by comparing
mtimes between poll cycles. Every new, modified or deleted note is handed to
TaskIndex.enqueue_refresh(); the index worker does the re-parse.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

log = logging.getLogger(__name__)

# Seconds between poll cycles when POLL_INTERVAL is not set
_DEFAULT_POLL_INTERVAL = 5.0


@dataclass
class NoteChanges:
    """Notes that differ between two mtime snapshots."""

    added: List[Path] = field(default_factory=list)
    modified: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)

    def all(self) -> List[Path]:
        return self.added + self.modified + self.removed


def diff_snapshots(before: Dict[Path, float], after: Dict[Path, float]) -> NoteChanges:
    changes = NoteChanges()
    for path, mtime in after.items():
        seen = before.get(path)
        if seen is None:
            changes.added.append(path)
        elif mtime > seen:
            changes.modified.append(path)
    changes.removed = [path for path in before if path not in after]
    return changes


class VaultWatcher:
    """
    Polls the vault for note changes and feeds them to a TaskIndex.

    The index decides which files belong to the vault (suffix and excluded
    directories); the watcher only tracks their mtimes.

        watcher = VaultWatcher(index)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, index, poll_interval: Optional[float] = None) -> None:
        self._index = index
        self._poll_interval = poll_interval or float(
            os.environ.get("POLL_INTERVAL", _DEFAULT_POLL_INTERVAL)
        )
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._known_files: Dict[Path, float] = {}

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    def start(self) -> None:
        """Take a baseline snapshot and start polling in a daemon thread."""
        self._known_files = self.snapshot_files()
        log.info(
            "Watching %d notes (polling every %.1fs)", len(self._known_files), self._poll_interval
        )
        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="note-watcher"
        )
        self._thread.start()

    def stop(self) -> None:
        log.info("Stopping note watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            try:
                self.check_for_changes()
            except Exception:
                log.exception("Note poll cycle failed")

    def check_for_changes(self) -> int:
        """One poll cycle. Returns the number of refreshes enqueued."""
        current = self.snapshot_files()
        changes = diff_snapshots(self._known_files, current)
        self._known_files = current

        for path in changes.all():
            self._index.enqueue_refresh(path)
        if changes.all():
            log.debug(
                "Notes changed: %d added, %d modified, %d removed",
                len(changes.added), len(changes.modified), len(changes.removed),
            )
        return len(changes.all())

    def snapshot_files(self) -> Dict[Path, float]:
        """{path: mtime} for every note the index covers."""
        snapshot: Dict[Path, float] = {}
        try:
            for path in self._index.walk_markdown_files():
                try:
                    snapshot[path] = path.stat().st_mtime
                except OSError:
                    # Deleted between the walk and the stat
                    continue
        except OSError:
            log.exception("Could not walk the vault")
        return snapshot
