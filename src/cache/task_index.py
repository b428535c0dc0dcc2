"""
Thread-safe in-memory index of the task trees in a vault.

Design:
    Primary store: Dict[Path, CachedFile]   (one parsed TaskTree per Markdown file)

All mutations acquire _lock (threading.RLock).
The file watcher queues paths on _update_queue; a worker thread drains it.
A tree can also be rebuilt from unsaved buffer content with
refresh(path, content=...), which is how an editor keeps the index in step
with edits it has not written yet.
"""

import logging
import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

from models.task import CachedFile, TaskNode, TaskTree
from parsers.task_parser import parse_content

log = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class TaskIndex:
    """
    In-memory index of every Markdown file's list structure.

    Initialize with initialize(), then start the background worker with
    start_worker(). The watcher calls enqueue_refresh() to schedule file
    re-parses without blocking the watcher thread.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._files: Dict[Path, CachedFile] = {}
        self._vault_root: Optional[Path] = None
        self._exclude_dirs: Set[str] = set()
        self._update_queue: "queue.Queue[Optional[Path]]" = queue.Queue()
        self._worker_thread: Optional[threading.Thread] = None
        self._last_full_scan: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def initialize(self, vault_root: Path, exclude_dirs: Set[str]) -> None:
        """
        Full vault scan. Blocks until complete.
        Call once at server startup before starting the watcher.
        """
        self._vault_root = vault_root
        self._exclude_dirs = set(exclude_dirs)
        log.info("Starting vault scan: %s", vault_root)
        for path in self.walk_markdown_files():
            self._load_file(path)
        self._last_full_scan = datetime.now()
        log.info(
            "Vault scan complete: %d files, %d list items",
            len(self._files),
            sum(len(c.tree.nodes) for c in self._files.values()),
        )

    def start_worker(self) -> None:
        """Start the background queue-drain worker thread (daemon)."""
        self._worker_thread = threading.Thread(
            target=self._worker_loop, daemon=True, name="task-index-worker"
        )
        self._worker_thread.start()

    def stop_worker(self) -> None:
        """Signal the worker thread to stop and wait for it."""
        self._update_queue.put(None)  # sentinel
        if self._worker_thread:
            self._worker_thread.join(timeout=5)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def vault_root(self) -> Optional[Path]:
        return self._vault_root

    def resolve_path(self, path) -> Path:
        """Absolute path for a vault-relative or absolute path."""
        p = Path(path)
        if not p.is_absolute() and self._vault_root is not None:
            p = self._vault_root / p
        return p

    def is_excluded(self, path: Path) -> bool:
        if self._vault_root is None:
            return False
        try:
            rel = path.relative_to(self._vault_root)
        except ValueError:
            return False
        return any(part in self._exclude_dirs for part in rel.parts[:-1])

    def walk_markdown_files(self) -> Iterator[Path]:
        """Yield every Markdown file under the vault root, respecting exclusions."""
        if self._vault_root is None:
            return
        for path in self._vault_root.rglob(f"*{MARKDOWN_SUFFIX}"):
            if path.is_file() and not self.is_excluded(path):
                yield path

    # ------------------------------------------------------------------
    # Internal loading
    # ------------------------------------------------------------------

    def _load_file(self, path: Path) -> None:
        """Parse a file from disk and store it (no lock, internal use)."""
        try:
            mtime = path.stat().st_mtime
            content = path.read_text(encoding="utf-8")
            self._files[path] = CachedFile(
                file_path=path, tree=parse_content(content, path), mtime=mtime
            )
        except Exception:
            log.exception("Failed to parse %s", path)

    def _worker_loop(self) -> None:
        """Drain the update queue, re-parsing files as they arrive."""
        while True:
            item = self._update_queue.get()
            if item is None:  # sentinel → stop
                break
            try:
                self.refresh(item)
            except Exception:
                log.exception("Worker failed to refresh %s", item)

    # ------------------------------------------------------------------
    # Public refresh methods
    # ------------------------------------------------------------------

    def enqueue_refresh(self, path: Path) -> None:
        """
        Schedule a file re-parse from a watcher callback (non-blocking).
        """
        self._update_queue.put(path)

    def refresh(self, path, content: Optional[str] = None) -> None:
        """
        Bring the tree for one file up to date.

        With content, the tree is rebuilt from that text regardless of what
        is on disk. Without it, the file is re-parsed only if its mtime is
        newer than the cached one, and dropped if it no longer exists.
        Thread-safe; blocks on _lock.
        """
        path = self.resolve_path(path)
        if path.suffix != MARKDOWN_SUFFIX:
            return

        if content is not None:
            try:
                mtime = path.stat().st_mtime
            except OSError:
                mtime = 0.0
            with self._lock:
                self._files[path] = CachedFile(
                    file_path=path, tree=parse_content(content, path), mtime=mtime
                )
            return

        if not path.exists():
            self._remove_file(path)
            return

        try:
            mtime = path.stat().st_mtime
        except OSError:
            return

        with self._lock:
            existing = self._files.get(path)
            if existing and existing.mtime >= mtime:
                return  # Already up to date
            self._load_file(path)

    def _remove_file(self, path: Path) -> None:
        """Remove a deleted file from the index."""
        with self._lock:
            if self._files.pop(path, None) is not None:
                log.info("Dropped %s from index", path)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_tree(self, path) -> Optional[TaskTree]:
        with self._lock:
            cached = self._files.get(self.resolve_path(path))
            return cached.tree if cached else None

    def find_node(self, path, line0: int) -> Optional[TaskNode]:
        """The list item on a 0-based line of an indexed file."""
        tree = self.get_tree(path)
        return tree.find_by_line(line0) if tree else None

    def files(self) -> List[Path]:
        with self._lock:
            return sorted(self._files)

    def trees(self) -> List[TaskTree]:
        with self._lock:
            return [self._files[p].tree for p in sorted(self._files)]

    # ------------------------------------------------------------------
    # Status / diagnostics
    # ------------------------------------------------------------------

    def status(self) -> dict:
        with self._lock:
            return {
                "files_indexed": len(self._files),
                "items_indexed": sum(len(c.tree.nodes) for c in self._files.values()),
                "tasks_indexed": sum(
                    1 for c in self._files.values() for n in c.tree.nodes.values() if n.is_task
                ),
                "last_full_scan": self._last_full_scan.isoformat() if self._last_full_scan else None,
                "vault_root": str(self._vault_root) if self._vault_root else None,
                "exclude_dirs": sorted(self._exclude_dirs),
            }

    def is_file_stale(self, path) -> bool:
        """Return True if file has been modified since last parse."""
        path = self.resolve_path(path)
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return False
        with self._lock:
            cached = self._files.get(path)
            return cached is None or cached.mtime < mtime
