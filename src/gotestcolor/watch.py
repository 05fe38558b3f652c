"""Loop mode: re-run the tests whenever Go sources change."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .index import DEFAULT_EXCLUDE_DIRS, SOURCE_SUFFIX

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0


class GoSourceChangeHandler(FileSystemEventHandler):
    """Flags changes to ``.go`` files outside excluded directories."""

    def __init__(self, root: str, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS):
        super().__init__()
        self.root = os.path.abspath(root)
        self.exclude_dirs = tuple(exclude_dirs)
        self.changed = threading.Event()
        self.last_path: Optional[str] = None

    def is_relevant(self, path: str) -> bool:
        if not path.endswith(SOURCE_SUFFIX):
            return False
        rel = os.path.relpath(os.path.abspath(path), self.root)
        parts = rel.replace(os.sep, "/").split("/")[:-1]
        return not any(
            part in self.exclude_dirs or part.startswith((".", "_"))
            for part in parts
            if part not in ("", ".", "..")
        )

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        for path in (event.src_path, getattr(event, "dest_path", None)):
            if isinstance(path, bytes):
                path = os.fsdecode(path)
            if path and self.is_relevant(path):
                self.last_path = path
                self.changed.set()
                return


class SourceWatcher:
    """
    Watches a project tree for Go source changes

    Use as a context manager; :meth:`wait_for_change` blocks until a change
    has been seen and no further change arrived for ``debounce`` seconds.
    """

    def __init__(
        self,
        root: str,
        debounce: float = 0.5,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    ):
        self.root = os.path.abspath(root)
        self.debounce = debounce
        self.handler = GoSourceChangeHandler(self.root, exclude_dirs)
        self.observer = None

    def __enter__(self):
        self.observer = Observer()
        self.observer.schedule(self.handler, self.root, recursive=True)
        self.observer.start()
        logger.debug(f"Watching {self.root} for Go source changes")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    def clear(self) -> None:
        self.handler.changed.clear()

    def wait_for_change(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Block until a Go source file changes

        Args:
            timeout: Give up after this many seconds (None waits forever)

        Returns:
            Path of the last changed file, or None on timeout
        """
        changed = self.handler.changed
        waited = 0.0
        while not changed.wait(POLL_INTERVAL if timeout is None else min(POLL_INTERVAL, timeout)):
            waited += POLL_INTERVAL
            if timeout is not None and waited >= timeout:
                return None

        # let bursts of saves settle
        while True:
            changed.clear()
            if not changed.wait(self.debounce):
                break
        return self.handler.last_path


def run_loop(
    run_once: Callable[[], int],
    root: str,
    debounce: float = 0.5,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    on_wait: Optional[Callable[[], None]] = None,
) -> int:
    """
    Run, then re-run after every source change until interrupted

    Returns:
        Exit code of the last completed run
    """
    exit_code = 0
    with SourceWatcher(root, debounce, exclude_dirs) as watcher:
        try:
            while True:
                exit_code = run_once()
                watcher.clear()
                if on_wait is not None:
                    on_wait()
                path = watcher.wait_for_change()
                logger.info(f"Change detected in {path}, running again")
        except KeyboardInterrupt:
            logger.debug("Loop mode interrupted")
    return exit_code
