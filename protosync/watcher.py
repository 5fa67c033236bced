"""
File-system host: turns watchdog events into ``on_files_changed`` calls.

Events for ``.proto`` files are collected and debounced so that a save
touching several schemas becomes one batch (and one refresh).  Batches
are compiled on a worker thread; the refresh they schedule lands on the
main-thread queue, which the caller drains with
:func:`protosync.dispatch.run_tick_loop`.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from protosync.compiler import ProtoCompiler
from protosync.config import PROTO_EXTENSION, WATCH_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)


class _ProtoEventHandler(FileSystemEventHandler):
    """Forwards created/modified/moved ``.proto`` paths to the watcher."""

    def __init__(self, watcher: "ProtoWatcher") -> None:
        super().__init__()
        self.watcher = watcher

    def _maybe_add(self, path) -> None:
        path = str(path)
        if path.endswith(PROTO_EXTENSION):
            self.watcher.add(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._maybe_add(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._maybe_add(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._maybe_add(event.dest_path)


class ProtoWatcher:
    def __init__(
        self,
        compiler: ProtoCompiler,
        debounce: float = WATCH_DEBOUNCE_SECONDS,
    ) -> None:
        self.compiler = compiler
        self.debounce = debounce
        self._pending: Set[str] = set()
        self._lock = threading.Lock()
        #: Held for the whole of each compile pass.
        self._compile_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._observer: Optional[Observer] = None

    # ── Batching ──────────────────────────────────────────────────

    def add(self, path: str) -> None:
        """Record a changed path and (re)start the debounce timer."""
        with self._lock:
            self._pending.add(path)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        """Compile everything collected since the last flush."""
        with self._lock:
            batch = sorted(self._pending)
            self._pending.clear()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if not batch:
            return
        logger.debug("Change batch: %s", ", ".join(batch))
        with self._compile_lock:
            try:
                self.compiler.on_files_changed(batch)
            except Exception:
                logger.exception("Compiling changed .proto files failed")

    def compile_uncompiled(self) -> None:
        """Startup pass over protos that were never compiled."""
        with self._compile_lock:
            try:
                self.compiler.compile_uncompiled_only()
            except Exception:
                logger.exception("Compiling uncompiled .proto files failed")

    # ── Observer lifecycle ────────────────────────────────────────

    def start(self) -> None:
        root = Path(self.compiler.layout.project_root)
        self._observer = Observer()
        self._observer.schedule(_ProtoEventHandler(self), str(root), recursive=True)
        self._observer.start()
        logger.info("Watching %s for .proto changes", root)

    def stop(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        logger.info("Stopped watching.")
