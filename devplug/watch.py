"""Watching files for changes and processes for signals."""

from __future__ import annotations

import errno
import os
import queue
import signal

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer


class _Forwarder(FileSystemEventHandler):
    def __init__(self, watcher: "_FileWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._watcher._dispatch(event)


class _FileWatcher:
    """Delivers file system events for a set of paths onto ``events``."""

    def __init__(self, files) -> None:
        self.events: queue.Queue[FileSystemEvent] = queue.Queue()
        self._files: set[str] = set()
        self._dirs: set[str] = set()
        for name in files:
            path = os.path.abspath(os.fspath(name))
            if not os.path.exists(path):
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
            if os.path.isdir(path):
                self._dirs.add(path)
            else:
                self._files.add(path)

        self._observer = Observer()
        handler = _Forwarder(self)
        for directory in self._dirs | {os.path.dirname(p) for p in self._files}:
            self._observer.schedule(handler, directory, recursive=False)
        self._observer.start()

    def _wants(self, path: str) -> bool:
        return (
            path in self._files
            or path in self._dirs
            or os.path.dirname(path) in self._dirs
        )

    def _dispatch(self, event: FileSystemEvent) -> None:
        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)
        if any(self._wants(os.path.abspath(os.fsdecode(p))) for p in paths):
            self.events.put(event)

    def close(self) -> None:
        """Stop watching."""
        self._observer.stop()
        self._observer.join()

    def __enter__(self) -> "_FileWatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def watch_files(*files) -> _FileWatcher:
    """Start watching the given files and directories; raises if one is missing."""
    return _FileWatcher(files)


def watch_signals(*signals) -> "queue.Queue[signal.Signals]":
    """Return a queue of size one that receives the given signals as they arrive."""
    received: queue.Queue[signal.Signals] = queue.Queue(maxsize=1)

    def _handler(signum, _frame) -> None:
        try:
            received.put_nowait(signal.Signals(signum))
        except queue.Full:
            pass

    for sig in signals:
        signal.signal(sig, _handler)
    return received