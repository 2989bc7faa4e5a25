"""
Watch mode.

Watches a tree for Swift file changes and re-lints the most recently
modified files first. Optionally writes each result to a JSON log.

Usage:
    swiftstyle watch Sources/
    swiftstyle watch . --interval 1.0 --log ~/.swiftstyle/watch.json
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import LintConfig, should_exclude_path
from .engine import Linter
from .reporting import Diagnostic, Reporter

logger = logging.getLogger(__name__)


class _RecentQueue:
    """Thread-safe priority queue for recently modified files."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, float] = {}  # path -> last_ts

    def push(self, path: Path, ts: float) -> None:
        p = str(path)
        with self._lock:
            prev = self._items.get(p)
            if prev is None or ts > prev:
                self._items[p] = ts

    def pop_most_recent(self) -> Optional[Tuple[Path, float]]:
        with self._lock:
            if not self._items:
                return None
            p, ts = max(self._items.items(), key=lambda kv: kv[1])
            del self._items[p]
            return Path(p), ts

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SwiftChangeHandler(FileSystemEventHandler):
    """Queues created, modified and moved-in Swift files."""

    def __init__(self, cfg: LintConfig, queue: _RecentQueue) -> None:
        super().__init__()
        self.cfg = cfg
        self.queue = queue

    def _push(self, src: Any) -> None:
        p = Path(src if isinstance(src, str) else src.decode())
        if p.suffix not in self.cfg.swift_exts or should_exclude_path(self.cfg, p):
            return
        self.queue.push(p, time.time())

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._push(event.dest_path)


class _JsonLog:
    """Appends lint results to a JSON log file."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self._lock = threading.Lock()
        self._entries: List[Dict[str, Any]] = [{
            "type": "session_start",
            "timestamp": datetime.now().isoformat(),
        }]
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._flush()

    def log_result(self, path: str, diagnostics: List[Diagnostic]) -> None:
        entry = {
            "type": "lint_result",
            "timestamp": datetime.now().isoformat(),
            "file": path,
            "count": len(diagnostics),
            "diagnostics": [d.to_dict() for d in diagnostics],
        }
        with self._lock:
            self._entries.append(entry)
            self._flush()

    def _flush(self) -> None:
        self.log_path.write_text(json.dumps(self._entries, indent=2, default=str), encoding="utf-8")


def drain(
    linter: Linter,
    queue: _RecentQueue,
    last_linted: Dict[str, float],
    debounce_seconds: float,
    emit: Callable[[str, List[Diagnostic]], None],
    now: Optional[float] = None,
) -> int:
    """
    Lint everything queued, newest first. Returns the number of files linted.

    Changes no newer than a file's last lint are dropped. A newer change to
    a file linted less than debounce_seconds ago stays queued for a later
    drain, so the final edit of a burst is always linted.
    """
    linted = 0
    now = time.time() if now is None else now
    deferred: List[Tuple[Path, float]] = []
    while True:
        item = queue.pop_most_recent()
        if item is None:
            break
        path, ts = item
        p = str(path)
        last = last_linted.get(p)
        if last is not None and ts <= last:
            continue
        if last is not None and now - last < debounce_seconds:
            deferred.append((path, ts))
            continue
        last_linted[p] = now
        if not path.is_file():
            logger.debug("Skipping %s: no longer exists", p)
            continue
        emit(p, linter.lint_file(path))
        linted += 1
    for path, ts in deferred:
        queue.push(path, ts)
    return linted


def run_watch(
    root: Path,
    cfg: LintConfig,
    interval: float = 0.75,
    debounce_seconds: float = 1.0,
    log_path: Optional[Path] = None,
    out: Optional[TextIO] = None,
) -> int:
    """Run the watch loop until interrupted."""
    out = out or sys.stdout
    linter = Linter(cfg)
    queue = _RecentQueue()
    json_log = _JsonLog(log_path) if log_path else None

    def emit(path: str, diagnostics: List[Diagnostic]) -> None:
        reporter = Reporter()
        reporter.files_checked = 1
        reporter.extend(diagnostics)
        print(f"\n[swiftstyle watch] {path} (queue={len(queue)})", file=out)
        print(reporter.render_human(), file=out)
        if json_log:
            json_log.log_result(path, diagnostics)

    observer = Observer()
    observer.schedule(SwiftChangeHandler(cfg, queue), str(root), recursive=True)
    observer.start()
    logger.info("Watching %s (interval=%ss)", root, interval)
    print(f"[swiftstyle watch] watching {root}", file=out)

    last_linted: Dict[str, float] = {}
    try:
        while True:
            drain(linter, queue, last_linted, debounce_seconds, emit)
            time.sleep(interval)
    except KeyboardInterrupt:
        print("\n[swiftstyle watch] stopping...", file=out)
    finally:
        observer.stop()
        observer.join()
    return 0
