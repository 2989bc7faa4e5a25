"""
Tests for watch mode.
"""

import json

import pytest
from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from swiftstyle.config import LintConfig
from swiftstyle.daemon import SwiftChangeHandler, _JsonLog, _RecentQueue, drain
from swiftstyle.engine import Linter


class TestRecentQueue:
    """Most-recent-first queue."""

    def test_newest_first(self, tmp_path):
        """Pops return the newest timestamp first."""
        queue = _RecentQueue()
        queue.push(tmp_path / "A.swift", 1.0)
        queue.push(tmp_path / "B.swift", 2.0)
        assert len(queue) == 2
        assert queue.pop_most_recent() == (tmp_path / "B.swift", 2.0)
        assert queue.pop_most_recent() == (tmp_path / "A.swift", 1.0)
        assert queue.pop_most_recent() is None

    def test_keeps_latest_timestamp(self, tmp_path):
        """Pushing a path again only moves it forward in time."""
        queue = _RecentQueue()
        queue.push(tmp_path / "A.swift", 5.0)
        queue.push(tmp_path / "A.swift", 3.0)
        assert len(queue) == 1
        assert queue.pop_most_recent()[1] == 5.0


class TestChangeHandler:
    """Filesystem event filtering."""

    def handler(self, tmp_path):
        queue = _RecentQueue()
        return SwiftChangeHandler(LintConfig(root=tmp_path), queue), queue

    def test_swift_changes_queued(self, tmp_path):
        """Modified and created Swift files are queued."""
        handler, queue = self.handler(tmp_path)
        handler.on_modified(FileModifiedEvent(str(tmp_path / "A.swift")))
        handler.on_created(FileCreatedEvent(str(tmp_path / "B.swift")))
        assert len(queue) == 2

    def test_other_files_ignored(self, tmp_path):
        """Non-Swift files, directories and excluded paths are ignored."""
        handler, queue = self.handler(tmp_path)
        handler.on_modified(FileModifiedEvent(str(tmp_path / "README.md")))
        handler.on_modified(DirModifiedEvent(str(tmp_path / "Sources")))
        handler.on_modified(FileModifiedEvent(str(tmp_path / "Pods" / "Lib.swift")))
        assert len(queue) == 0

    def test_move_queues_destination(self, tmp_path):
        """Renamed files are linted under their new name."""
        handler, queue = self.handler(tmp_path)
        handler.on_moved(FileMovedEvent(str(tmp_path / "A.swift~"), str(tmp_path / "A.swift")))
        assert queue.pop_most_recent()[0] == tmp_path / "A.swift"


class TestDrain:
    """drain() lints the queue."""

    def setup_files(self, tmp_path):
        old = tmp_path / "Old.swift"
        new = tmp_path / "New.swift"
        old.write_text("let a = b!\n", encoding="utf-8")
        new.write_text("let c = 1\n", encoding="utf-8")
        return old, new

    def test_newest_first(self, tmp_path):
        """Files are linted newest first and results emitted per file."""
        old, new = self.setup_files(tmp_path)
        queue = _RecentQueue()
        queue.push(old, 1.0)
        queue.push(new, 2.0)
        emitted = []
        linter = Linter(LintConfig(root=tmp_path, enabled_only=frozenset({"SS301"})))
        count = drain(linter, queue, {}, 1.0, lambda p, d: emitted.append((p, [x.code for x in d])), now=100.0)
        assert count == 2
        assert emitted == [(str(new), []), (str(old), ["SS301"])]

    def test_stale_change_dropped(self, tmp_path):
        """A change older than the file's last lint is dropped."""
        old, _ = self.setup_files(tmp_path)
        queue = _RecentQueue()
        queue.push(old, 1.0)
        last = {str(old): 99.5}
        emitted = []
        count = drain(Linter(), queue, last, 1.0, lambda p, d: emitted.append(p), now=100.0)
        assert count == 0
        assert emitted == []
        assert len(queue) == 0

    def test_recent_edit_deferred_not_lost(self, tmp_path):
        """An edit made just after a lint waits out the debounce, then is linted."""
        old, _ = self.setup_files(tmp_path)
        queue = _RecentQueue()
        queue.push(old, 99.8)
        last = {str(old): 99.5}
        emitted = []
        assert drain(Linter(), queue, last, 1.0, lambda p, d: emitted.append(p), now=100.0) == 0
        assert emitted == []
        assert len(queue) == 1
        assert drain(Linter(), queue, last, 1.0, lambda p, d: emitted.append(p), now=200.0) == 1
        assert emitted == [str(old)]
        assert last[str(old)] == 200.0
        assert len(queue) == 0

    def test_deleted_file(self, tmp_path):
        """Files removed before linting are skipped."""
        queue = _RecentQueue()
        queue.push(tmp_path / "Gone.swift", 1.0)
        assert drain(Linter(), queue, {}, 1.0, lambda p, d: None, now=100.0) == 0


class TestJsonLog:
    """JSON result log."""

    def test_log_result(self, tmp_path):
        """Each result is appended after the session marker."""
        log_path = tmp_path / "logs" / "watch.json"
        log = _JsonLog(log_path)
        diags = Linter(LintConfig(enabled_only=frozenset({"SS301"}))).lint_source("let a = b!\n", "A.swift")
        log.log_result("A.swift", diags)
        entries = json.loads(log_path.read_text(encoding="utf-8"))
        assert [e["type"] for e in entries] == ["session_start", "lint_result"]
        assert entries[1]["count"] == 1
        assert entries[1]["diagnostics"][0]["code"] == "SS301"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
