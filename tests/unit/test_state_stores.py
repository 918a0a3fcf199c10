"""Unit tests for the checkpoint and result stores.

Coverage targets:
* CheckpointStore read/write/clear, including absent, empty and unreadable
  checkpoints falling back to ``None``.
* ResultStore append ordering and the JSON wire format of both logs.
* Corrupt or non-array logs are replaced rather than aborting the append.
* Write failures are reported as ``False`` and never raise.
* Atomic writes leave no temporary files behind.
"""

from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path

import pytest

from docsentry.services.checkpoint import CheckpointStore
from docsentry.services.persistence import PersistenceError, write_text_atomic
from docsentry.services.result_store import JsonArrayLog, ResultStore


@pytest.fixture
def blocked_dir(tmp_path) -> Path:
    """A regular file standing where a parent directory is expected."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    return blocker


@pytest.fixture
def umask_022():
    """Run the test under umask 022 and restore the previous mask afterwards."""
    previous = os.umask(0o022)
    yield
    os.umask(previous)


# ---------------------------------------------------------------------------
# write_text_atomic
# ---------------------------------------------------------------------------


class TestWriteTextAtomic:
    def test_writes_content(self, tmp_path) -> None:
        target = tmp_path / "state.txt"
        write_text_atomic(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_replaces_existing_and_leaves_no_temp_files(self, tmp_path) -> None:
        target = tmp_path / "state.txt"
        target.write_text("old", encoding="utf-8")
        write_text_atomic(target, "new")
        assert target.read_text(encoding="utf-8") == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["state.txt"]

    def test_creates_parent_directories(self, tmp_path) -> None:
        target = tmp_path / "nested" / "dir" / "state.txt"
        write_text_atomic(target, "x")
        assert target.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_new_file_mode_follows_umask(self, tmp_path, umask_022) -> None:
        target = tmp_path / "sensitive-files.json"
        write_text_atomic(target, "[]")
        assert stat.S_IMODE(target.stat().st_mode) == 0o644

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_existing_file_mode_preserved(self, tmp_path, umask_022) -> None:
        target = tmp_path / "last-processed.txt"
        target.write_text("old", encoding="utf-8")
        os.chmod(target, 0o640)
        write_text_atomic(target, "new")
        assert stat.S_IMODE(target.stat().st_mode) == 0o640

    def test_failure_raises_persistence_error(self, blocked_dir) -> None:
        with pytest.raises(PersistenceError) as exc_info:
            write_text_atomic(blocked_dir / "state.txt", "x")
        assert exc_info.value.original is not None


# ---------------------------------------------------------------------------
# CheckpointStore
# ---------------------------------------------------------------------------


class TestCheckpointStore:
    def test_absent_checkpoint_is_none(self, tmp_path) -> None:
        assert CheckpointStore(tmp_path / "last-processed.txt").read() is None

    def test_write_then_read(self, tmp_path) -> None:
        store = CheckpointStore(tmp_path / "last-processed.txt")
        assert store.write("/data/corpus/a.txt") is True
        assert store.read() == "/data/corpus/a.txt"

    def test_overwrites_previous_value(self, tmp_path) -> None:
        store = CheckpointStore(tmp_path / "last-processed.txt")
        store.write("/data/a.txt")
        store.write("/data/b.txt")
        assert store.read() == "/data/b.txt"
        assert store.path.read_text(encoding="utf-8") == "/data/b.txt"

    def test_surrounding_whitespace_ignored(self, tmp_path) -> None:
        path = tmp_path / "last-processed.txt"
        path.write_text("  /data/a.txt\n", encoding="utf-8")
        assert CheckpointStore(path).read() == "/data/a.txt"

    def test_empty_checkpoint_is_none(self, tmp_path) -> None:
        path = tmp_path / "last-processed.txt"
        path.write_text("", encoding="utf-8")
        assert CheckpointStore(path).read() is None

    def test_unreadable_checkpoint_is_none(self, tmp_path) -> None:
        path = tmp_path / "last-processed.txt"
        path.write_bytes(b"\xff\xfe\xfa")
        assert CheckpointStore(path).read() is None

    def test_write_failure_returns_false(self, blocked_dir) -> None:
        assert CheckpointStore(blocked_dir / "last-processed.txt").write("/a") is False

    def test_clear(self, tmp_path) -> None:
        store = CheckpointStore(tmp_path / "last-processed.txt")
        store.write("/data/a.txt")
        store.clear()
        assert store.read() is None
        store.clear()

    def test_relative_path_resolved_against_cwd(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        store = CheckpointStore("last-processed.txt")
        assert store.path == tmp_path.resolve() / "last-processed.txt"


# ---------------------------------------------------------------------------
# ResultStore
# ---------------------------------------------------------------------------


class TestResultStore:
    def _store(self, tmp_path: Path) -> ResultStore:
        return ResultStore(tmp_path / "sensitive-files.json", tmp_path / "error-files.json")

    def test_finding_wire_format(self, tmp_path) -> None:
        store = self._store(tmp_path)
        assert store.append_finding("/data/a.txt", {"email": ["a@b.com"]}) is True
        on_disk = json.loads(store.findings_path.read_text(encoding="utf-8"))
        assert on_disk == [{"filePath": "/data/a.txt", "matches": {"email": ["a@b.com"]}}]

    def test_error_wire_format(self, tmp_path) -> None:
        store = self._store(tmp_path)
        assert store.append_error("/data/c.jpg", "OCR failed") is True
        on_disk = json.loads(store.errors_path.read_text(encoding="utf-8"))
        assert on_disk == [{"filePath": "/data/c.jpg", "error": "OCR failed"}]

    def test_appends_preserve_order(self, tmp_path) -> None:
        store = self._store(tmp_path)
        store.append_finding("/data/1.txt", {"email": ["x@y.io"]})
        store.append_finding("/data/2.txt", {"health": ["Health"]})
        store.append_finding("/data/1.txt", {"email": ["x@y.io"]})
        assert [e["filePath"] for e in store.read_findings()] == [
            "/data/1.txt",
            "/data/2.txt",
            "/data/1.txt",
        ]

    def test_logs_are_independent(self, tmp_path) -> None:
        store = self._store(tmp_path)
        store.append_error("/data/bad.txt", "boom")
        assert store.read_findings() == []
        assert not store.findings_path.exists()
        assert len(store.read_errors()) == 1

    def test_corrupt_log_replaced_on_append(self, tmp_path) -> None:
        store = self._store(tmp_path)
        store.findings_path.write_text("[{broken", encoding="utf-8")
        assert store.read_findings() == []
        assert store.append_finding("/data/a.txt", {"email": ["a@b.com"]}) is True
        assert len(json.loads(store.findings_path.read_text(encoding="utf-8"))) == 1

    def test_non_array_log_replaced_on_append(self, tmp_path) -> None:
        store = self._store(tmp_path)
        store.errors_path.write_text('{"filePath": "x"}', encoding="utf-8")
        store.append_error("/data/a.txt", "boom")
        assert store.read_errors() == [{"filePath": "/data/a.txt", "error": "boom"}]

    def test_write_failure_returns_false(self, blocked_dir) -> None:
        store = ResultStore(blocked_dir / "s.json", blocked_dir / "e.json")
        assert store.append_finding("/data/a.txt", {"email": ["a@b.com"]}) is False
        assert store.append_error("/data/a.txt", "boom") is False

    def test_non_ascii_preserved(self, tmp_path) -> None:
        store = self._store(tmp_path)
        store.append_error("/data/résumé.txt", "décodage impossible")
        raw = store.errors_path.read_text(encoding="utf-8")
        assert "résumé" in raw


class TestJsonArrayLog:
    def test_read_missing_is_empty(self, tmp_path) -> None:
        assert JsonArrayLog(tmp_path / "log.json").read() == []

    def test_read_corrupt_raises_persistence_error(self, tmp_path) -> None:
        path = tmp_path / "log.json"
        path.write_text("nope", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonArrayLog(path).read()
