import hashlib
import os
import sqlite3
import threading
import time
from pathlib import Path

import pytest

from fs_dupes.core import DupeFinderApp, ScanOrchestrator, clamp_workers
from fs_dupes.database.ops import DBOperations
from fs_dupes.exceptions import OpenFailure, ScanFailure
from fs_dupes.reporting import DuplicateResolver
from fs_dupes.scanning import filesystem
from fs_dupes.scanning.hasher import FileHasher

HELLO_MD5 = "5d41402abc4b2a76b9719d911017c592"
WORLD_MD5 = hashlib.md5(b"world").hexdigest()


def _scan(db_ops, root, **kwargs):
    kwargs.setdefault("max_workers", 4)
    return ScanOrchestrator(db_ops, show_progress=False, **kwargs).scan(root)


def test_walk_finds_duplicates(db_ops, hello_tree):
    summary = _scan(db_ops, hello_tree)

    assert summary.files_discovered == 3
    assert summary.records_inserted == 3
    assert summary.records_failed == 0
    assert summary.files_skipped == 0
    assert summary.total_records == 3
    assert not summary.cancelled

    dup_sets = DuplicateResolver(db_ops).resolve()
    assert len(dup_sets) == 1
    assert dup_sets[0].hash == HELLO_MD5
    assert sorted(r.filename for r in dup_sets[0].records) == ["a.txt", "b.txt"]
    assert all(str(hello_tree / "c.txt") not in s.paths for s in dup_sets)


def test_records_carry_name_and_path(db_ops, hello_tree):
    _scan(db_ops, hello_tree)

    records = db_ops.fetch_records_by_hash(WORLD_MD5)
    assert len(records) == 1
    assert records[0].filename == "c.txt"
    assert records[0].filepath == str(hello_tree / "c.txt")


def test_denylisted_files_are_not_scanned(db_ops, hello_tree):
    git_dir = hello_tree / ".git" / "objects"
    git_dir.mkdir(parents=True)
    (git_dir / "blob").write_text("hello")

    summary = _scan(db_ops, hello_tree)

    assert summary.files_discovered == 3
    assert summary.total_records == 3


def test_unreadable_file_is_skipped(monkeypatch, db_ops, hello_tree):
    real_hash_file = FileHasher.hash_file

    def revoked(self, path):
        if path.name == "b.txt":
            raise OpenFailure(path, "Permission denied")
        return real_hash_file(self, path)

    monkeypatch.setattr(FileHasher, "hash_file", revoked)

    summary = _scan(db_ops, hello_tree)

    assert summary.files_discovered == 3
    assert summary.files_skipped == 1
    assert summary.records_inserted == 2
    assert summary.total_records == 2
    assert DuplicateResolver(db_ops).resolve() == []


def test_write_failures_are_reported(conn, hello_tree):
    class LockedOps(DBOperations):
        def insert_file_record(self, rec):
            raise sqlite3.OperationalError("database is locked")

    summary = _scan(LockedOps(conn), hello_tree, max_write_attempts=2, retry_delay=0)

    assert summary.files_discovered == 3
    assert summary.records_inserted == 0
    assert summary.records_failed == 3
    assert summary.total_records == 0


def test_rescan_appends(db_ops, hello_tree):
    _scan(db_ops, hello_tree)
    summary = _scan(db_ops, hello_tree)

    assert summary.records_inserted == 3
    assert summary.total_records == 6

    dup_sets = DuplicateResolver(db_ops).resolve()
    assert [(s.hash, s.size) for s in dup_sets] == [(HELLO_MD5, 4), (WORLD_MD5, 2)]


def test_missing_root_fails(db_ops, tmp_path):
    with pytest.raises(ScanFailure):
        _scan(db_ops, tmp_path / "missing")
    # Schema creation is the only side effect
    assert db_ops.count_records() == 0


def test_worker_pool_is_bounded(db_ops, tmp_path):
    for i in range(12):
        (tmp_path / f"f{i}.bin").write_bytes(bytes([i]) * 100)

    class SlowHasher(FileHasher):
        def __init__(self):
            super().__init__()
            self.lock = threading.Lock()
            self.active = 0
            self.max_active = 0

        def compute_hash(self, path):
            with self.lock:
                self.active += 1
                self.max_active = max(self.max_active, self.active)
            try:
                time.sleep(0.01)
                return super().compute_hash(path)
            finally:
                with self.lock:
                    self.active -= 1

    hasher = SlowHasher()
    summary = _scan(db_ops, tmp_path, max_workers=2, hasher=hasher)

    assert summary.records_inserted == 12
    assert 1 <= hasher.max_active <= 2


def test_cancel_stops_at_file_boundary(db_ops, tmp_path):
    for i in range(20):
        (tmp_path / f"f{i:02d}.txt").write_text(f"content {i}")

    class CancellingHasher(FileHasher):
        orchestrator = None

        def compute_hash(self, path):
            self.orchestrator.cancel()
            return super().compute_hash(path)

    hasher = CancellingHasher()
    orchestrator = ScanOrchestrator(db_ops, max_workers=1, show_progress=False, hasher=hasher)
    hasher.orchestrator = orchestrator

    summary = orchestrator.scan(tmp_path)

    assert summary.cancelled
    # The in-flight file completes, nothing after it is processed
    assert summary.records_inserted == 1
    assert summary.total_records == 1
    assert summary.files_unprocessed == summary.files_discovered - 1


def test_clamp_workers():
    assert clamp_workers(0) == 1
    assert clamp_workers(4) == 4
    assert clamp_workers(10_000) == 64


def test_app_walk_and_find_duplicates(tmp_path, hello_tree):
    app = DupeFinderApp(tmp_path / "dupes.db")
    app.setup()
    summary = app.walk(hello_tree, max_workers=2, show_progress=False)

    assert summary.total_records == 3
    dup_sets = app.find_duplicates()
    assert len(dup_sets) == 1
    assert dup_sets[0].size == 2


def test_undecodable_filename_is_stored(db_ops, tmp_path):
    (tmp_path / "a.txt").write_text("hello")
    with open(os.path.join(os.fsencode(tmp_path), b"b\xff.txt"), "wb") as f:
        f.write(b"hello")

    summary = _scan(db_ops, tmp_path)

    assert summary.files_discovered == 2
    assert summary.records_inserted == 2
    assert summary.files_skipped == 0

    dup_sets = DuplicateResolver(db_ops).resolve()
    assert len(dup_sets) == 1
    assert sorted(r.filename for r in dup_sets[0].records) == ["a.txt", "b\ufffd.txt"]


def test_store_bug_counts_as_failed_record(conn, hello_tree):
    class BrokenOps(DBOperations):
        def insert_file_record(self, rec):
            raise RuntimeError("Database INSERT failed to return a row ID.")

    summary = _scan(BrokenOps(conn), hello_tree)

    assert summary.files_discovered == 3
    assert summary.records_failed == 3
    assert summary.files_skipped == 0
    assert summary.records_inserted == 0


def test_unlistable_root_fails(monkeypatch, db_ops, hello_tree):
    real_scandir = os.scandir

    def fake_scandir(path):
        if Path(path) == hello_tree:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(filesystem.os, "scandir", fake_scandir)

    with pytest.raises(ScanFailure):
        _scan(db_ops, hello_tree)
