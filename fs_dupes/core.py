import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .database.db import DBManager
from .database.ops import DBOperations
from .database.writer import WriteCoordinator
from .models import DuplicateSet, FileRecord, ScanSummary
from .reporting import DuplicateResolver
from .scanning.filesystem import DiskWalker
from .scanning.hasher import FileHasher
from . import config

_STOP = object()


def lossy_str(name: str) -> str:
    """Undecodable filename bytes become U+FFFD so sqlite3 can store the text."""
    return os.fsencode(name).decode("utf-8", "replace")


def clamp_workers(max_workers: int) -> int:
    return max(1, min(max_workers, config.MAX_WORKERS_CEILING))


class ScanOrchestrator:
    """
    Walks a tree and fingerprints every eligible file into the store.

    The walker runs in the calling thread and feeds a bounded queue; a fixed
    pool of workers hashes files and hands records to the WriteCoordinator.
    A full queue blocks the walker.
    """

    def __init__(self,
                 db_ops: DBOperations,
                 write_lock: Optional[threading.Lock] = None,
                 max_workers: int = config.DEFAULT_MAX_WORKERS,
                 show_progress: bool = True,
                 hasher: Optional[FileHasher] = None,
                 walker: Optional[DiskWalker] = None,
                 max_write_attempts: int = config.WRITE_MAX_ATTEMPTS,
                 retry_delay: float = config.WRITE_RETRY_DELAY):
        self.db = db_ops
        self.max_workers = clamp_workers(max_workers)
        self.show_progress = show_progress
        self.hasher = hasher or FileHasher()
        self.walker = walker or DiskWalker()
        self.writer = WriteCoordinator(db_ops, write_lock, max_attempts=max_write_attempts, retry_delay=retry_delay)

        self._cancel = threading.Event()
        self._counts_lock = threading.Lock()

    def cancel(self):
        """Stops the scan at the next file boundary. In-flight files finish."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def scan(self, root: Path) -> ScanSummary:
        """
        Runs a full scan of root and returns the end-of-run counts.
        Raises ScanFailure if root cannot be walked.
        """
        self.writer.ensure_schema()

        files = self.walker.walk(root)
        summary = ScanSummary(root=str(root))
        work: queue.Queue = queue.Queue(maxsize=self.max_workers * config.WORK_QUEUE_FACTOR)

        logging.info(f"Scanning {root} with {self.max_workers} workers...")

        with tqdm(desc="Hashing", unit="file", disable=not self.show_progress) as progress, \
                ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            workers = [
                pool.submit(self._worker, work, summary, progress)
                for _ in range(self.max_workers)
            ]
            try:
                for path in files:
                    if self._cancel.is_set():
                        break
                    summary.files_discovered += 1
                    work.put(path)
            except BaseException:
                # e.g. KeyboardInterrupt: let workers drain the queue without processing
                self._cancel.set()
                raise
            finally:
                for _ in workers:
                    work.put(_STOP)
                for w in workers:
                    w.result()

        summary.cancelled = self._cancel.is_set()
        summary.total_records = self.writer.count()

        if summary.cancelled:
            logging.warning(f"Scan of {root} cancelled; {summary.files_unprocessed} discovered files were not processed.")
        logging.info(
            f"Scan complete. Discovered {summary.files_discovered} files, "
            f"inserted {summary.records_inserted}, failed {summary.records_failed}, "
            f"skipped {summary.files_skipped}. Store holds {summary.total_records} records."
        )
        return summary

    def _worker(self, work: queue.Queue, summary: ScanSummary, progress: tqdm):
        while True:
            path = work.get()
            if path is _STOP:
                return
            if self._cancel.is_set():
                continue

            try:
                outcome = self._process_path(path)
            except Exception:
                logging.exception(f"Error processing file {path}")
                outcome = None

            with self._counts_lock:
                if outcome is None:
                    summary.files_skipped += 1
                elif outcome:
                    summary.records_inserted += 1
                else:
                    summary.records_failed += 1
            progress.update(1)

    def _process_path(self, path: Path) -> Optional[bool]:
        """
        Hashes and stores one file.
        Returns None if the file was skipped, otherwise whether the write succeeded.
        """
        digest = self.hasher.compute_hash(path)
        if digest is None:
            return None

        record = FileRecord(filename=lossy_str(path.name), filepath=lossy_str(str(path)), hash=digest)
        try:
            return self.writer.submit(record).ok
        except Exception:
            # hashed but not stored: a failed record, not a skipped file
            logging.exception(f"Error storing record for {record.filepath}")
            return False


class DupeFinderApp:
    def __init__(self, db_path: Path):
        self.db_manager = DBManager(db_path)

    def setup(self):
        """Creates the schema only."""
        with self.db_manager:
            logging.info("Schema ready.")

    def walk(self,
             root: Path,
             max_workers: int = config.DEFAULT_MAX_WORKERS,
             show_progress: bool = True) -> ScanSummary:
        with self.db_manager as conn:
            orchestrator = ScanOrchestrator(
                DBOperations(conn),
                write_lock=self.db_manager.write_lock,
                max_workers=max_workers,
                show_progress=show_progress,
            )
            return orchestrator.scan(root)

    def find_duplicates(self) -> List[DuplicateSet]:
        with self.db_manager as conn:
            return DuplicateResolver(DBOperations(conn)).resolve()
