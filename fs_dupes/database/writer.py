"""
Serialized, retrying writes into the shared store.
"""
import logging
import sqlite3
import threading
import time
from typing import Optional

from .. import config
from ..exceptions import WriteError
from ..models import FileRecord, WriteOutcome
from .ops import DBOperations
from .schema import init_schema


class WriteCoordinator:
    """
    Owns every write to the store. Any number of threads may call submit();
    the actual INSERTs happen one at a time under a single lock, and callers
    never see the connection.
    """

    def __init__(self,
                 db_ops: DBOperations,
                 write_lock: Optional[threading.Lock] = None,
                 max_attempts: int = config.WRITE_MAX_ATTEMPTS,
                 retry_delay: float = config.WRITE_RETRY_DELAY):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._db = db_ops
        self._lock = write_lock or threading.Lock()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

        self._stats_lock = threading.Lock()
        self.inserted = 0
        self.failed = 0

    def submit(self, record: FileRecord) -> WriteOutcome:
        """
        Inserts the record, retrying the identical payload while the store is busy.
        Never raises for store failures: exhaustion comes back as ok=False.
        """
        last_error: Optional[sqlite3.Error] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                with self._lock:
                    self._db.insert_file_record(record)
            except sqlite3.OperationalError as e:
                # locked / busy database: worth another try
                last_error = e
                remaining = self.max_attempts - attempt
                logging.warning(f"Error inserting {record.filepath}: {e}, retrying {remaining} more times")
                if remaining and self.retry_delay > 0:
                    # Sleep without holding the lock so other writers can proceed
                    time.sleep(self.retry_delay * attempt)
                continue
            except sqlite3.Error as e:
                # constraint violations and the like fail the same way every time
                return self._failed(record, attempt, e)

            logging.debug(f"{record.filename} inserted into file_record table")
            with self._stats_lock:
                self.inserted += 1
            return WriteOutcome(record=record, ok=True, attempts=attempt)

        return self._failed(record, self.max_attempts, last_error)

    def _failed(self, record: FileRecord, attempts: int, cause: Optional[sqlite3.Error]) -> WriteOutcome:
        err = WriteError(f"Failed to insert {record.filepath}: {cause}", attempts=attempts, cause=cause)
        logging.error(f"{err} (after {attempts} attempts)")
        with self._stats_lock:
            self.failed += 1
        return WriteOutcome(record=record, ok=False, attempts=attempts, error=err)

    def ensure_schema(self):
        with self._lock:
            init_schema(self._db.conn)

    def count(self) -> int:
        """Total rows in the store. Taken under the write lock so it never interleaves with an insert."""
        with self._lock:
            return self._db.count_records()
