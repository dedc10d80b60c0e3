from dataclasses import dataclass, field
from typing import List, Optional

from .exceptions import WriteError


@dataclass(frozen=True)
class FileRecord:
    """
    One scanned file: base name, path and content fingerprint.
    Built only after the whole file has been digested; never mutated.
    """
    filename: str
    filepath: str
    hash: str
    id: Optional[int] = None  # assigned by the store


@dataclass
class DuplicateSet:
    """Two or more records sharing the same fingerprint."""
    hash: str
    records: List[FileRecord] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.records)

    @property
    def paths(self) -> List[str]:
        return [r.filepath for r in self.records]


@dataclass
class WriteOutcome:
    record: FileRecord
    ok: bool
    attempts: int
    error: Optional[WriteError] = None


@dataclass
class ScanSummary:
    """
    End-of-run counts for a walk.

    files_discovered counts every file the walker yielded; each of them ends up
    in exactly one of records_inserted, records_failed or files_skipped unless
    the scan was cancelled before it was processed.
    """
    root: str
    files_discovered: int = 0
    records_inserted: int = 0
    records_failed: int = 0
    files_skipped: int = 0
    total_records: int = 0
    cancelled: bool = False

    @property
    def files_unprocessed(self) -> int:
        return self.files_discovered - self.records_inserted - self.records_failed - self.files_skipped
