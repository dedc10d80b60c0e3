"""
Custom exception hierarchy for the duplicate file finder.

Per-file failures (open/read/traversal) are caught and logged by the scanner,
store failures are retried by the write coordinator, and only ScanFailure is
fatal for a whole run.
"""
from pathlib import Path
from typing import Optional


class DupeFinderError(Exception):
    """Base exception for all duplicate finder errors."""
    pass


class FileHashError(DupeFinderError):
    """Raised when a file's fingerprint cannot be computed."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class OpenFailure(FileHashError):
    """The file could not be opened for reading."""
    pass


class ReadFailure(FileHashError):
    """Reading failed part way through the file."""
    pass


class TraversalEntryError(DupeFinderError):
    """A single directory entry could not be read during the walk."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class DatabaseError(DupeFinderError):
    """Raised when database operations fail."""
    pass


class WriteError(DatabaseError):
    """An insert into the store failed after every attempt."""

    def __init__(self, message: str, attempts: int = 0, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.cause = cause


class ScanFailure(DupeFinderError):
    """The scan root cannot be walked at all."""
    pass
