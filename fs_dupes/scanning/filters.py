import enum
import logging
import os
from typing import Iterable

from .. import config


class EntryKind(enum.Enum):
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"  # symlinks, devices, sockets, fifos


class FilterDecision(enum.Enum):
    PROCESS = "process"
    SKIP = "skip"
    RECURSE = "recurse"


class PathFilter:
    """
    Decides what the walker does with an entry.

    Denylisted substrings win over everything else. Directories are checked
    with a trailing separator so "x/.idea" is pruned instead of descended into.
    """

    def __init__(self, skip_patterns: Iterable[str] = config.SKIP_PATTERNS):
        self.skip_patterns = tuple(skip_patterns)

    def is_denied(self, path_str: str) -> bool:
        return any(pat in path_str for pat in self.skip_patterns)

    def classify(self, path_str: str, kind: EntryKind) -> FilterDecision:
        normalized = path_str.replace(os.sep, "/")
        if kind is EntryKind.DIRECTORY and not normalized.endswith("/"):
            normalized += "/"

        if self.is_denied(normalized):
            logging.debug(f"Skipping denylisted path: {path_str}")
            return FilterDecision.SKIP

        if kind is EntryKind.DIRECTORY:
            return FilterDecision.RECURSE
        if kind is EntryKind.FILE:
            return FilterDecision.PROCESS
        return FilterDecision.SKIP
