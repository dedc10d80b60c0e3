import os
import logging
from pathlib import Path
from typing import Iterator, List, Optional

from ..exceptions import ScanFailure, TraversalEntryError
from .filters import EntryKind, FilterDecision, PathFilter


class DiskWalker:
    """
    Depth-first walker yielding every regular file under a root that passes
    the PathFilter. Does not follow symlinks and does not leave the root's
    filesystem.
    """

    def __init__(self, path_filter: Optional[PathFilter] = None):
        self.path_filter = path_filter or PathFilter()
        self.entries_skipped = 0
        self.entry_errors = 0

    def walk(self, root: Path) -> Iterator[Path]:
        """
        Validates root eagerly (raising ScanFailure) and returns a lazy,
        single-use iterator over eligible files.
        """
        try:
            root_stat = root.stat()
        except OSError as e:
            raise ScanFailure(f"Cannot walk {root}: {e}") from e
        if not root.is_dir():
            raise ScanFailure(f"Cannot walk {root}: not a directory")

        # A root that cannot be listed fails the scan; deeper directories are only skipped
        try:
            root_entries = self._list_dir(root)
        except OSError as e:
            raise ScanFailure(f"Cannot walk {root}: {e}") from e

        return self._iter_files(root, root_stat.st_dev, root_entries)

    def _iter_files(self, root: Path, root_dev: int, root_entries: Optional[List[os.DirEntry]] = None) -> Iterator[Path]:
        stack = [root]
        while stack:
            current = stack.pop()

            if current is root and root_entries is not None:
                entries = root_entries
            else:
                try:
                    entries = self._list_dir(current)
                except OSError as e:
                    self._entry_failed(TraversalEntryError(current, str(e)))
                    continue

            dirs = []
            files = []
            for e in entries:
                try:
                    kind = self._entry_kind(e)
                    if kind is EntryKind.DIRECTORY and e.stat(follow_symlinks=False).st_dev != root_dev:
                        logging.debug(f"Not crossing filesystem boundary: {e.path}")
                        self.entries_skipped += 1
                        continue
                except OSError as err:
                    self._entry_failed(TraversalEntryError(Path(e.path), str(err)))
                    continue

                decision = self.path_filter.classify(e.path, kind)
                if decision is FilterDecision.RECURSE:
                    dirs.append(Path(e.path))
                elif decision is FilterDecision.PROCESS:
                    files.append(Path(e.path))
                else:
                    self.entries_skipped += 1

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f

    @staticmethod
    def _list_dir(path: Path) -> List[os.DirEntry]:
        with os.scandir(path) as it:
            entries = list(it)
        # Sort for stable traversal order
        entries.sort(key=lambda e: e.name.lower())
        return entries

    @staticmethod
    def _entry_kind(entry: os.DirEntry) -> EntryKind:
        if entry.is_symlink():
            return EntryKind.OTHER
        if entry.is_dir(follow_symlinks=False):
            return EntryKind.DIRECTORY
        if entry.is_file(follow_symlinks=False):
            return EntryKind.FILE
        return EntryKind.OTHER

    def _entry_failed(self, err: TraversalEntryError):
        self.entry_errors += 1
        logging.warning(f"Skipping unreadable entry {err}")
