import hashlib
import logging
from pathlib import Path
from typing import BinaryIO, Optional

from .. import config
from ..exceptions import FileHashError, OpenFailure, ReadFailure


class FileHasher:
    def __init__(self, chunk_size: int = config.HASH_CHUNK_SIZE, algorithm: str = config.HASH_ALGORITHM):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.algorithm = algorithm

    def compute_hash(self, path: Path) -> Optional[str]:
        """
        Returns the hex fingerprint of the file, or None if it could not be
        opened or read. Callers treat None as "skip this file".
        """
        try:
            return self.hash_file(path)
        except FileHashError as e:
            logging.warning(f"Skipping unreadable file {e}")
            return None

    def hash_file(self, path: Path) -> str:
        """Streams the file in fixed-size chunks. Raises OpenFailure / ReadFailure."""
        try:
            f = open(path, 'rb')
        except OSError as e:
            raise OpenFailure(path, str(e)) from e

        with f:
            try:
                return self.hash_stream(f)
            except OSError as e:
                raise ReadFailure(path, str(e)) from e

    def hash_stream(self, fileobj: BinaryIO) -> str:
        """
        Digest of everything left in fileobj.
        Caller should ensure the handle is at position 0.
        """
        h = hashlib.new(self.algorithm)
        while chunk := fileobj.read(self.chunk_size):
            h.update(chunk)
        return h.hexdigest()
