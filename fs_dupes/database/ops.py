import sqlite3
from typing import List, Tuple

from ..models import FileRecord


class DBOperations:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def insert_file_record(self, rec: FileRecord) -> int:
        """
        Appends a record and commits. Rolls back on failure so a failed
        attempt leaves nothing behind.
        """
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO file_record (filename, filepath, hash) VALUES (?, ?, ?)",
                (rec.filename, rec.filepath, rec.hash),
            )
        if cur.lastrowid is None:
            raise RuntimeError("Database INSERT failed to return a row ID.")
        return cur.lastrowid

    def count_records(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM file_record")
        return cur.fetchone()[0]

    def fetch_duplicate_hashes(self, min_count: int = 2) -> List[Tuple[str, int]]:
        """Returns (hash, count) for every hash seen at least min_count times."""
        cur = self.conn.cursor()
        cur.execute("""
            SELECT hash, COUNT(*) AS n
            FROM file_record
            GROUP BY hash
            HAVING COUNT(*) >= ?
        """, (min_count,))
        return cur.fetchall()

    def fetch_records_by_hash(self, hash_value: str) -> List[FileRecord]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT id, filename, filepath, hash FROM file_record WHERE hash = ? ORDER BY filepath, id",
            (hash_value,),
        )
        return [
            FileRecord(filename=r[1], filepath=r[2], hash=r[3], id=r[0])
            for r in cur.fetchall()
        ]

    def group_by_hash_having_count_gte(self, min_count: int = 2) -> List[Tuple[str, List[FileRecord]]]:
        return [
            (hash_value, self.fetch_records_by_hash(hash_value))
            for hash_value, _ in self.fetch_duplicate_hashes(min_count)
        ]
