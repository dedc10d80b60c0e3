import csv
import logging
from pathlib import Path
from typing import List, TextIO, Union

from .database.ops import DBOperations
from .models import DuplicateSet


class DuplicateResolver:
    """
    Builds duplicate sets from persisted records. Read-only; run it only
    after a scan's writers have finished.
    """

    def __init__(self, db_ops: DBOperations):
        self.db = db_ops

    def resolve(self) -> List[DuplicateSet]:
        """
        Every hash shared by two or more records, largest sets first,
        ties broken by hash ascending.
        """
        sets = [
            DuplicateSet(hash=hash_value, records=records)
            for hash_value, records in self.db.group_by_hash_having_count_gte(2)
        ]
        sets.sort(key=lambda s: (-s.size, s.hash))
        logging.debug(f"Resolved {len(sets)} duplicate sets.")
        return sets


class ReportGenerator:
    def __init__(self, db_ops: DBOperations):
        self.resolver = DuplicateResolver(db_ops)

    def write_text(self, out: TextIO) -> int:
        """Writes a human readable listing; returns the number of sets."""
        dup_sets = self.resolver.resolve()
        if not dup_sets:
            out.write("No duplicate files found.\n")
            return 0

        for dup in dup_sets:
            out.write(f"{dup.hash} ({dup.size} files)\n")
            for rec in dup.records:
                out.write(f"    {rec.filepath}\n")
        redundant = sum(d.size - 1 for d in dup_sets)
        out.write(f"{len(dup_sets)} duplicate sets, {redundant} redundant copies.\n")
        return len(dup_sets)

    def write_csv(self, output_csv: Union[Path, str]) -> int:
        """One row per record in a duplicate set; returns the number of sets."""
        dup_sets = self.resolver.resolve()
        headers = ["Hash", "Set Size", "Filename", "File Path"]

        logging.info(f"Writing duplicate report -> {output_csv}")
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            for dup in dup_sets:
                for rec in dup.records:
                    writer.writerow([dup.hash, dup.size, rec.filename, rec.filepath])

        logging.info(f"Report complete. {len(dup_sets)} duplicate sets.")
        return len(dup_sets)
