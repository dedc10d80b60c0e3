import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import DupeFinderApp
from .database.db import DBManager
from .database.ops import DBOperations
from .exceptions import ScanFailure
from .models import ScanSummary
from .reporting import ReportGenerator


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format=config.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Find duplicate files by content hash, cataloged in SQLite.")

    p.add_argument("command", help="'walk' to scan a tree, 'setup' to create the schema, 'report' to list duplicates")
    p.add_argument("path", type=Path, nargs="?", default=None, help="Directory to walk (required for 'walk')")

    p.add_argument("--db", type=Path, default=Path(config.DEFAULT_DB_NAME),
                   help=f"SQLite DB path (default: ./{config.DEFAULT_DB_NAME})")
    p.add_argument("--workers", type=int, default=config.DEFAULT_MAX_WORKERS,
                   help=f"Parallel hashing workers (bounded internally, default: {config.DEFAULT_MAX_WORKERS})")
    p.add_argument("--csv", type=Path, default=None, help="Also write the duplicate report to this CSV file")
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return p


def print_summary(summary: ScanSummary):
    print(f"Root:              {summary.root}")
    print(f"Files discovered:  {summary.files_discovered}")
    print(f"Records inserted:  {summary.records_inserted}")
    print(f"Records failed:    {summary.records_failed}")
    print(f"Files skipped:     {summary.files_skipped}")
    print(f"Records in store:  {summary.total_records}")
    if summary.cancelled:
        print(f"Cancelled with {summary.files_unprocessed} files unprocessed.")


def run_report(db_path: Path, csv_path: Optional[Path]) -> int:
    with DBManager(db_path) as conn:
        reporter = ReportGenerator(DBOperations(conn))
        reporter.write_text(sys.stdout)
        if csv_path:
            reporter.write_csv(csv_path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "walk" and args.path is None:
        parser.error("'walk' command expects a path arg")

    setup_logging(args.verbose, args.log_file)
    db_path = args.db.resolve()

    if args.command == "setup":
        DupeFinderApp(db_path).setup()
        return 0

    if args.command == "report":
        if not db_path.exists():
            logging.error(f"Database not found at {db_path}. Run 'walk' first.")
            return 1
        try:
            return run_report(db_path, args.csv)
        except Exception:
            logging.exception("Failed to generate report.")
            return 1

    if args.command != "walk":
        logging.warning(f"Unknown command '{args.command}', nothing to do.")
        return 0

    logging.info("Walk command received")
    app = DupeFinderApp(db_path)
    try:
        summary = app.walk(
            args.path.resolve(),
            max_workers=args.workers,
            show_progress=not args.no_progress,
        )
    except ScanFailure as e:
        logging.error(str(e))
        return 1
    except KeyboardInterrupt:
        logging.warning("Scan cancelled by user.")
        return 1
    except Exception:
        logging.exception("Fatal error during scan.")
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
