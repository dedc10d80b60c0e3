"""
Database schema definitions.
"""
import sqlite3
import logging

CURRENT_SCHEMA_VERSION = 1


def init_schema(conn: sqlite3.Connection):
    """
    Creates the schema if absent.
    Idempotent: safe to run on every startup.
    """
    with conn:
        # 1. Version Tracking (For future migrations)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            );
        """)

        cur = conn.cursor()
        cur.execute("SELECT version FROM schema_version")
        if not cur.fetchone():
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (CURRENT_SCHEMA_VERSION,))

        # 2. One row per scanned file. Append-only: re-scans add new rows.
        conn.execute("""
        CREATE TABLE IF NOT EXISTS file_record (
            id          INTEGER PRIMARY KEY,
            filename    TEXT NOT NULL,
            filepath    TEXT NOT NULL,
            hash        TEXT NOT NULL
        );
        """)

        # 3. Duplicate resolution groups by hash
        conn.execute("CREATE INDEX IF NOT EXISTS idx_file_record_hash ON file_record(hash);")

    logging.debug("Database schema initialized.")
