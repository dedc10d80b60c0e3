import sqlite3

import pytest

from fs_dupes.database.schema import init_schema
from fs_dupes.database.ops import DBOperations


@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:", check_same_thread=False)
    init_schema(c)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def db_ops(conn):
    """Returns a DBOperations instance attached to the in-memory DB."""
    return DBOperations(conn)


@pytest.fixture
def hello_tree(tmp_path):
    """a.txt and b.txt share content, c.txt differs."""
    root = tmp_path / "tree"
    root.mkdir()
    (root / "a.txt").write_text("hello")
    (root / "b.txt").write_text("hello")
    (root / "c.txt").write_text("world")
    return root
