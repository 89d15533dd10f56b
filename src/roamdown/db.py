"""Read-only access to the org-roam SQLite database."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from roamdown.errors import StoreLoadError
from roamdown.index import NodeIndex

_NODES_QUERY = "SELECT id, file, level, title FROM nodes"


def get_conn_readonly(db_path: Path) -> sqlite3.Connection:
    """Open db read-only so an org-roam session holding the DB is never blocked."""
    if not db_path.exists():
        raise StoreLoadError(db_path, "no such file")
    try:
        return sqlite3.connect(db_path.resolve().as_uri() + "?mode=ro", uri=True)
    except sqlite3.Error as exc:
        raise StoreLoadError(db_path, f"failed to open org-roam SQLite database: {exc}") from exc


def fetch_rows(db_path: Path | str) -> list[tuple[str, str, int, str]]:
    db_path = Path(db_path).expanduser()
    conn = get_conn_readonly(db_path)
    try:
        return conn.execute(_NODES_QUERY).fetchall()
    except sqlite3.Error as exc:
        raise StoreLoadError(db_path, f"failed to query org-roam SQLite database: {exc}") from exc
    finally:
        conn.close()


def load_nodes(db_path: Path | str) -> NodeIndex:
    """Load every org-roam node into a sanitized NodeIndex."""
    return NodeIndex.build(fetch_rows(db_path))
