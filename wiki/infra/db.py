import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DbConfig:
    path: Path
    busy_timeout_s: float = 10.0


def connect(cfg: DbConfig) -> sqlite3.Connection:
    cfg.path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(cfg.path, timeout=cfg.busy_timeout_s)
    conn.row_factory = sqlite3.Row
    # WAL lets readers proceed while a single writer holds the lock.
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def open_db(cfg: DbConfig) -> Iterator[sqlite3.Connection]:
    """Short-lived connection for a single store operation.

    Uncommitted work is rolled back and the handle is closed on every exit
    path, including exceptions.
    """

    conn = connect(cfg)
    try:
        yield conn
    finally:
        try:
            conn.rollback()
        finally:
            conn.close()


def migrate(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS pages (
          id INTEGER PRIMARY KEY,
          name TEXT NOT NULL,
          content TEXT NOT NULL,
          last_modified_utc TEXT NOT NULL,
          attachments_json TEXT NOT NULL DEFAULT '[]'
        );

        CREATE UNIQUE INDEX IF NOT EXISTS ix_pages_name
          ON pages(name COLLATE NOCASE);

        CREATE TABLE IF NOT EXISTS users (
          id INTEGER PRIMARY KEY,
          name TEXT NOT NULL,
          password_hash TEXT NOT NULL
        );

        CREATE UNIQUE INDEX IF NOT EXISTS ix_users_name
          ON users(name);
        """
    )
    conn.commit()
    logger.debug("Schema ready")


def init_db(cfg: DbConfig) -> None:
    with open_db(cfg) as conn:
        migrate(conn)
