import sqlite3

from wiki.domain.models import User


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=int(row["id"]),
        name=str(row["name"]),
        password_hash=str(row["password_hash"]),
    )


class UserRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def find_by_name(self, name: str) -> User | None:
        row = self._conn.execute("SELECT * FROM users WHERE name = ?", (name,)).fetchone()
        if row is None:
            return None
        return _row_to_user(row)

    def exists(self, name: str) -> bool:
        row = self._conn.execute("SELECT 1 FROM users WHERE name = ?", (name,)).fetchone()
        return row is not None

    def insert(self, name: str, password_hash: str) -> User:
        """Raises sqlite3.IntegrityError when the name is already taken."""

        cur = self._conn.execute(
            "INSERT INTO users(name, password_hash) VALUES(?, ?)",
            (name, password_hash),
        )
        self._conn.commit()
        if cur.lastrowid is None:
            raise RuntimeError("Failed to create user: missing lastrowid")
        return User(id=int(cur.lastrowid), name=name, password_hash=password_hash)
