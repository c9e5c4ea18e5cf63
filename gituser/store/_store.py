from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .. import db
from ..errors import StorageError, StorageFault, StorageTimeout
from .types import Identity

logger = logging.getLogger(__name__)

# sqlite VM instructions between deadline checks.
PROGRESS_INTERVAL = 1000


class IdentityStore:
    """Durable identity list backed by a single sqlite table.

    Assumes this process is the only writer. Every call is bounded by
    ``timeout_s``: past the deadline the running statement is interrupted,
    any uncommitted write is rolled back and ``StorageTimeout`` is raised.
    """

    DEFAULT_TIMEOUT_S = 2.0

    def __init__(
        self,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        check_same_thread: bool = True,
    ):
        self.db_path = Path(db_path).expanduser()
        self.timeout_s = timeout_s
        self.conn = db.connect(
            self.db_path, check_same_thread=check_same_thread, timeout=timeout_s
        )
        db.initialize_schema(self.conn)

    @classmethod
    def open(cls, db_path: Path | str, *, timeout_s: float = DEFAULT_TIMEOUT_S) -> IdentityStore:
        try:
            return cls(db_path, timeout_s=timeout_s)
        except (sqlite3.Error, OSError) as exc:
            logger.error("identity store open failed: %s", db_path, exc_info=exc)
            raise StorageFault(f"cannot open {db_path}: {exc}") from exc

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> IdentityStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _bounded(self, op: str) -> Iterator[None]:
        deadline = time.monotonic() + self.timeout_s

        def _past_deadline() -> int:
            return 1 if time.monotonic() > deadline else 0

        self.conn.set_progress_handler(_past_deadline, PROGRESS_INTERVAL)
        try:
            yield
        except sqlite3.Error as exc:
            self._rollback_quietly()
            if time.monotonic() > deadline or "interrupted" in str(exc):
                logger.warning("identity store %s timed out after %ss", op, self.timeout_s)
                raise StorageTimeout(f"{op} timed out after {self.timeout_s:g}s") from exc
            logger.warning("identity store %s failed", op, exc_info=exc)
            raise StorageError(f"{op} failed: {exc}") from exc
        finally:
            self.conn.set_progress_handler(None, PROGRESS_INTERVAL)

    def _rollback_quietly(self) -> None:
        try:
            self.conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("identity store rollback failed", exc_info=exc)

    def list_identities(self) -> list[Identity]:
        with self._bounded("list"):
            rows = self.conn.execute(
                "SELECT id, name, email FROM users ORDER BY name COLLATE NOCASE, id"
            ).fetchall()
        return [Identity(id=int(row["id"]), name=row["name"], email=row["email"]) for row in rows]

    def insert(self, name: str, email: str) -> int | None:
        """Insert a trimmed (name, email) pair.

        Returns the new id, or ``None`` when the pair already exists.
        """

        name = name.strip()
        email = email.strip()
        with self._bounded("insert"):
            cur = self.conn.execute(
                "INSERT OR IGNORE INTO users(name, email) VALUES (?, ?)", (name, email)
            )
            self.conn.commit()
        if cur.rowcount == 0 or cur.lastrowid is None:
            logger.debug("identity already stored: %s <%s>", name, email)
            return None
        logger.info("identity stored: id=%s %s <%s>", cur.lastrowid, name, email)
        return int(cur.lastrowid)

    def delete(self, identity_id: int) -> None:
        with self._bounded("delete"):
            cur = self.conn.execute("DELETE FROM users WHERE id = ?", (identity_id,))
            self.conn.commit()
        if cur.rowcount:
            logger.info("identity deleted: id=%s", identity_id)
