"""Durable storage for registrations.

DapStore defines the storage contract: an explicitly opened and closed
resource that inserts rows atomically under three independent uniqueness
constraints (``id``, ``did``, ``handle``) and looks rows up by handle.

InMemoryDapStore keeps rows in dictionaries guarded by a lock.
SqliteDapStore persists them in a ``daps`` table whose UNIQUE columns
arbitrate between concurrent writers, including writers in other processes.

When several constraints are violated at once, the conflict is reported for
the first of ``id``, ``did``, ``handle``.
"""
from __future__ import annotations

import datetime
import json
import logging
import re
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from dap_registry.errors import ConflictError, MalformedRegistration, UnavailableError

logger = logging.getLogger(__name__)

HANDLE_MAX_LENGTH: int = 64
UNIQUE_COLUMNS: tuple[str, ...] = ("id", "did", "handle")


@dataclass(frozen=True)
class DapRow:
    """One persisted registration.

    Parameters
    ----------
    dbid:
        Auto-incremented surrogate key.
    id:
        The registration ID string (unique).
    did:
        The registrant DID (unique).
    handle:
        The registered handle (unique, at most 64 characters).
    proof:
        The verified registration as submitted by the registrant.
    created_at, updated_at:
        UTC timestamps maintained by the store.
    """

    dbid: int
    id: str
    did: str
    handle: str
    proof: dict[str, object]
    created_at: datetime.datetime
    updated_at: datetime.datetime


class DapStore(ABC):
    """Abstract base class for registration storage backends.

    Usable as a context manager: ``with SqliteDapStore(path) as store: ...``
    opens on entry and closes on exit.
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the underlying resource and create the schema if needed."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource. Calling it twice is harmless."""

    @abstractmethod
    def insert(self, id: str, did: str, handle: str, proof: dict[str, object]) -> DapRow:
        """Insert a row atomically.

        Raises
        ------
        ConflictError
            If ``id``, ``did`` or ``handle`` is already taken.
        MalformedRegistration
            If ``handle`` is longer than :data:`HANDLE_MAX_LENGTH`.
        UnavailableError
            If the store is closed or the backend fails.
        """

    @abstractmethod
    def find_by_handle(self, handle: str) -> DapRow | None:
        """Return the row registered for *handle*, or ``None``."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of stored registrations."""

    def __enter__(self) -> "DapStore":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @staticmethod
    def _check_handle(handle: str) -> None:
        if len(handle) > HANDLE_MAX_LENGTH:
            raise MalformedRegistration(
                f"Invalid DAP Registration: handle must be at most {HANDLE_MAX_LENGTH} characters"
            )


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# ------------------------------------------------------------------
# In-memory backend
# ------------------------------------------------------------------


class InMemoryDapStore(DapStore):
    """Thread-safe in-memory store, for tests and single-process use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._open = False
        self._next_dbid = 1
        self._indexes: dict[str, dict[str, DapRow]] = {column: {} for column in UNIQUE_COLUMNS}

    def open(self) -> None:
        with self._lock:
            self._open = True

    def close(self) -> None:
        with self._lock:
            self._open = False

    def insert(self, id: str, did: str, handle: str, proof: dict[str, object]) -> DapRow:
        self._check_handle(handle)
        values = {"id": id, "did": did, "handle": handle}
        with self._lock:
            self._require_open()
            for column in UNIQUE_COLUMNS:
                if values[column] in self._indexes[column]:
                    raise ConflictError(column)
            now = _utcnow()
            row = DapRow(
                dbid=self._next_dbid,
                id=id,
                did=did,
                handle=handle,
                proof=json.loads(json.dumps(proof)),
                created_at=now,
                updated_at=now,
            )
            self._next_dbid += 1
            for column in UNIQUE_COLUMNS:
                self._indexes[column][values[column]] = row
            return row

    def find_by_handle(self, handle: str) -> DapRow | None:
        with self._lock:
            self._require_open()
            return self._indexes["handle"].get(handle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._indexes["id"])

    def _require_open(self) -> None:
        if not self._open:
            raise UnavailableError("Store is not open")


# ------------------------------------------------------------------
# SQLite backend
# ------------------------------------------------------------------


SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS daps (
    dbid INTEGER PRIMARY KEY AUTOINCREMENT,
    id VARCHAR(255) NOT NULL UNIQUE,
    did VARCHAR(255) NOT NULL UNIQUE,
    handle VARCHAR({HANDLE_MAX_LENGTH}) NOT NULL UNIQUE,
    proof TEXT NOT NULL,                      -- JSON
    created_at TEXT NOT NULL,                 -- ISO 8601, UTC
    updated_at TEXT NOT NULL
);
"""

_UNIQUE_VIOLATION = re.compile(r"UNIQUE constraint failed: daps\.(?P<column>\w+)")


class SqliteDapStore(DapStore):
    """SQLite-backed store.

    One connection is opened by :meth:`open` and shared by all threads;
    statements are serialised with a lock. Inserts run inside
    ``BEGIN IMMEDIATE`` so the conflict pre-check and the insert are atomic
    with respect to other connections as well.

    Parameters
    ----------
    path:
        Database file, or ``":memory:"`` for a private in-memory database.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    def open(self) -> None:
        with self._lock:
            if self._conn is not None:
                return
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
            except sqlite3.Error as exc:
                raise UnavailableError(f"Failed to open database {self._path!r}: {exc}") from exc
            try:
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                self._migrate(conn)
            except sqlite3.Error as exc:
                conn.close()
                raise UnavailableError(f"Failed to open database {self._path!r}: {exc}") from exc
            self._conn = conn
            logger.info("Opened registration database %s", self._path)

    def migrate(self) -> None:
        """Create the schema if it does not exist. Safe to run repeatedly."""
        with self._lock:
            conn = self._require_conn()
            try:
                self._migrate(conn)
            except sqlite3.Error as exc:
                raise UnavailableError(f"Failed to migrate database: {exc}") from exc

    @staticmethod
    def _migrate(conn: sqlite3.Connection) -> None:
        conn.executescript(SCHEMA_SQL)

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.info("Closed registration database %s", self._path)

    def insert(self, id: str, did: str, handle: str, proof: dict[str, object]) -> DapRow:
        self._check_handle(handle)
        now = _utcnow()
        with self._lock:
            conn = self._require_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    taken = conn.execute(
                        "SELECT id, did, handle FROM daps WHERE id = ? OR did = ? OR handle = ?",
                        (id, did, handle),
                    ).fetchall()
                    values = {"id": id, "did": did, "handle": handle}
                    for column in UNIQUE_COLUMNS:
                        if any(row[column] == values[column] for row in taken):
                            raise ConflictError(column)
                    cursor = conn.execute(
                        "INSERT INTO daps (id, did, handle, proof, created_at, updated_at) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        (id, did, handle, json.dumps(proof), now.isoformat(), now.isoformat()),
                    )
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            except sqlite3.IntegrityError as exc:
                raise ConflictError(_violated_column(exc)) from exc
            except sqlite3.Error as exc:
                raise UnavailableError(f"Failed to insert DAP: {exc}") from exc

        return DapRow(
            dbid=int(cursor.lastrowid or 0),
            id=id,
            did=did,
            handle=handle,
            proof=json.loads(json.dumps(proof)),
            created_at=now,
            updated_at=now,
        )

    def find_by_handle(self, handle: str) -> DapRow | None:
        with self._lock:
            conn = self._require_conn()
            try:
                row = conn.execute("SELECT * FROM daps WHERE handle = ?", (handle,)).fetchone()
            except sqlite3.Error as exc:
                raise UnavailableError(f"Failed to query DAP: {exc}") from exc
        if row is None:
            return None
        return DapRow(
            dbid=row["dbid"],
            id=row["id"],
            did=row["did"],
            handle=row["handle"],
            proof=json.loads(row["proof"]),
            created_at=datetime.datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.datetime.fromisoformat(row["updated_at"]),
        )

    def __len__(self) -> int:
        with self._lock:
            conn = self._require_conn()
            return int(conn.execute("SELECT COUNT(*) FROM daps").fetchone()[0])

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise UnavailableError("Store is not open")
        return self._conn


def _violated_column(exc: sqlite3.IntegrityError) -> str:
    match = _UNIQUE_VIOLATION.search(str(exc))
    return match.group("column") if match else "unknown"


__all__ = [
    "DapRow",
    "DapStore",
    "HANDLE_MAX_LENGTH",
    "InMemoryDapStore",
    "SqliteDapStore",
]
