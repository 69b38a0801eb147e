"""
access_control.storage: key/value persistence for role state.

The registry only ever talks to a :class:`StorageBackend`. Two backends ship:

- :class:`MemoryBackend` : thread-safe dict for tests and single-process use.
- :class:`SqliteBackend` : durable single-table store (WAL, autocommit),
  safe to share across threads of one process.

Key layout (stable; do not change once data exists)
---------------------------------------------------
- Member flag:   b"access:role:member:" + role + b":" + account  → b"\\x01"
- Admin-of-role: b"access:role:admin:"  + role                   → bytes32 role-id
  If absent, the registry falls back to ROOT.
- Bootstrap:     b"access:bootstrap:sealed"                       → b"\\x01"

Revoking membership deletes the member key, so a role whose members have all
been revoked looks exactly like a role that was never referenced.
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from pathlib import Path
from typing import (
    ContextManager,
    Dict,
    Iterator,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from .config import AccessConfig, load_config
from .errors import StorageError

log = logging.getLogger(__name__)

ROLE_MEMBER_PREFIX: bytes = b"access:role:member:"
ROLE_ADMIN_PREFIX: bytes = b"access:role:admin:"
BOOTSTRAP_KEY: bytes = b"access:bootstrap:sealed"

FLAG: bytes = b"\x01"


# ---- key helpers -------------------------------------------------------------


def member_key(role: bytes, account: bytes) -> bytes:
    return ROLE_MEMBER_PREFIX + role + b":" + account


def member_prefix(role: bytes) -> bytes:
    return ROLE_MEMBER_PREFIX + role + b":"


def admin_key(role: bytes) -> bytes:
    return ROLE_ADMIN_PREFIX + role


def _prefix_upper_bound(prefix: bytes) -> Optional[bytes]:
    """Smallest byte string greater than every string starting with `prefix`."""
    p = bytearray(prefix)
    while p and p[-1] == 0xFF:
        p.pop()
    if not p:
        return None
    p[-1] += 1
    return bytes(p)


# ---- Backend API -------------------------------------------------------------


@runtime_checkable
class StorageBackend(Protocol):
    """Minimal backend interface for role state."""

    def get(self, key: bytes) -> Optional[bytes]: ...
    def set(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def exists(self, key: bytes) -> bool: ...
    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]: ...
    def tx(self) -> ContextManager[None]: ...


class MemoryBackend:
    """Thread-safe in-memory backend for local runs and tests."""

    def __init__(self) -> None:
        self._store: Dict[bytes, bytes] = {}
        self._lock = threading.RLock()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._store.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._store[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._store.pop(key, None)

    def exists(self, key: bytes) -> bool:
        with self._lock:
            return key in self._store

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        # Snapshot under the lock; iterate outside it.
        with self._lock:
            items = sorted((k, v) for k, v in self._store.items() if k.startswith(prefix))
        return iter(items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    @contextlib.contextmanager
    def tx(self) -> Iterator[None]:
        """Hold the store lock for the block. Writes are not rolled back."""
        with self._lock:
            yield


class SqliteBackend:
    """
    Tiny SQLite key/value store.

    `path` may be a filesystem path, ":memory:" or a URI ("file:roles.db?mode=rwc").
    Thread-safe for simple concurrent access via an internal RLock.
    """

    SCHEMA_VERSION = 1

    def __init__(self, path: Union[str, Path], *, timeout: float = 5.0) -> None:
        self.path = str(path)
        uri = self.path.startswith("file:")
        try:
            self._db = sqlite3.connect(
                self.path,
                uri=uri,
                timeout=timeout,  # seconds to wait on another writer's lock
                check_same_thread=False,
                isolation_level=None,  # autocommit; tx() manages explicit transactions
            )
        except sqlite3.Error as exc:
            raise StorageError(
                f"cannot open sqlite store: {exc}", context={"backend": "sqlite", "path": self.path}
            ) from exc
        self._lock = threading.RLock()
        self._closed = False
        self._tx_depth = 0
        with self._lock:
            try:
                self._apply_pragmas()
                self._migrate()
            except StorageError:
                self.close()
                raise
        log.debug("sqlite role store opened", extra={"path": self.path})

    # -- lifecycle -------------------------------------------------------------

    def _apply_pragmas(self) -> None:
        if self.path != ":memory:":
            self._execute("PRAGMA journal_mode=WAL")
        self._execute("PRAGMA synchronous=NORMAL")

    def _migrate(self) -> None:
        self._execute(
            "CREATE TABLE IF NOT EXISTS kv (k BLOB PRIMARY KEY, v BLOB NOT NULL) WITHOUT ROWID"
        )
        self._execute(
            "CREATE TABLE IF NOT EXISTS meta (name TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        self._execute(
            "INSERT OR IGNORE INTO meta(name, value) VALUES ('schema_version', ?)",
            (str(self.SCHEMA_VERSION),),
        )

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._db.close()
                self._closed = True

    def __enter__(self) -> "SqliteBackend":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextlib.contextmanager
    def tx(self) -> Iterator[None]:
        """
        Explicit transaction: all writes inside commit or roll back together.

        ``BEGIN IMMEDIATE`` takes the database write lock up front, so reads
        inside the block cannot be invalidated by another connection before
        COMMIT. Nested calls join the outer transaction.
        """
        with self._lock:
            if self._tx_depth:
                self._tx_depth += 1
                try:
                    yield
                finally:
                    self._tx_depth -= 1
                return
            self._execute("BEGIN IMMEDIATE")
            self._tx_depth = 1
            try:
                yield
            except BaseException:
                self._tx_depth = 0
                self._execute("ROLLBACK")
                raise
            else:
                self._tx_depth = 0
                self._execute("COMMIT")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self._closed:
            raise StorageError("sqlite store is closed", context={"backend": "sqlite"})
        try:
            return self._db.execute(sql, params)
        except sqlite3.Error as exc:
            raise StorageError(str(exc), context={"backend": "sqlite"}) from exc

    # -- kv --------------------------------------------------------------------

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._execute("SELECT v FROM kv WHERE k = ?", (bytes(key),)).fetchone()
        return bytes(row[0]) if row is not None else None

    def set(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._execute(
                "INSERT INTO kv(k, v) VALUES (?, ?) ON CONFLICT(k) DO UPDATE SET v = excluded.v",
                (bytes(key), bytes(value)),
            )

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._execute("DELETE FROM kv WHERE k = ?", (bytes(key),))

    def exists(self, key: bytes) -> bool:
        with self._lock:
            row = self._execute("SELECT 1 FROM kv WHERE k = ?", (bytes(key),)).fetchone()
        return row is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        upper = _prefix_upper_bound(prefix)
        with self._lock:
            if upper is None:
                rows = self._execute(
                    "SELECT k, v FROM kv WHERE k >= ? ORDER BY k", (bytes(prefix),)
                ).fetchall()
            else:
                rows = self._execute(
                    "SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k",
                    (bytes(prefix), upper),
                ).fetchall()
        return iter([(bytes(k), bytes(v)) for k, v in rows])


def open_backend(config: Optional[AccessConfig] = None) -> StorageBackend:
    """Build the backend selected by configuration."""
    cfg = config or load_config()
    if cfg.backend == "sqlite":
        return SqliteBackend(cfg.db_path)
    return MemoryBackend()


__all__ = [
    "ROLE_MEMBER_PREFIX",
    "ROLE_ADMIN_PREFIX",
    "BOOTSTRAP_KEY",
    "FLAG",
    "member_key",
    "member_prefix",
    "admin_key",
    "StorageBackend",
    "MemoryBackend",
    "SqliteBackend",
    "open_backend",
]
