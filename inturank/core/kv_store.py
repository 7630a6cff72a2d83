"""Namespaced, fail-open JSON key-value store.

Every piece of notification state (subscriptions, follows, dedup sets,
digest queues) is persisted through this module.  Values are JSON; keys
are owner addresses, normalized here and nowhere else.

Failure policy
--------------
Reads that fail for any reason (backend unavailable, corrupt JSON) return
``None``; writes that fail (unserializable value, quota exceeded, backend
unavailable) are dropped.  Both are logged at WARNING.  Losing state can
at worst cause a repeated email, never a crash of the polling loop.

Backends
--------
1. ``InMemoryStore``: volatile dict, with an optional per-value byte quota.
2. ``SQLiteStore``: one ``kv`` table keyed by ``(namespace, key)``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Namespaces, one per owning component.
SUBSCRIPTION_NS = "subscription"
FOLLOWS_NS = "follows"
DEDUP_NS_PREFIX = "dedup."
DIGEST_QUEUE_NS = "digest.queue"
DIGEST_LAST_SENT_NS = "digest.last_sent"


class StorageFailure(RuntimeError):
    """Raised by a backend when a read or write cannot be completed."""


def normalize_address(address: str | None) -> str:
    """Case- and whitespace-normalize a wallet or identity address."""
    return (address or "").strip().lower()


def encode_value(value: Any) -> str:
    """Serialize a value to compact JSON with sorted keys."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol every notification-state store implements."""

    def get(self, namespace: str, key: str) -> Any | None:
        """Return the stored JSON value, or ``None`` if absent or unreadable."""
        ...

    def set(self, namespace: str, key: str, value: Any) -> None:
        """Store a JSON-serializable value.  Failures are swallowed."""
        ...

    def delete(self, namespace: str, key: str) -> None:
        """Remove a value if present.  Failures are swallowed."""
        ...


class JsonKeyValueStore:
    """Base class implementing the fail-open policy over a raw text backend.

    Subclasses implement ``_read``, ``_write`` and ``_remove`` and raise
    ``StorageFailure`` when the backend misbehaves.
    """

    def get(self, namespace: str, key: str) -> Any | None:
        owner_key = normalize_address(key)
        try:
            raw = self._read(namespace, owner_key)
            if raw is None:
                return None
            return json.loads(raw)
        except (StorageFailure, ValueError) as exc:
            logger.warning(
                "Store read failed for %s/%s, treating as absent: %s",
                namespace,
                owner_key,
                exc,
            )
            return None

    def set(self, namespace: str, key: str, value: Any) -> None:
        owner_key = normalize_address(key)
        try:
            self._write(namespace, owner_key, encode_value(value))
        except (StorageFailure, TypeError, ValueError) as exc:
            logger.warning(
                "Store write failed for %s/%s, value not persisted: %s",
                namespace,
                owner_key,
                exc,
            )

    def delete(self, namespace: str, key: str) -> None:
        owner_key = normalize_address(key)
        try:
            self._remove(namespace, owner_key)
        except StorageFailure as exc:
            logger.warning(
                "Store delete failed for %s/%s: %s", namespace, owner_key, exc
            )

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    def _read(self, namespace: str, key: str) -> str | None:
        raise NotImplementedError

    def _write(self, namespace: str, key: str, raw: str) -> None:
        raise NotImplementedError

    def _remove(self, namespace: str, key: str) -> None:
        raise NotImplementedError


class InMemoryStore(JsonKeyValueStore):
    """Volatile store for tests and single-process sessions.

    Parameters
    ----------
    max_value_bytes:
        Optional quota on the encoded size of a single value.  Writes over
        the quota fail the same way a full browser storage area does.
    """

    def __init__(self, *, max_value_bytes: int | None = None) -> None:
        self._data: dict[tuple[str, str], str] = {}
        self._max_value_bytes = max_value_bytes

    def _read(self, namespace: str, key: str) -> str | None:
        return self._data.get((namespace, key))

    def _write(self, namespace: str, key: str, raw: str) -> None:
        size = len(raw.encode("utf-8"))
        if self._max_value_bytes is not None and size > self._max_value_bytes:
            raise StorageFailure(
                f"Quota exceeded: {size} bytes > {self._max_value_bytes}"
            )
        self._data[(namespace, key)] = raw

    def _remove(self, namespace: str, key: str) -> None:
        self._data.pop((namespace, key), None)

    def raw(self, namespace: str, key: str) -> str | None:
        """Return the stored text as-is (inspection helper)."""
        return self._data.get((namespace, normalize_address(key)))

    def put_raw(self, namespace: str, key: str, raw: str) -> None:
        """Store text without encoding, e.g. to simulate a corrupt value."""
        self._data[(namespace, normalize_address(key))] = raw


_CREATE_KV = """
CREATE TABLE IF NOT EXISTS kv (
    namespace   TEXT NOT NULL,
    key         TEXT NOT NULL,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (namespace, key)
);
"""


class SQLiteStore(JsonKeyValueStore):
    """Persistent store backed by a single SQLite file.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.
        If the schema cannot be created the store still constructs; every
        later operation then fails open.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._execute(_CREATE_KV)
            logger.info("SQLiteStore: using %s", self._db_path)
        except (OSError, StorageFailure) as exc:
            logger.warning("SQLiteStore: could not initialize %s: %s", self._db_path, exc)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _execute(
        self, sql: str, params: tuple[Any, ...] = ()
    ) -> list[tuple[Any, ...]]:
        try:
            conn = self._connect()
            try:
                with conn:
                    return conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StorageFailure(str(exc)) from exc

    def _read(self, namespace: str, key: str) -> str | None:
        rows = self._execute(
            "SELECT value FROM kv WHERE namespace = ? AND key = ?",
            (namespace, key),
        )
        return rows[0][0] if rows else None

    def _write(self, namespace: str, key: str, raw: str) -> None:
        self._execute(
            "INSERT INTO kv (namespace, key, value, updated_at) "
            "VALUES (?, ?, ?, datetime('now')) "
            "ON CONFLICT(namespace, key) DO UPDATE SET "
            "value = excluded.value, updated_at = excluded.updated_at",
            (namespace, key, raw),
        )

    def _remove(self, namespace: str, key: str) -> None:
        self._execute(
            "DELETE FROM kv WHERE namespace = ? AND key = ?", (namespace, key)
        )

