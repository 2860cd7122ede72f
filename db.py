# Tourism Block World State
# Versioned key-value store that the contract reads and writes. SQLite here;
# the replicated ledger offers the same surface in production.
#
#   - Composite keys:  \x00<objectType>\x00<attr1>\x00<attr2>\x00...
#   - Every key carries a version, bumped on each committed write.
#   - A transaction buffers its writes and records the version of every key
#     it read. Commit runs under BEGIN IMMEDIATE, re-checks those versions
#     and rejects the whole write set if any changed (optimistic concurrency).
#   - Range and rich queries see committed state only, never pending writes.

# Auto-load .env file (must be before any os.environ reads)
from dotenv import load_dotenv
load_dotenv()

import json
import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from errors import MVCCConflictError, StorageError

log = logging.getLogger("tourism_block.db")

# ── Configuration ─────────────────────────────────────────────────────

DEFAULT_DB_FILE = os.path.join(os.path.dirname(__file__), "tourism_block.db")

COMPOSITE_KEY_NAMESPACE = "\x00"
MIN_UNICODE_RUNE = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"


def _db_path():
    return os.environ.get("TOURISM_DB_PATH", DEFAULT_DB_FILE)


# ── SQLite Backend ────────────────────────────────────────────────────


def _ensure_sqlite_tables(conn):
    """Ensure the world-state table exists."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS world_state (
            key BLOB PRIMARY KEY,
            value BLOB NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            tx_id TEXT NOT NULL DEFAULT ''
        )
        """
    )


@contextmanager
def sqlite_connection(db_path=None):
    """SQLite connection with WAL mode enabled."""
    try:
        conn = sqlite3.connect(db_path or _db_path(), timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        _ensure_sqlite_tables(conn)
    except sqlite3.Error as e:
        raise StorageError(f"can not open world state: {e}") from e
    try:
        yield conn
    finally:
        conn.close()


# ── Composite Keys ────────────────────────────────────────────────────


def _validate_key_part(part: str):
    if MIN_UNICODE_RUNE in part or MAX_UNICODE_RUNE in part:
        raise StorageError(f"composite key part {part!r} contains a reserved character")


def create_composite_key(object_type: str, attributes: list[str]) -> str:
    _validate_key_part(object_type)
    key = COMPOSITE_KEY_NAMESPACE + object_type + MIN_UNICODE_RUNE
    for attr in attributes:
        _validate_key_part(attr)
        key += attr + MIN_UNICODE_RUNE
    return key


def split_composite_key(key: str) -> tuple[str, list[str]]:
    if not key.startswith(COMPOSITE_KEY_NAMESPACE):
        raise StorageError(f"{key!r} is not a composite key")
    parts = key[1:].split(MIN_UNICODE_RUNE)
    # Trailing delimiter leaves an empty last element
    return parts[0], parts[1:-1]


def _encode_key(key: str) -> bytes:
    if not key:
        raise StorageError("key must not be empty")
    return key.encode("utf-8")


# ── Transaction Context ───────────────────────────────────────────────


@dataclass
class QueryMetadata:
    fetched_records_count: int
    bookmark: str


class TransactionContext:
    """The contract's view of world state for one transaction."""

    def __init__(self, conn: sqlite3.Connection, tx_id: str):
        self._conn = conn
        self.tx_id = tx_id
        self._reads: dict[bytes, Optional[tuple]] = {}   # (version, tx_id) or None
        self._writes: dict[bytes, Optional[bytes]] = {}   # None marks a delete

    @property
    def read_set(self) -> dict:
        return dict(self._reads)

    @property
    def write_set(self) -> dict:
        return dict(self._writes)

    def get_state(self, key: str) -> Optional[bytes]:
        k = _encode_key(key)
        if k in self._writes:
            return self._writes[k]
        try:
            row = self._conn.execute(
                "SELECT value, version, tx_id FROM world_state WHERE key = ?", (k,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"failed to read {key!r} from world state: {e}") from e
        self._reads.setdefault(k, (row["version"], row["tx_id"]) if row else None)
        return bytes(row["value"]) if row else None

    def put_state(self, key: str, value: bytes):
        if not isinstance(value, (bytes, bytearray)) or not value:
            raise StorageError(f"value for {key!r} must be non-empty bytes")
        self._writes[_encode_key(key)] = bytes(value)

    def del_state(self, key: str):
        self._writes[_encode_key(key)] = None

    def create_composite_key(self, object_type: str, attributes: list[str]) -> str:
        return create_composite_key(object_type, attributes)

    def split_composite_key(self, key: str) -> tuple[str, list[str]]:
        return split_composite_key(key)

    def get_state_by_partial_composite_key(
        self, object_type: str, attributes: list[str]
    ) -> Iterator[tuple[str, bytes]]:
        """Committed (key, value) pairs under a composite-key prefix, in key order."""
        start = _encode_key(create_composite_key(object_type, attributes))
        end = start + MAX_UNICODE_RUNE.encode("utf-8")
        try:
            rows = self._conn.execute(
                "SELECT key, value FROM world_state WHERE key >= ? AND key < ? ORDER BY key",
                (start, end),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"failed to read from world state: {e}") from e
        for row in rows:
            yield bytes(row["key"]).decode("utf-8"), bytes(row["value"])

    def get_query_result_with_pagination(
        self, query: str, page_size: int, bookmark: str = ""
    ) -> tuple[list[tuple[str, dict]], QueryMetadata]:
        """One page of JSON records matching a {"selector": {...}} equality query.

        Composite-key index entries and non-JSON values never match.
        """
        try:
            selector = json.loads(query)["selector"]
        except (TypeError, KeyError, json.JSONDecodeError) as e:
            raise StorageError(f"invalid rich query {query!r}: {e}") from e
        if not isinstance(selector, dict):
            raise StorageError(f"invalid rich query {query!r}: selector must be an object")
        if page_size <= 0:
            raise StorageError(f"page size must be positive, got {page_size}")

        after = bookmark.encode("utf-8") if bookmark else b""
        try:
            cursor = self._conn.execute(
                "SELECT key, value FROM world_state WHERE key > ? ORDER BY key", (after,)
            )
            results = []
            for row in cursor:
                key = bytes(row["key"])
                if key.startswith(COMPOSITE_KEY_NAMESPACE.encode("utf-8")):
                    continue
                try:
                    doc = json.loads(bytes(row["value"]))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    continue
                if not isinstance(doc, dict):
                    continue
                if all(doc.get(f) == v for f, v in selector.items()):
                    results.append((key.decode("utf-8"), doc))
                    if len(results) >= page_size:
                        break
        except sqlite3.Error as e:
            raise StorageError(f"rich query failed: {e}") from e

        next_bookmark = results[-1][0] if results else ""
        return results, QueryMetadata(fetched_records_count=len(results), bookmark=next_bookmark)


# ── World State ───────────────────────────────────────────────────────


class WorldState:
    """SQLite-backed world state. One `transaction()` per contract invocation."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or _db_path()
        with sqlite_connection(self.db_path):
            pass

    @contextmanager
    def transaction(self, tx_id: Optional[str] = None):
        """Run a contract invocation; writes commit only if the body returns."""
        with sqlite_connection(self.db_path) as conn:
            ctx = TransactionContext(conn, tx_id or uuid.uuid4().hex)
            yield ctx
            self._commit(conn, ctx)

    def _commit(self, conn: sqlite3.Connection, ctx: TransactionContext):
        writes = ctx.write_set
        if not writes:
            return
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for key, seen in ctx.read_set.items():
                    row = conn.execute(
                        "SELECT version, tx_id FROM world_state WHERE key = ?", (key,)
                    ).fetchone()
                    current = (row["version"], row["tx_id"]) if row else None
                    if current != seen:
                        raise MVCCConflictError(
                            f"transaction {ctx.tx_id}: key {key.decode('utf-8', 'replace')!r} "
                            f"changed (read version {seen}, now {current})"
                        )
                for key, value in writes.items():
                    if value is None:
                        conn.execute("DELETE FROM world_state WHERE key = ?", (key,))
                    else:
                        conn.execute(
                            """
                            INSERT INTO world_state(key, value, version, tx_id)
                            VALUES (?, ?, 1, ?)
                            ON CONFLICT(key) DO UPDATE SET
                                value = excluded.value,
                                version = world_state.version + 1,
                                tx_id = excluded.tx_id
                            """,
                            (key, value, ctx.tx_id),
                        )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.Error as e:
            raise StorageError(f"transaction {ctx.tx_id} failed to commit: {e}") from e
        log.debug("TX COMMITTED %s | %d writes", ctx.tx_id, len(writes))

    def get_version(self, key: str) -> Optional[int]:
        with sqlite_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT version FROM world_state WHERE key = ?", (_encode_key(key),)
            ).fetchone()
            return row["version"] if row else None
