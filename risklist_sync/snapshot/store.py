"""
Snapshot Store — durable key-value store for the authoritative expected state.

Behavioral Contract:
- get(key) returns the stored value, or None when absent or expired.
- put(key, value, ttl) overwrites; last writer wins per key.
- Expected state is persisted before any remote mutation is attempted,
  so a crashed cycle can always be resumed or re-verified from here.
- Per-list leases serialise reconciliation passes; a lease expires on its
  own if its holder dies.
"""

import sqlite3
import time
from datetime import datetime
from typing import Callable, Iterable, Optional

from risklist_sync.models.risk import RiskTier
from risklist_sync.models.snapshot import ExpectedState, SyncState


def expected_state_key(list_id: str) -> str:
    return f"gateway_list_{list_id}"


def lease_key(list_id: str) -> str:
    return f"lease_{list_id}"


class SnapshotStore:
    """
    SQLite-backed key-value snapshot store with optional per-key TTL.
    Use ":memory:" for an ephemeral store.
    """

    def __init__(self, db_path: str = ":memory:", clock: Callable[[], float] = time.time):
        self.db_path = db_path
        self._clock = clock
        self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshot (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at REAL,
                updated_at REAL NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_snapshot_expires_at ON snapshot(expires_at)
        """)

    def _expires_at(self, ttl_seconds: Optional[float]) -> Optional[float]:
        return self._clock() + ttl_seconds if ttl_seconds is not None else None

    def _purge_expired(self) -> None:
        self._conn.execute(
            "DELETE FROM snapshot WHERE expires_at IS NOT NULL AND expires_at <= ?",
            (self._clock(),),
        )

    # --- Raw key-value operations ---

    def get(self, key: str) -> Optional[str]:
        row = self._conn.execute(
            "SELECT value, expires_at FROM snapshot WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= self._clock():
            self.delete(key)
            return None
        return row["value"]

    def put(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        self._conn.execute(
            """
            INSERT INTO snapshot (key, value, expires_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                expires_at = excluded.expires_at,
                updated_at = excluded.updated_at
            """,
            (key, value, self._expires_at(ttl_seconds), self._clock()),
        )

    def put_if_absent(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> bool:
        """Atomically create a key. Returns False if a live value already exists."""
        self._purge_expired()
        cursor = self._conn.execute(
            "INSERT OR IGNORE INTO snapshot (key, value, expires_at, updated_at) "
            "VALUES (?, ?, ?, ?)",
            (key, value, self._expires_at(ttl_seconds), self._clock()),
        )
        return cursor.rowcount == 1

    def delete(self, key: str) -> bool:
        cursor = self._conn.execute("DELETE FROM snapshot WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def count(self, prefix: str = "") -> int:
        self._purge_expired()
        row = self._conn.execute(
            "SELECT COUNT(*) AS cnt FROM snapshot WHERE substr(key, 1, length(?)) = ?",
            (prefix, prefix),
        ).fetchone()
        return row["cnt"]

    # --- Expected state ---

    def load_expected_state(self, list_id: str) -> Optional[ExpectedState]:
        raw = self.get(expected_state_key(list_id))
        return ExpectedState.model_validate_json(raw) if raw else None

    def save_expected_state(
        self, state: ExpectedState, ttl_seconds: Optional[float] = None
    ) -> ExpectedState:
        self.put(expected_state_key(state.list_id), state.model_dump_json(), ttl_seconds)
        return state

    def write_expected_state(
        self,
        list_id: str,
        tier: RiskTier,
        identifiers: Iterable[str],
        now: Optional[datetime] = None,
        ttl_seconds: Optional[float] = None,
    ) -> ExpectedState:
        """
        Overwrite a list's expected membership wholesale. Sync state and
        drift metadata are carried over from the previous snapshot.
        """
        now = now or datetime.utcnow()
        previous = self.load_expected_state(list_id)
        state = ExpectedState(
            list_id=list_id,
            tier=tier,
            identifiers=list(identifiers),
            last_updated=now,
            last_attempt=now,
            sync_state=previous.sync_state if previous else SyncState.SYNCED,
            drift_detected=previous.drift_detected if previous else False,
            last_reconciliation_attempt=(
                previous.last_reconciliation_attempt if previous else None
            ),
        )
        return self.save_expected_state(state, ttl_seconds)

    # --- Leases ---

    def acquire_lease(self, list_id: str, holder: str, ttl_seconds: float) -> bool:
        return self.put_if_absent(lease_key(list_id), holder, ttl_seconds)

    def release_lease(self, list_id: str, holder: str) -> bool:
        """Release a lease only if it is still held by `holder`."""
        cursor = self._conn.execute(
            "DELETE FROM snapshot WHERE key = ? AND value = ?",
            (lease_key(list_id), holder),
        )
        return cursor.rowcount > 0

    def close(self) -> None:
        self._conn.close()
