# src/signage_tasks/storage/pool.py

from __future__ import annotations

import json
import logging
import time
from typing import Any

from .sqlite import SqliteStorage

logger = logging.getLogger(__name__)

_MISSING = object()


class SqlitePool:
    """
    Key-value cache pool shared by task implementations.

    Values are JSON-encoded. Items with an expiry are invisible once expired and are
    physically removed by purge().
    """

    def __init__(self, storage: SqliteStorage) -> None:
        self._storage = storage
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_pool (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    expires_at REAL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_cache_pool_expires ON cache_pool(expires_at)")
            conn.commit()

    def get(self, key: str, default: Any = None, *, now_ts: float | None = None) -> Any:
        now_ts = time.time() if now_ts is None else now_ts
        with self._storage.connect() as conn:
            row = conn.execute(
                "SELECT value, expires_at FROM cache_pool WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return default
        if row["expires_at"] is not None and float(row["expires_at"]) <= now_ts:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            logger.warning("Cache item %s is not valid JSON; ignoring.", key)
            return default

    def has(self, key: str, *, now_ts: float | None = None) -> bool:
        return self.get(key, _MISSING, now_ts=now_ts) is not _MISSING

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl_seconds: float | None = None,
        now_ts: float | None = None,
    ) -> None:
        now_ts = time.time() if now_ts is None else now_ts
        expires_at = None if ttl_seconds is None else now_ts + float(ttl_seconds)
        with self._storage.connect() as conn:
            conn.execute(
                """
                INSERT INTO cache_pool(key, value, expires_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at
                """,
                (key, json.dumps(value, ensure_ascii=False), expires_at),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with self._storage.connect() as conn:
            conn.execute("DELETE FROM cache_pool WHERE key = ?", (key,))
            conn.commit()

    def purge(self, *, now_ts: float | None = None) -> int:
        """Remove expired items. Returns how many were removed."""
        now_ts = time.time() if now_ts is None else now_ts
        with self._storage.connect() as conn:
            cur = conn.execute(
                "DELETE FROM cache_pool WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (float(now_ts),),
            )
            conn.commit()
            return int(cur.rowcount)

    def clear(self) -> int:
        with self._storage.connect() as conn:
            cur = conn.execute("DELETE FROM cache_pool")
            conn.commit()
            return int(cur.rowcount)
