# src/signage_tasks/toolbar/preference_store.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from ..storage.sqlite import SqliteStorage

logger = logging.getLogger(__name__)


class PreferenceStore:
    """SQLite storage for per-user preferences (opaque string values keyed by name)."""

    def __init__(self, storage: SqliteStorage) -> None:
        self._storage = storage
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS user_preferences (
                    user_id TEXT NOT NULL,
                    preference TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (user_id, preference)
                )
                """
            )
            conn.commit()

    def get(self, user_id: str, preference: str) -> str | None:
        with self._storage.connect() as conn:
            row = conn.execute(
                "SELECT value FROM user_preferences WHERE user_id = ? AND preference = ?",
                (str(user_id), preference),
            ).fetchone()
        return None if row is None else str(row["value"])

    def set(self, user_id: str, preference: str, value: str) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                """
                INSERT INTO user_preferences(user_id, preference, value, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, preference) DO UPDATE SET
                    value = excluded.value, updated_at = excluded.updated_at
                """,
                (str(user_id), preference, value, time.time()),
            )
            conn.commit()
        logger.debug("Saved preference user=%s key=%s (%d chars)", user_id, preference, len(value))

    def for_user(self, user_id: str) -> UserPreferences:
        return UserPreferences(self, str(user_id))


@dataclass(slots=True, frozen=True)
class UserPreferences:
    """PreferenceRepo bound to one user."""

    store: PreferenceStore
    user_id: str

    def get(self, key: str) -> str | None:
        return self.store.get(self.user_id, key)

    def set(self, key: str, value: str) -> None:
        self.store.set(self.user_id, key, value)
