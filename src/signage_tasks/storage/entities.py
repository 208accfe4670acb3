# src/signage_tasks/storage/entities.py

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_errors import NotFoundError
from .sqlite import SqliteStorage

logger = logging.getLogger(__name__)

ENTITY_KINDS = (
    "user",
    "user_group",
    "layout",
    "display",
    "upgrade",
    "media",
    "notification",
    "user_notification",
)


@dataclass(slots=True)
class Entity:
    id: int
    kind: str
    created_at: float
    updated_at: float
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class EntityFactory:
    """
    Factory for one kind of domain entity (display, media, notification, ...).

    Entities are stored as JSON documents in a single `entities` table keyed by kind.
    Filtering happens in Python; the CMS keeps these collections small.
    """

    def __init__(self, storage: SqliteStorage, kind: str) -> None:
        if kind not in ENTITY_KINDS:
            raise ValueError(f"Unknown entity kind: {kind}")
        self._storage = storage
        self.kind = kind
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS entities (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}'
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_entities_kind ON entities(kind)")
            conn.commit()

    @staticmethod
    def _str_to_data(s: str | None) -> dict[str, Any]:
        if not s:
            return {}
        try:
            val = json.loads(s)
        except ValueError:
            return {}
        return val if isinstance(val, dict) else {}

    def _row_to_entity(self, row: Any) -> Entity:
        return Entity(
            id=int(row["id"]),
            kind=str(row["kind"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            data=self._str_to_data(row["data"]),
        )

    def create(self, data: Mapping[str, Any], *, now_ts: float | None = None) -> Entity:
        now_ts = time.time() if now_ts is None else now_ts
        payload = dict(data)
        with self._storage.connect() as conn:
            cur = conn.execute(
                "INSERT INTO entities(kind, created_at, updated_at, data) VALUES (?, ?, ?, ?)",
                (self.kind, now_ts, now_ts, json.dumps(payload, ensure_ascii=False)),
            )
            conn.commit()
            rowid = cur.lastrowid
        if rowid is None:
            raise RuntimeError("SQLite did not return lastrowid for entities insert")
        logger.debug("Entity added kind=%s id=%s", self.kind, rowid)
        return Entity(id=int(rowid), kind=self.kind, created_at=now_ts, updated_at=now_ts, data=payload)

    def get_by_id(self, entity_id: int) -> Entity:
        with self._storage.connect() as conn:
            row = conn.execute(
                "SELECT * FROM entities WHERE id = ? AND kind = ?", (int(entity_id), self.kind)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"{self.kind} {entity_id} not found")
        return self._row_to_entity(row)

    def query(
        self,
        *,
        filters: Mapping[str, Any] | None = None,
        where: Callable[[Entity], bool] | None = None,
        created_before: float | None = None,
        start: int = 0,
        length: int | None = None,
    ) -> list[Entity]:
        """
        Return entities of this kind ordered by id.

        - filters: equality on top-level data keys
        - where: arbitrary predicate
        - created_before: created_at strictly lower than the given timestamp
        """
        sql = "SELECT * FROM entities WHERE kind = ?"
        params: list[Any] = [self.kind]
        if created_before is not None:
            sql += " AND created_at < ?"
            params.append(float(created_before))
        sql += " ORDER BY id ASC"

        with self._storage.connect() as conn:
            rows = conn.execute(sql, params).fetchall()

        out: list[Entity] = []
        for row in rows:
            entity = self._row_to_entity(row)
            if filters and any(entity.data.get(k) != v for k, v in filters.items()):
                continue
            if where is not None and not where(entity):
                continue
            out.append(entity)

        if start:
            out = out[max(0, int(start)):]
        if length is not None:
            out = out[: max(0, int(length))]
        return out

    def save(self, entity: Entity, *, now_ts: float | None = None) -> None:
        now_ts = time.time() if now_ts is None else now_ts
        with self._storage.connect() as conn:
            cur = conn.execute(
                "UPDATE entities SET data = ?, updated_at = ? WHERE id = ? AND kind = ?",
                (json.dumps(entity.data, ensure_ascii=False), now_ts, int(entity.id), self.kind),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise NotFoundError(f"{self.kind} {entity.id} not found")
        entity.updated_at = now_ts

    def delete(self, entity: Entity) -> None:
        with self._storage.connect() as conn:
            conn.execute("DELETE FROM entities WHERE id = ? AND kind = ?", (int(entity.id), self.kind))
            conn.commit()


@dataclass(slots=True, frozen=True)
class EntityFactories:
    """The fixed set of domain entity factories handed to every task."""

    user: EntityFactory
    user_group: EntityFactory
    layout: EntityFactory
    display: EntityFactory
    upgrade: EntityFactory
    media: EntityFactory
    notification: EntityFactory
    user_notification: EntityFactory

    @classmethod
    def from_storage(cls, storage: SqliteStorage) -> EntityFactories:
        return cls(**{kind: EntityFactory(storage, kind) for kind in ENTITY_KINDS})
