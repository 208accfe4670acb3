# src/signage_tasks/tasks/task_store.py

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from ..storage.sqlite import SqliteStorage
from .task_errors import NotFoundError
from .task_models import LastRunStatus, TaskDefinition, TaskStatus

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "name": "name COLLATE NOCASE ASC, id ASC",
    "-name": "name COLLATE NOCASE DESC, id DESC",
    "id": "id ASC",
    "-id": "id DESC",
    "last_run_dt": "COALESCE(last_run_dt, 0) ASC, id ASC",
    "-last_run_dt": "COALESCE(last_run_dt, 0) DESC, id DESC",
}


class TaskStore:
    """
    SQLite store for task definitions.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    No locking is applied around save(): concurrent writers get last-writer-wins on
    the status fields. The executor serializes runs through the advisory run lock.
    """

    def __init__(self, storage: SqliteStorage) -> None:
        self._storage = storage
        self._last_total = 0
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", storage.db_path, self.count_tasks())

    def _ensure_schema(self) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS task_definitions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    schedule TEXT NOT NULL,
                    implementation_ref TEXT,
                    config_file TEXT,
                    options TEXT NOT NULL DEFAULT '{}',
                    is_active INTEGER NOT NULL DEFAULT 0,
                    run_now INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'idle',
                    last_run_status TEXT NOT NULL DEFAULT 'not_run',
                    last_run_dt REAL,
                    last_run_duration REAL,
                    last_run_message TEXT
                )
                """
            )

            self._storage.ensure_columns(
                conn,
                "task_definitions",
                {
                    "implementation_ref": "TEXT",
                    "config_file": "TEXT",
                    "options": "TEXT NOT NULL DEFAULT '{}'",
                    "is_active": "INTEGER NOT NULL DEFAULT 0",
                    "run_now": "INTEGER NOT NULL DEFAULT 0",
                    "status": "TEXT NOT NULL DEFAULT 'idle'",
                    "last_run_status": "TEXT NOT NULL DEFAULT 'not_run'",
                    "last_run_dt": "REAL",
                    "last_run_duration": "REAL",
                    "last_run_message": "TEXT",
                },
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_definitions_active ON task_definitions(is_active, run_now)"
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS task_run_locks (
                    task_id INTEGER PRIMARY KEY,
                    owner TEXT NOT NULL,
                    acquired_at REAL NOT NULL
                )
                """
            )
            conn.commit()

    # ---- encoding helpers ----

    @staticmethod
    def _options_to_str(options: dict[str, str] | None) -> str:
        if not options:
            return "{}"
        return json.dumps({str(k): str(v) for k, v in options.items()}, ensure_ascii=False, sort_keys=True)

    @staticmethod
    def _str_to_options(s: str | None) -> dict[str, str]:
        if not s:
            return {}
        try:
            val = json.loads(s)
        except ValueError:
            logger.warning("Stored task options are not valid JSON; using {}.")
            return {}
        if not isinstance(val, dict):
            return {}
        return {str(k): "" if v is None else str(v) for k, v in val.items()}

    def _row_to_definition(self, row: sqlite3.Row) -> TaskDefinition:
        return TaskDefinition(
            id=int(row["id"]),
            name=str(row["name"] or ""),
            schedule=str(row["schedule"] or ""),
            implementation_ref=row["implementation_ref"],
            config_file=row["config_file"],
            options=self._str_to_options(row["options"]),
            is_active=bool(row["is_active"]),
            run_now=bool(row["run_now"]),
            status=TaskStatus.from_db(row["status"]),
            last_run_status=LastRunStatus.from_db(row["last_run_status"]),
            last_run_dt=float(row["last_run_dt"]) if row["last_run_dt"] is not None else None,
            last_run_duration=(
                float(row["last_run_duration"]) if row["last_run_duration"] is not None else None
            ),
            last_run_message=row["last_run_message"],
        )

    def _definition_params(self, d: TaskDefinition) -> tuple[Any, ...]:
        return (
            d.name,
            d.schedule,
            d.implementation_ref,
            d.config_file,
            self._options_to_str(d.options),
            int(bool(d.is_active)),
            int(bool(d.run_now)),
            d.status.value,
            d.last_run_status.value,
            d.last_run_dt,
            d.last_run_duration,
            d.last_run_message,
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._storage.connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM task_definitions").fetchone()
        return int(n)

    def get_by_id(self, task_id: int) -> TaskDefinition:
        with self._storage.connect() as conn:
            row = conn.execute("SELECT * FROM task_definitions WHERE id = ?", (int(task_id),)).fetchone()
        if row is None:
            raise NotFoundError(f"Task {task_id} not found")
        return self._row_to_definition(row)

    def save(self, definition: TaskDefinition) -> int:
        """Insert (id is None) or update the definition. Returns its id."""
        if not definition.name or not definition.name.strip():
            raise ValueError("name is required")

        params = self._definition_params(definition)

        with self._storage.connect() as conn:
            if definition.id is None:
                cur = conn.execute(
                    """
                    INSERT INTO task_definitions(
                        name, schedule, implementation_ref, config_file, options,
                        is_active, run_now, status,
                        last_run_status, last_run_dt, last_run_duration, last_run_message
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    params,
                )
                conn.commit()
                rowid = cur.lastrowid
                if rowid is None:
                    raise RuntimeError("SQLite did not return lastrowid for task_definitions insert")
                definition.id = int(rowid)
                logger.debug("Task added id=%s name=%s ref=%s", definition.id, definition.name,
                             definition.implementation_ref)
                return definition.id

            cur = conn.execute(
                """
                UPDATE task_definitions
                SET name = ?, schedule = ?, implementation_ref = ?, config_file = ?, options = ?,
                    is_active = ?, run_now = ?, status = ?,
                    last_run_status = ?, last_run_dt = ?, last_run_duration = ?, last_run_message = ?
                WHERE id = ?
                """,
                (*params, int(definition.id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise NotFoundError(f"Task {definition.id} not found")
            return int(definition.id)

    def delete(self, definition: TaskDefinition) -> None:
        if definition.id is None:
            return
        with self._storage.connect() as conn:
            conn.execute("DELETE FROM task_definitions WHERE id = ?", (int(definition.id),))
            conn.execute("DELETE FROM task_run_locks WHERE task_id = ?", (int(definition.id),))
            conn.commit()
        logger.debug("Task deleted id=%s name=%s", definition.id, definition.name)

    def query(
        self,
        *,
        name: str | None = None,
        is_active: bool | None = None,
        sort: str = "name",
        start: int = 0,
        length: int | None = None,
    ) -> list[TaskDefinition]:
        """
        Filtered/sorted listing for the administrative grid and the scheduler.

        count_last() afterwards returns the unpaged total of this query.
        """
        where: list[str] = []
        params: list[Any] = []
        if name:
            where.append("name LIKE ?")
            params.append(f"%{name}%")
        if is_active is not None:
            where.append("is_active = ?")
            params.append(int(bool(is_active)))

        where_sql = f"WHERE {' AND '.join(where)}" if where else ""
        order_sql = _SORT_COLUMNS.get(sort, _SORT_COLUMNS["name"])

        with self._storage.connect() as conn:
            (total,) = conn.execute(f"SELECT COUNT(*) FROM task_definitions {where_sql}", params).fetchone()

            sql = f"SELECT * FROM task_definitions {where_sql} ORDER BY {order_sql}"
            page_params = list(params)
            if length is not None:
                sql += " LIMIT ? OFFSET ?"
                page_params.extend([int(length), max(0, int(start))])
            elif start:
                sql += " LIMIT -1 OFFSET ?"
                page_params.append(max(0, int(start)))
            rows = conn.execute(sql, page_params).fetchall()

        self._last_total = int(total)
        return [self._row_to_definition(r) for r in rows]

    def count_last(self) -> int:
        return self._last_total

    # ---- advisory run lock ----

    def try_acquire_run_lock(
        self,
        task_id: int,
        *,
        owner: str,
        now_ts: float,
        stale_after: float,
    ) -> bool:
        """
        Best-effort lock keyed by task id.

        A lock older than stale_after seconds is considered abandoned and taken over.
        Returns True if this caller now holds the lock.
        """
        with self._storage.transaction() as conn:
            conn.execute(
                "DELETE FROM task_run_locks WHERE task_id = ? AND acquired_at <= ?",
                (int(task_id), float(now_ts) - float(stale_after)),
            )
            cur = conn.execute(
                "INSERT OR IGNORE INTO task_run_locks(task_id, owner, acquired_at) VALUES (?, ?, ?)",
                (int(task_id), owner, float(now_ts)),
            )
            return cur.rowcount == 1

    def release_run_lock(self, task_id: int, *, owner: str) -> None:
        with self._storage.connect() as conn:
            conn.execute(
                "DELETE FROM task_run_locks WHERE task_id = ? AND owner = ?",
                (int(task_id), owner),
            )
            conn.commit()
