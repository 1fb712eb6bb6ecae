from __future__ import annotations

import json
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Generator, Iterable, List, Mapping, Optional

from .errors import NotFoundError, StorageError, TodoNotFoundError
from .models import TodoEntity, UserProfileEntity
from .ordering import sort_todos
from .repositories import (
    Clock,
    IdAllocator,
    Repository,
    _require_id,
    build_new_todo,
    build_replacement,
    check_imported,
)


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    priority: str = "priority"
    status: str = "status"
    created_date: str = "created_date"
    due_date: str = "due_date"
    last_updated: str = "last_updated"
    estimated_duration: str = "estimated_duration"
    category: str = "category"


@dataclass(frozen=True)
class _ProfileCols:
    table: str = "user_profile"
    id: str = "id"
    name: str = "name"
    timezone: str = "timezone"
    start: str = "work_schedule_start"
    end: str = "work_schedule_end"
    days: str = "work_schedule_days"


_COLS = _Cols()
_PCOLS = _ProfileCols()

_TODO_FIELDS = (
    _COLS.id,
    _COLS.title,
    _COLS.description,
    _COLS.priority,
    _COLS.status,
    _COLS.created_date,
    _COLS.due_date,
    _COLS.last_updated,
    _COLS.estimated_duration,
    _COLS.category,
)
_SELECT_TODO = f"SELECT {', '.join(_TODO_FIELDS)} FROM {_COLS.table}"
_INSERT_TODO = (
    f"INSERT INTO {_COLS.table} ({', '.join(_TODO_FIELDS)}) "
    f"VALUES ({', '.join('?' for _ in _TODO_FIELDS)})"
)
_UPSERT_TODO = _INSERT_TODO.replace("INSERT", "INSERT OR REPLACE", 1)
_PROFILE_ROW_ID = 1


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    if s is None or s == "":
        return None
    return datetime.fromisoformat(s)


class SQLiteRepository(Repository):
    """
    SQLite-backed repository. Each mutating operation runs in one
    BEGIN IMMEDIATE transaction, and all operations on one instance are
    serialized by a process-local lock. Id numbering is recovered from
    MAX(id) when the instance is constructed.
    """

    backend = "sqlite"

    def __init__(self, db_path: str, clock: Optional[Clock] = None, timeout: float = 5.0) -> None:
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._timeout = timeout
        self._clock = clock or datetime.now
        self._lock = RLock()
        self._shared: Optional[sqlite3.Connection] = None
        if db_path == ":memory:":
            # A private in-memory database only lives as long as its connection
            self._shared = self._connect()
        self._init_db()
        self._ids = IdAllocator([self._max_id()])

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self._db_path,
                timeout=self._timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            raise StorageError(f"failed to open SQLite database: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = self._shared or self._connect()
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"SQLite operation failed: {e}") from e
        finally:
            if conn is not self._shared:
                conn.close()

    @contextmanager
    def _transaction(self) -> Generator[sqlite3.Connection, None, None]:
        with self._lock, self._conn() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init_db(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NOT NULL DEFAULT '',
                    {_COLS.priority} TEXT NOT NULL DEFAULT 'medium',
                    {_COLS.status} TEXT NOT NULL DEFAULT 'pending',
                    {_COLS.created_date} TEXT NOT NULL,
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.last_updated} TEXT NOT NULL,
                    {_COLS.estimated_duration} TEXT NOT NULL DEFAULT '',
                    {_COLS.category} TEXT NOT NULL DEFAULT 'personal'
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_PCOLS.table} (
                    {_PCOLS.id} INTEGER PRIMARY KEY,
                    {_PCOLS.name} TEXT,
                    {_PCOLS.timezone} TEXT,
                    {_PCOLS.start} TEXT,
                    {_PCOLS.end} TEXT,
                    {_PCOLS.days} TEXT
                )
                """
            )

    def _max_id(self) -> int:
        with self._lock, self._conn() as conn:
            row = conn.execute(f"SELECT COALESCE(MAX({_COLS.id}), 0) AS max_id FROM {_COLS.table}").fetchone()
            return int(row["max_id"])

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": int(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description] or "",
            "priority": row[_COLS.priority] or "",
            "status": row[_COLS.status] or "",
            "category": row[_COLS.category] or "",
            "created_date": _parse_dt(row[_COLS.created_date]),  # type: ignore[typeddict-item]
            "due_date": _parse_dt(row[_COLS.due_date]),
            "last_updated": _parse_dt(row[_COLS.last_updated]),  # type: ignore[typeddict-item]
            "estimated_duration": row[_COLS.estimated_duration] or "",
        }

    @staticmethod
    def _entity_params(t: TodoEntity) -> tuple:
        return (
            t["id"],
            t["title"],
            t["description"],
            t["priority"],
            t["status"],
            _dt(t["created_date"]),
            _dt(t["due_date"]),
            _dt(t["last_updated"]),
            t["estimated_duration"],
            t["category"],
        )

    def _fetch(self, conn: sqlite3.Connection, todo_id: int) -> TodoEntity:
        row = conn.execute(f"{_SELECT_TODO} WHERE {_COLS.id} = ?", (todo_id,)).fetchone()
        if row is None:
            raise TodoNotFoundError(todo_id)
        return self._row_to_entity(row)

    def create_todo(self, data: Mapping[str, Any]) -> TodoEntity:
        with self._lock:
            entity = build_new_todo(data, self._ids.peek(), self._clock())
            with self._transaction() as conn:
                conn.execute(_INSERT_TODO, self._entity_params(entity))
            # Only a committed insert consumes the id
            self._ids.allocate()
            return entity

    def get_todo(self, todo_id: int) -> TodoEntity:
        with self._lock, self._conn() as conn:
            return self._fetch(conn, todo_id)

    def list_todos(self) -> List[TodoEntity]:
        with self._lock, self._conn() as conn:
            rows = conn.execute(f"{_SELECT_TODO} ORDER BY {_COLS.id}").fetchall()
        return sort_todos(self._row_to_entity(r) for r in rows)

    def update_todo(self, data: Mapping[str, Any]) -> TodoEntity:
        todo_id = _require_id(data)
        with self._transaction() as conn:
            existing = self._fetch(conn, todo_id)
            updated = build_replacement(data, existing, self._clock())
            conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = ?, {_COLS.description} = ?, {_COLS.priority} = ?,
                    {_COLS.status} = ?, {_COLS.due_date} = ?, {_COLS.last_updated} = ?,
                    {_COLS.estimated_duration} = ?, {_COLS.category} = ?
                WHERE {_COLS.id} = ?
                """,
                (
                    updated["title"],
                    updated["description"],
                    updated["priority"],
                    updated["status"],
                    _dt(updated["due_date"]),
                    _dt(updated["last_updated"]),
                    updated["estimated_duration"],
                    updated["category"],
                    todo_id,
                ),
            )
            return updated

    def delete_todo(self, todo_id: int) -> None:
        with self._transaction() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
            if cur.rowcount == 0:
                raise TodoNotFoundError(todo_id)

    def get_user_profile(self) -> UserProfileEntity:
        with self._lock, self._conn() as conn:
            row = conn.execute(
                f"SELECT {_PCOLS.name}, {_PCOLS.timezone}, {_PCOLS.start}, {_PCOLS.end}, {_PCOLS.days} "
                f"FROM {_PCOLS.table} ORDER BY {_PCOLS.id} LIMIT 1"
            ).fetchone()
        if row is None:
            raise NotFoundError("user profile not found")
        try:
            work_days = json.loads(row[_PCOLS.days] or "[]")
        except ValueError as e:
            raise StorageError(f"failed to decode work days: {e}") from e
        return {
            "name": row[_PCOLS.name] or "",
            "timezone": row[_PCOLS.timezone] or "",
            "work_schedule": {
                "start_time": row[_PCOLS.start] or "",
                "end_time": row[_PCOLS.end] or "",
                "work_days": [str(d) for d in work_days],
            },
        }

    @staticmethod
    def _write_profile(conn: sqlite3.Connection, profile: UserProfileEntity) -> None:
        schedule = profile["work_schedule"]
        conn.execute(f"DELETE FROM {_PCOLS.table}")
        conn.execute(
            f"""
            INSERT INTO {_PCOLS.table} ({_PCOLS.id}, {_PCOLS.name}, {_PCOLS.timezone},
                {_PCOLS.start}, {_PCOLS.end}, {_PCOLS.days})
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                _PROFILE_ROW_ID,
                profile["name"],
                profile["timezone"],
                schedule["start_time"],
                schedule["end_time"],
                json.dumps(list(schedule["work_days"])),
            ),
        )

    def set_user_profile(self, profile: UserProfileEntity) -> None:
        with self._transaction() as conn:
            self._write_profile(conn, profile)

    def import_todos(self, todos: Iterable[TodoEntity], profile: Optional[UserProfileEntity] = None) -> int:
        staged = [check_imported(t) for t in todos]
        with self._lock:
            with self._transaction() as conn:
                if profile is not None:
                    self._write_profile(conn, profile)
                conn.executemany(_UPSERT_TODO, [self._entity_params(t) for t in staged])
            for t in staged:
                self._ids.observe(t["id"])
        return len(staged)

    def close(self) -> None:
        with self._lock:
            if self._shared is not None:
                self._shared.close()
                self._shared = None
