from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .errors import NotFoundError, TodoNotFoundError, ValidationError
from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    PRIORITIES,
    STATUSES,
    TodoEntity,
    UserProfileEntity,
    copy_profile,
    copy_todo,
)
from .ordering import sort_todos
from .settings import Settings, get_settings
from .utils import parse_due_date

Clock = Callable[[], datetime]


# PUBLIC_INTERFACE
class IdAllocator:
    """
    Hands out todo ids. Starts at one past the highest id already stored
    (or 1 for an empty store) and only moves forward, so ids of deleted
    items are never handed out again while the store is alive.
    """

    def __init__(self, existing_ids: Iterable[int] = ()) -> None:
        self._next_id = max(existing_ids, default=0) + 1

    def peek(self) -> int:
        """Id the next allocate() call will return."""
        return self._next_id

    def allocate(self) -> int:
        i = self._next_id
        self._next_id += 1
        return i

    def observe(self, todo_id: int) -> None:
        """Make sure future ids stay above an id inserted from outside."""
        if todo_id >= self._next_id:
            self._next_id = todo_id + 1


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _choice(data: Mapping[str, Any], key: str, allowed: tuple, default: str) -> str:
    value = _text(data, key).strip()
    if not value:
        return default
    if value not in allowed:
        raise ValidationError(f"{key} must be one of {', '.join(allowed)}; got {value!r}")
    return value


def _title(data: Mapping[str, Any]) -> str:
    title = _text(data, "title").strip()
    if not title:
        raise ValidationError("title is required")
    return title


def _due_date(data: Mapping[str, Any]) -> Optional[datetime]:
    try:
        return parse_due_date(data.get("due_date"))
    except ValueError as e:
        raise ValidationError(str(e)) from e


def build_new_todo(data: Mapping[str, Any], todo_id: int, now: datetime) -> TodoEntity:
    """
    Validate a creation request and apply the default policy. Any id or
    timestamp in the request is ignored.
    """
    return {
        "id": todo_id,
        "title": _title(data),
        "description": _text(data, "description"),
        "priority": _choice(data, "priority", PRIORITIES, DEFAULT_PRIORITY),
        "status": _choice(data, "status", STATUSES, DEFAULT_STATUS),
        "category": _text(data, "category").strip() or DEFAULT_CATEGORY,
        "created_date": now,
        "due_date": _due_date(data),
        "last_updated": now,
        "estimated_duration": _text(data, "estimated_duration"),
    }


def build_replacement(data: Mapping[str, Any], existing: TodoEntity, now: datetime) -> TodoEntity:
    """
    Full-replace semantics: every field comes from the request except id and
    created_date, which are kept, and last_updated, which never moves back.
    """
    replaced = build_new_todo(data, existing["id"], now)
    replaced["created_date"] = existing["created_date"]
    replaced["last_updated"] = max(now, existing["last_updated"])
    return replaced


def _require_id(data: Mapping[str, Any]) -> int:
    todo_id = data.get("id")
    if isinstance(todo_id, bool) or not isinstance(todo_id, int):
        raise ValidationError("id is required and must be an integer")
    return todo_id


def check_imported(todo: TodoEntity) -> TodoEntity:
    """
    Apply the write-time rules to a record imported with its own id and
    timestamps. Empty priority, status and category get their defaults.
    """
    _require_id(todo)
    checked = copy_todo(todo)
    checked["title"] = _title(todo)
    checked["priority"] = _choice(todo, "priority", PRIORITIES, DEFAULT_PRIORITY)
    checked["status"] = _choice(todo, "status", STATUSES, DEFAULT_STATUS)
    checked["category"] = _text(todo, "category").strip() or DEFAULT_CATEGORY
    return checked


# PUBLIC_INTERFACE
class Repository(ABC):
    """
    Entity store contract: the single owner of the todo collection and the
    user profile. Implementations must serialize all operations per instance
    and apply each mutation atomically.
    """

    backend: str = "abstract"

    @abstractmethod
    def create_todo(self, data: Mapping[str, Any]) -> TodoEntity:
        """Create, persist and return a new todo with a freshly allocated id."""

    @abstractmethod
    def get_todo(self, todo_id: int) -> TodoEntity:
        """Return the todo with this id. Raises NotFoundError."""

    @abstractmethod
    def list_todos(self) -> List[TodoEntity]:
        """Return copies of every todo in display order."""

    @abstractmethod
    def update_todo(self, data: Mapping[str, Any]) -> TodoEntity:
        """Replace the todo identified by data['id']. Raises NotFoundError."""

    @abstractmethod
    def delete_todo(self, todo_id: int) -> None:
        """Remove the todo permanently. Raises NotFoundError."""

    @abstractmethod
    def get_user_profile(self) -> UserProfileEntity:
        """Return the profile. Raises NotFoundError when none was set."""

    @abstractmethod
    def set_user_profile(self, profile: UserProfileEntity) -> None:
        """Store the profile singleton, replacing any previous one."""

    @abstractmethod
    def import_todos(self, todos: Iterable[TodoEntity], profile: Optional[UserProfileEntity] = None) -> int:
        """
        Insert or replace records, keeping their ids and timestamps, and
        optionally replace the profile in the same atomic step. Every record
        is checked (see check_imported) before anything is written.
        Returns the number of records written.
        """

    def close(self) -> None:
        """Release backend resources. No-op by default."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    Can be seeded with previously persisted items; id numbering resumes from
    the highest seeded id.
    """

    backend = "memory"

    def __init__(
        self,
        todos: Iterable[TodoEntity] = (),
        profile: Optional[UserProfileEntity] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._lock = RLock()
        self._items: Dict[int, TodoEntity] = {t["id"]: copy_todo(t) for t in todos}
        self._profile = copy_profile(profile) if profile is not None else None
        self._ids = IdAllocator(self._items.keys())
        self._clock = clock or datetime.now

    def _now(self) -> datetime:
        return self._clock()

    def create_todo(self, data: Mapping[str, Any]) -> TodoEntity:
        with self._lock:
            entity = build_new_todo(data, self._ids.peek(), self._now())
            self._ids.allocate()
            self._items[entity["id"]] = entity
            return copy_todo(entity)

    def get_todo(self, todo_id: int) -> TodoEntity:
        with self._lock:
            item = self._items.get(todo_id)
            if item is None:
                raise TodoNotFoundError(todo_id)
            return copy_todo(item)

    def list_todos(self) -> List[TodoEntity]:
        with self._lock:
            snapshot = [copy_todo(t) for t in self._items.values()]
        return sort_todos(snapshot)

    def update_todo(self, data: Mapping[str, Any]) -> TodoEntity:
        todo_id = _require_id(data)
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                raise TodoNotFoundError(todo_id)
            updated = build_replacement(data, existing, self._now())
            self._items[todo_id] = updated
            return copy_todo(updated)

    def delete_todo(self, todo_id: int) -> None:
        with self._lock:
            if self._items.pop(todo_id, None) is None:
                raise TodoNotFoundError(todo_id)

    def get_user_profile(self) -> UserProfileEntity:
        with self._lock:
            if self._profile is None:
                raise NotFoundError("user profile not found")
            return copy_profile(self._profile)

    def set_user_profile(self, profile: UserProfileEntity) -> None:
        with self._lock:
            self._profile = copy_profile(profile)

    def import_todos(self, todos: Iterable[TodoEntity], profile: Optional[UserProfileEntity] = None) -> int:
        staged = [check_imported(t) for t in todos]
        with self._lock:
            if profile is not None:
                self._profile = copy_profile(profile)
            for t in staged:
                self._items[t["id"]] = t
                self._ids.observe(t["id"])
        return len(staged)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


# PUBLIC_INTERFACE
def build_repository(settings: Optional[Settings] = None) -> Repository:
    """
    Construct the repository selected by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository at SQLITE_DB_PATH
    The caller owns the returned instance and must close() it on shutdown.
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()
