from __future__ import annotations


# PUBLIC_INTERFACE
class TodoStoreError(Exception):
    """Base class for every error raised by the todo store."""

    kind = "TodoStoreError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# PUBLIC_INTERFACE
class ValidationError(TodoStoreError):
    """
    A caller supplied a missing required field or a malformed value.
    Nothing is persisted when this is raised.
    """

    kind = "ValidationError"


# PUBLIC_INTERFACE
class NotFoundError(TodoStoreError):
    """The referenced todo id does not exist, or no profile has been set."""

    kind = "NotFound"

    @property
    def detail(self) -> str:
        """Client-facing description of what was missing."""
        return self.message


class TodoNotFoundError(NotFoundError):
    """No todo with the given id exists."""

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"todo with ID {todo_id} not found")
        self.todo_id = todo_id

    @property
    def detail(self) -> str:
        return "Todo not found"


# PUBLIC_INTERFACE
class StorageError(TodoStoreError):
    """The persistence medium failed. Surfaced as-is, never retried."""

    kind = "StorageError"
