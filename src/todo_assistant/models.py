from __future__ import annotations

from datetime import datetime
from typing import List, Optional, TypedDict

PRIORITIES = ("urgent", "high", "medium", "low")
STATUSES = ("pending", "in_progress", "completed", "scheduled")

DEFAULT_PRIORITY = "medium"
DEFAULT_STATUS = "pending"
DEFAULT_CATEGORY = "personal"


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    The canonical todo record shared by every layer (storage, HTTP, tools).

    Fields:
    - id: Unique integer identifier, assigned at creation, never reused
    - title: Short non-empty title
    - description: Free text, empty string when not given
    - priority: One of PRIORITIES
    - status: One of STATUSES
    - category: Free-form tag, 'personal' by default
    - created_date: Creation timestamp, never changes afterwards
    - due_date: Optional deadline
    - last_updated: Timestamp of the last successful write
    - estimated_duration: Free text, stored verbatim
    """

    id: int
    title: str
    description: str
    priority: str
    status: str
    category: str
    created_date: datetime
    due_date: Optional[datetime]
    last_updated: datetime
    estimated_duration: str


class WorkSchedule(TypedDict):
    start_time: str
    end_time: str
    work_days: List[str]


# PUBLIC_INTERFACE
class UserProfileEntity(TypedDict):
    """The single user profile record. There is at most one per store."""

    name: str
    timezone: str
    work_schedule: WorkSchedule


def copy_todo(todo: TodoEntity) -> TodoEntity:
    """Return a copy detached from the stored record."""
    return todo.copy()


def copy_profile(profile: UserProfileEntity) -> UserProfileEntity:
    schedule = profile["work_schedule"]
    return {
        "name": profile["name"],
        "timezone": profile["timezone"],
        "work_schedule": {
            "start_time": schedule["start_time"],
            "end_time": schedule["end_time"],
            "work_days": list(schedule["work_days"]),
        },
    }
