from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TodoEntity
from .utils import DueDateInput, parse_due_date

Priority = Literal["urgent", "high", "medium", "low"]
Status = Literal["pending", "in_progress", "completed", "scheduled"]


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class _TodoFields(BaseModel):
    @field_validator("priority", "status", mode="before", check_fields=False)
    @classmethod
    def empty_enum_means_default(cls, v: Any) -> Any:
        """An empty priority or status falls back to the store default."""
        return _blank_to_none(v)

    @field_validator("due_date", mode="before", check_fields=False)
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize due_date from str/date/datetime to datetime.
        """
        return parse_due_date(v)


# PUBLIC_INTERFACE
class TodoCreate(_TodoFields):
    """
    Schema for creating a todo, and for replacing one wholesale with PUT.
    Omitted priority/status/category fall back to medium/pending/personal.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Prepare Q3 presentation for Friday meeting",
                "description": "Slides plus speaker notes",
                "priority": "high",
                "category": "work",
                "due_date": "2025-02-01T17:00:00",
                "estimated_duration": "4 hours",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=200)
    description: str = Field(default="", description="Optional detailed description")
    priority: Optional[Priority] = Field(default=None, description="urgent, high, medium or low")
    status: Optional[Status] = Field(default=None, description="pending, in_progress, completed or scheduled")
    category: str = Field(default="", description="Free-form tag, 'personal' when empty")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    estimated_duration: str = Field(default="", description="Free-text effort estimate, e.g. '2 hours'")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        s = v.strip()
        if not (1 <= len(s) <= 200):
            raise ValueError("title length must be between 1 and 200 characters")
        return s

    @field_validator("description", "category", "estimated_duration", mode="before")
    @classmethod
    def none_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    def to_record(self) -> Dict[str, Any]:
        """Field map handed to the repository."""
        return self.model_dump()


# PUBLIC_INTERFACE
class TodoUpdate(_TodoFields):
    """
    Schema for partially updating a todo.
    Only provided fields change; an explicit null clears due_date.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "in_progress",
                "due_date": "2025-02-02T09:30:00",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the todo item", min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Optional[Priority] = Field(default=None, description="urgent, high, medium or low")
    status: Optional[Status] = Field(default=None, description="pending, in_progress, completed or scheduled")
    category: Optional[str] = Field(default=None, description="Free-form tag")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time, null to clear")
    estimated_duration: Optional[str] = Field(default=None, description="Free-text effort estimate")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..200 length.
        """
        if v is None:
            return v
        s = v.strip()
        if not (1 <= len(s) <= 200):
            raise ValueError("title length must be between 1 and 200 characters")
        return s

    def merge_into(self, existing: TodoEntity) -> Dict[str, Any]:
        """
        Read-modify-write helper: overlay the provided fields on an existing
        record, producing the complete record the full-replace update expects.
        """
        merged: Dict[str, Any] = dict(existing)
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "due_date":
                continue
            merged[name] = value
        return merged


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 3,
                "title": "Prepare Q3 presentation for Friday meeting",
                "description": "Slides plus speaker notes",
                "priority": "high",
                "status": "pending",
                "category": "work",
                "created_date": "2025-01-25T10:15:30.123456",
                "due_date": "2025-02-01T17:00:00",
                "last_updated": "2025-01-26T09:00:00.000001",
                "estimated_duration": "4 hours",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: str = Field(default="", description="Detailed description")
    priority: str = Field(..., description="Priority level")
    status: str = Field(..., description="Workflow status")
    category: str = Field(..., description="Category tag")
    created_date: datetime = Field(..., description="Creation timestamp")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    last_updated: datetime = Field(..., description="Last update timestamp")
    estimated_duration: str = Field(default="", description="Free-text effort estimate")


class WorkScheduleOut(BaseModel):
    start_time: str = Field(..., description="Start of the working day, e.g. '09:00'")
    end_time: str = Field(..., description="End of the working day, e.g. '18:00'")
    work_days: List[str] = Field(default_factory=list, description="Working days in order")


# PUBLIC_INTERFACE
class UserProfileOut(BaseModel):
    """The user profile as returned by GET /api/profile."""

    name: str
    timezone: str
    work_schedule: WorkScheduleOut


class TaskAnalysisOut(BaseModel):
    total_tasks: int
    urgent_tasks: List[TodoOut]
    overdue_tasks: List[TodoOut]
    stale_tasks: List[TodoOut]
    today_tasks: List[TodoOut]
    recommendations: List[str]


class ScheduleOut(BaseModel):
    optimized_tasks: List[TodoOut]
    schedule_advice: List[str]


class DeleteResult(BaseModel):
    success: bool = True
