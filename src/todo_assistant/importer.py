"""
Startup import of a data.json snapshot:

    {
        "user_profile": {"name": ..., "timezone": ..., "work_schedule": {...}},
        "todos": [{"id": 1, "title": ..., ...}, ...]
    }

Todos keep their ids and timestamps; the store's id numbering continues
after the highest imported id.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

import pydantic
from pydantic import BaseModel, Field, field_validator

from .errors import StorageError, ValidationError
from .models import DEFAULT_CATEGORY, DEFAULT_PRIORITY, DEFAULT_STATUS, TodoEntity, UserProfileEntity
from .repositories import Repository
from .utils import parse_due_date


class _SeedSchedule(BaseModel):
    start_time: str = ""
    end_time: str = ""
    work_days: List[str] = Field(default_factory=list)


class _SeedProfile(BaseModel):
    name: str = ""
    timezone: str = ""
    work_schedule: _SeedSchedule = Field(default_factory=_SeedSchedule)


class _SeedTodo(BaseModel):
    id: int
    title: str
    description: str = ""
    priority: str = ""
    status: str = ""
    category: str = ""
    created_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    estimated_duration: str = ""

    @field_validator("created_date", "due_date", "last_updated", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        return parse_due_date(v)


class _SeedDocument(BaseModel):
    user_profile: Optional[_SeedProfile] = None
    todos: List[_SeedTodo] = Field(default_factory=list)


@dataclass(frozen=True)
class SeedData:
    profile: Optional[UserProfileEntity]
    todos: List[TodoEntity]


def _to_entity(seed: _SeedTodo, now: datetime) -> TodoEntity:
    created = seed.created_date or now
    updated = max(seed.last_updated or created, created)
    return {
        "id": seed.id,
        "title": seed.title,
        "description": seed.description,
        "priority": seed.priority or DEFAULT_PRIORITY,
        "status": seed.status or DEFAULT_STATUS,
        "category": seed.category or DEFAULT_CATEGORY,
        "created_date": created,
        "due_date": seed.due_date,
        "last_updated": updated,
        "estimated_duration": seed.estimated_duration,
    }


# PUBLIC_INTERFACE
def parse_seed(raw: str, now: Optional[datetime] = None) -> SeedData:
    """
    Parse the text of a seed document.

    A profile without a name is treated as absent. Missing timestamps are
    filled with now.

    Raises:
        ValidationError: the text is not valid JSON or has the wrong shape.
    """
    try:
        doc = _SeedDocument.model_validate(json.loads(raw))
    except (ValueError, pydantic.ValidationError) as e:
        raise ValidationError(f"failed to parse seed data: {e}") from e

    now = now or datetime.now()
    profile: Optional[UserProfileEntity] = None
    if doc.user_profile is not None and doc.user_profile.name:
        p = doc.user_profile
        profile = {
            "name": p.name,
            "timezone": p.timezone,
            "work_schedule": {
                "start_time": p.work_schedule.start_time,
                "end_time": p.work_schedule.end_time,
                "work_days": list(p.work_schedule.work_days),
            },
        }
    return SeedData(profile=profile, todos=[_to_entity(t, now) for t in doc.todos])


# PUBLIC_INTERFACE
def load_seed_file(path: str) -> SeedData:
    """Read and parse a seed file. I/O failures surface as StorageError."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        raise StorageError(f"failed to read seed data from {path}: {e}") from e
    return parse_seed(raw)


# PUBLIC_INTERFACE
def import_seed(repo: Repository, seed: SeedData) -> int:
    """
    Load the seed into the repository: profile and todos are written
    together or not at all. Returns the number of todos imported.

    Raises:
        ValidationError: a todo breaks the store's write rules.
    """
    return repo.import_todos(seed.todos, profile=seed.profile)
