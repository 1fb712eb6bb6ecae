import os
from datetime import datetime, timedelta

import pytest

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_assistant.db import SQLiteRepository  # noqa: E402
from todo_assistant.repositories import InMemoryRepository  # noqa: E402

NOW = datetime(2025, 3, 14, 10, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, clock, tmp_path):
    """A fresh, empty repository for each backend."""
    if request.param == "memory":
        r = InMemoryRepository(clock=clock)
    else:
        r = SQLiteRepository(str(tmp_path / "todos.db"), clock=clock)
    yield r
    r.close()
