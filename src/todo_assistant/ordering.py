"""
Display ordering for todo lists.

Todos are ordered by priority rank first (urgent, high, medium, low). Between
items of equal rank the earlier due date comes first, but only when both
items have a due date: an item without a deadline is never moved relative to
one that has one. The sort is stable, so anything the comparator considers
equal keeps its input order.
"""
from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, List, Mapping

from .models import TodoEntity

PRIORITY_RANK: Mapping[str, int] = {
    "urgent": 1,
    "high": 2,
    "medium": 3,
    "low": 4,
}


# PUBLIC_INTERFACE
def priority_rank(priority: str) -> int:
    """Rank used for ordering; lower sorts first. Unknown values rank 0."""
    return PRIORITY_RANK.get(priority, 0)


# PUBLIC_INTERFACE
def compare_todos(a: TodoEntity, b: TodoEntity) -> int:
    """Three-way comparator: negative when a sorts before b."""
    ra = priority_rank(a["priority"])
    rb = priority_rank(b["priority"])
    if ra != rb:
        return -1 if ra < rb else 1

    due_a = a.get("due_date")
    due_b = b.get("due_date")
    if due_a is None or due_b is None:
        return 0
    if due_a < due_b:
        return -1
    if due_a > due_b:
        return 1
    return 0


# PUBLIC_INTERFACE
def sort_todos(todos: Iterable[TodoEntity]) -> List[TodoEntity]:
    """Return a new list ordered for display. The input is not modified."""
    return sorted(todos, key=cmp_to_key(compare_todos))
