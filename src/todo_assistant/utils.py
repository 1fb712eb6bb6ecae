from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

# Incoming due dates may be a date, a datetime, or ISO8601 text
DueDateInput = Union[date, datetime, str]


def _as_local_naive(value: datetime) -> datetime:
    # Stored timestamps are naive local time, so aware inputs are converted
    # to keep every comparison between like values.
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# PUBLIC_INTERFACE
def parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize a due date into a naive local datetime.

    - None and empty strings mean "no deadline" and return None.
    - ISO8601 datetime strings are parsed with datetime.fromisoformat; a
      trailing 'Z' is accepted as UTC.
    - Date-only strings and date objects are promoted to midnight.

    Raises:
        ValueError: if the value cannot be interpreted as a date.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _as_local_naive(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            return _as_local_naive(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")
