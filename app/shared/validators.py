"""Shared validation utilities"""

from datetime import datetime, timezone
from typing import Optional

MAX_TITLE_LENGTH = 255


def validate_title(title: Optional[str]) -> str:
    """
    Validate and normalize a slot title.

    Args:
        title: Raw title string

    Returns:
        Stripped title

    Raises:
        ValueError: If the title is missing, blank or too long
    """
    if title is None or not title.strip():
        raise ValueError("Title is required")

    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValueError(f"Title must be at most {MAX_TITLE_LENGTH} characters")

    return title


def normalize_instant(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC. Naive values are assumed to be UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_time_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """
    Validate that a slot interval is non-empty.

    Returns:
        (start, end) normalized to naive UTC

    Raises:
        ValueError: If end is not strictly after start
    """
    start = normalize_instant(start)
    end = normalize_instant(end)

    if end <= start:
        raise ValueError("End time must be after start time")

    return start, end
