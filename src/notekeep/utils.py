"""Utility functions for grouping notes by title and by date."""
import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from notekeep.models.schema import from_ms

T = TypeVar("T")

MONTHS = [
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
]

DAY_MS = 24 * 60 * 60 * 1000


def group_by(
    items: Iterable[T],
    key: Callable[[T], str],
    sort_key: Callable[[T], Any],
    sort: str = "desc",
) -> Dict[str, List[T]]:
    """Sort items, then split them into buckets in that order.

    Buckets appear in the order their first item appears, so reversing
    ``sort`` reverses both bucket order and order within each bucket.

    Args:
        items: Items to group.
        key: Bucket name for an item.
        sort_key: Ordering key for an item.
        sort: "desc" (default) or "asc".

    Returns:
        Ordered mapping of bucket name to items.
    """
    ordered = sorted(items, key=sort_key, reverse=(sort == "desc"))
    groups: Dict[str, List[T]] = {}
    for item in ordered:
        groups.setdefault(key(item), []).append(item)
    return groups


def title_initial(title: Optional[str]) -> str:
    """Upper-cased first character of a title; blank titles go under '#'."""
    title = (title or "").strip()
    return title[0].upper() if title else "#"


def month_name(timestamp: int) -> str:
    return MONTHS[from_ms(timestamp).month - 1]


def year_of(timestamp: int) -> str:
    return str(from_ms(timestamp).year)


def week_group(timestamp: int) -> str:
    """Label of the ISO week (Monday to Sunday, UTC) containing ``timestamp``.

    Example: "05 Oct 2026 - 11 Oct 2026".
    """
    day = from_ms(timestamp).date()
    monday = day - datetime.timedelta(days=day.weekday())
    sunday = monday + datetime.timedelta(days=6)
    return f"{monday:%d %b %Y} - {sunday:%d %b %Y}"


def start_of_day_days_ago(now: int, days: int) -> int:
    """Epoch ms of UTC midnight ``days`` days before ``now``."""
    day = from_ms(now).date() - datetime.timedelta(days=days)
    midnight = datetime.datetime.combine(
        day, datetime.time.min, tzinfo=datetime.timezone.utc
    )
    return int(midnight.timestamp() * 1000)


def recency_group(timestamp: int, now: int, days: int = 7) -> str:
    """Bucket a timestamp as "Recent", "Last week" or "Older".

    "Recent" starts at midnight ``days`` days ago; "Last week" covers the
    ``days`` days before that.
    """
    recent = start_of_day_days_ago(now, days)
    last_week = recent - days * DAY_MS
    if timestamp >= recent:
        return "Recent"
    if timestamp >= last_week:
        return "Last week"
    return "Older"
