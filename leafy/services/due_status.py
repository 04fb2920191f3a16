"""
Due-status calculations for care reminders.

Pure functions of a reminder and a reference time (epoch ms). Nothing here
reads the clock or touches storage, so views and tests pass `now` explicitly.
"""

from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List
from leafy.constants import DAY_MS


def _local_date(ts_ms: int):
    return datetime.fromtimestamp(ts_ms / 1000).date()


def progress(reminder: Dict[str, Any], now: int) -> float:
    """Percent of the current care cycle elapsed, clamped to [0, 100]."""
    total = reminder["interval_days"] * DAY_MS
    elapsed = now - reminder["last_done"]
    return min(100.0, max(0.0, elapsed / total * 100))


def is_overdue(reminder: Dict[str, Any], now: int) -> bool:
    """A reminder due exactly at `now` counts as overdue."""
    return now >= reminder["next_due"]


def day_difference(reminder: Dict[str, Any], now: int) -> int:
    """
    Calendar days from today to the day the reminder is due, in local time.

    Both timestamps are reduced to their local date before differencing, so
    anything due later today is 0 regardless of the hour, yesterday is -1
    and tomorrow is 1.
    """
    return (_local_date(reminder["next_due"]) - _local_date(now)).days


def status_label(reminder: Dict[str, Any], now: int) -> str:
    """Human label such as "Due Today" or "Overdue by 2 days"."""
    diff = day_difference(reminder, now)
    if diff < 0:
        days = abs(diff)
        return f"Overdue by {days} {'day' if days == 1 else 'days'}"
    if diff == 0:
        return "Due Today"
    if diff == 1:
        return "Due Tomorrow"
    return f"Due in {diff} days"


def scheduled_label(reminder: Dict[str, Any]) -> str:
    """Short due date like "Oct 21"."""
    due = datetime.fromtimestamp(reminder["next_due"] / 1000)
    return f"{due:%b} {due.day}"


def history_log(reminder: Dict[str, Any]) -> List[int]:
    """Completion timestamps newest first; a reminder without history shows its last_done."""
    history = reminder.get("history")
    if not history:
        return [reminder["last_done"]]
    return sorted(history, reverse=True)


def task_view(reminder: Dict[str, Any], now: int) -> Dict[str, Any]:
    """Reminder plus its derived status fields, ready for JSON."""
    return {
        **reminder,
        "progress": round(progress(reminder, now)),
        "is_overdue": is_overdue(reminder, now),
        "days_until_due": day_difference(reminder, now),
        "status_label": status_label(reminder, now),
        "scheduled_label": scheduled_label(reminder),
        "history_log": history_log(reminder),
    }
