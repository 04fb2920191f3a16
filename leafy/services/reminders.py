"""
Reminder service for plant care scheduling.

Owns the collection of care reminders (watering and fertilizing cycles) and
is the only code that mutates it. Reminders are plain dicts:

    {
        "id": "3f0c...",            # uuid4, immutable
        "plant_id": "k2x9...",      # journal entry that created it
        "plant_name": "Monstera",   # snapshot taken at creation
        "type": "water",            # "water" | "fertilizer"
        "interval_days": 7,         # > 0
        "last_done": 1700000000000, # epoch ms
        "next_due": 1700604800000,  # last_done + interval_days * DAY_MS
        "history": [1700000000000], # newest first, capped at HISTORY_LIMIT
    }

Mutations build a new dict for the changed reminder and a new list for the
collection, then persist the whole list. A record handed out earlier is
never changed afterwards.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List
import logging
import threading
import time
import uuid
from flask import current_app, has_app_context
from leafy.constants import DAY_MS, HISTORY_LIMIT, REMINDER_TYPES, STORE_KEY_REMINDERS
from leafy.services.store import BaseStore

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("id", "plant_id", "plant_name", "type", "interval_days", "last_done", "next_due")


def _safe_log_info(message: str) -> None:
    """Safely log info, handling cases where no app context exists (e.g., in tests)."""
    if has_app_context():
        current_app.logger.info(message)
    else:
        logger.info(message)


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def is_valid_interval(value: Any) -> bool:
    """True for a positive int. Bools, floats and strings are rejected."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def parse_interval(value: Any) -> Optional[int]:
    """Parse an interval typed by the user; None unless it is a positive whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def build_reminder(
    plant_id: str,
    plant_name: str,
    reminder_type: str,
    interval_days: int,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build a fully-formed reminder starting a new care cycle at `now`.

    Args:
        plant_id: Journal entry the reminder belongs to
        plant_name: Display name, copied onto the reminder
        reminder_type: "water" or "fertilizer"
        interval_days: Positive number of days per cycle
        now: Creation time in epoch ms (defaults to the current time)

    Returns:
        Reminder dict ready for ReminderRepository.add()

    Raises:
        ValueError: unknown type or non-positive interval
    """
    if reminder_type not in REMINDER_TYPES:
        raise ValueError(f"Invalid reminder type: {reminder_type}")
    if not is_valid_interval(interval_days):
        raise ValueError(f"Invalid interval: {interval_days!r}")

    now = now_ms() if now is None else now
    return {
        "id": str(uuid.uuid4()),
        "plant_id": plant_id,
        "plant_name": plant_name,
        "type": reminder_type,
        "interval_days": interval_days,
        "last_done": now,
        "next_due": now + interval_days * DAY_MS,
        "history": [now],
    }


def _is_reminder_shaped(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    if any(field not in value for field in _REQUIRED_FIELDS):
        return False
    return value["type"] in REMINDER_TYPES and is_valid_interval(value["interval_days"])


class ReminderRepository:
    """
    Reminder collection backed by a persistent store.

    All operations are synchronous and total: an unknown id is a silent no-op
    (the return value says whether anything happened). A lock serialises
    mutations because deferred completions run on the scheduler thread, and
    each mutation re-reads the store first so it applies on top of writes
    made elsewhere (for example `flask complete-reminder`).
    """

    def __init__(self, store: BaseStore, key: str = STORE_KEY_REMINDERS, history_limit: int = HISTORY_LIMIT):
        self.store = store
        self.key = key
        self.history_limit = history_limit
        self._lock = threading.RLock()
        self._reminders: List[Dict[str, Any]] = self._load()

    def _load(self) -> List[Dict[str, Any]]:
        data = self.store.load(self.key, [])
        if not isinstance(data, list):
            logger.warning(f"Ignoring stored reminders of type {type(data).__name__}")
            return []
        return self._clean(data)

    def _clean(self, data: List[Any]) -> List[Dict[str, Any]]:
        reminders = [r for r in data if _is_reminder_shaped(r)]
        if len(reminders) != len(data):
            logger.warning(f"Dropped {len(data) - len(reminders)} malformed stored reminder(s)")
        return reminders

    def _refresh(self) -> None:
        """
        Pick up writes made by another repository on the same store (the CLI,
        another worker). Call with the lock held. An unreadable value keeps
        the in-memory collection.
        """
        data = self.store.load(self.key, None)
        if isinstance(data, list):
            self._reminders = self._clean(data)

    def _commit(self, reminders: List[Dict[str, Any]]) -> None:
        self._reminders = reminders
        self.store.save(self.key, reminders)

    def _replace(self, reminder_id: str, build) -> Optional[Dict[str, Any]]:
        """Swap one reminder for build(old); returns the new record or None if absent."""
        with self._lock:
            self._refresh()
            for idx, reminder in enumerate(self._reminders):
                if reminder["id"] == reminder_id:
                    updated = build(reminder)
                    reminders = list(self._reminders)
                    reminders[idx] = updated
                    self._commit(reminders)
                    return updated
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self) -> List[Dict[str, Any]]:
        """Snapshot of the collection in insertion order."""
        return list(self._reminders)

    def get(self, reminder_id: str) -> Optional[Dict[str, Any]]:
        return next((r for r in self._reminders if r["id"] == reminder_id), None)

    def for_plant(self, plant_id: str) -> List[Dict[str, Any]]:
        return [r for r in self._reminders if r["plant_id"] == plant_id]

    def has_reminder(self, plant_id: str, reminder_type: str) -> bool:
        """Whether a plant already tracks this care type."""
        return any(r["plant_id"] == plant_id and r["type"] == reminder_type for r in self._reminders)

    def pending_count(self, now: Optional[int] = None) -> int:
        """Number of reminders whose next due time has passed."""
        now = now_ms() if now is None else now
        return sum(1 for r in self._reminders if r["next_due"] < now)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, reminder: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Append a fully-formed reminder.

        Only the shape is checked (required fields, known type, positive
        interval). Duplicate plant/type pairs are allowed here.

        Returns:
            The stored reminder, or None if it was malformed
        """
        if not _is_reminder_shaped(reminder):
            logger.warning("Rejected malformed reminder")
            return None

        record = dict(reminder)
        record["history"] = list(record.get("history") or [])[: self.history_limit]
        with self._lock:
            self._refresh()
            self._commit(self._reminders + [record])
        _safe_log_info(f"Reminder added: {record['type']} for {record['plant_name']} every {record['interval_days']}d")
        return record

    def complete(self, reminder_id: str, now: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Mark a reminder done at `now` and start its next cycle.

        Returns:
            The updated reminder, or None if the id is unknown
        """
        now = now_ms() if now is None else now

        def build(r: Dict[str, Any]) -> Dict[str, Any]:
            return {
                **r,
                "last_done": now,
                "next_due": now + r["interval_days"] * DAY_MS,
                "history": [now, *(r.get("history") or [])][: self.history_limit],
            }

        return self._replace(reminder_id, build)

    def update_interval(self, reminder_id: str, new_interval: Any) -> Optional[Dict[str, Any]]:
        """
        Change a reminder's cycle length and reschedule from its last completion.

        `last_done` and `history` are left as they are. Non-positive or
        non-integer values are rejected without touching state.

        Returns:
            The updated reminder, or None (unknown id or invalid interval)
        """
        if not is_valid_interval(new_interval):
            return None

        def build(r: Dict[str, Any]) -> Dict[str, Any]:
            return {
                **r,
                "interval_days": new_interval,
                "next_due": r["last_done"] + new_interval * DAY_MS,
            }

        return self._replace(reminder_id, build)

    def remove(self, reminder_id: str) -> bool:
        """Delete a reminder. Returns True if one was removed."""
        with self._lock:
            self._refresh()
            remaining = [r for r in self._reminders if r["id"] != reminder_id]
            if len(remaining) == len(self._reminders):
                return False
            self._commit(remaining)
        _safe_log_info(f"Reminder removed: {reminder_id}")
        return True


def get_repository() -> ReminderRepository:
    """Return the repository registered on the current app."""
    return current_app.extensions["leafy_reminders"]


def init_reminders(app, store: BaseStore) -> ReminderRepository:
    """Create the reminder repository for this app."""
    repository = ReminderRepository(
        store,
        history_limit=app.config.get("REMINDER_HISTORY_LIMIT", HISTORY_LIMIT),
    )
    app.extensions["leafy_reminders"] = repository
    return repository
