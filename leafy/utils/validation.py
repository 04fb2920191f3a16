"""
Input validation and normalization.

Checks identifiers arriving in URLs, bounds and cleans free text from the
chat box, and builds a clean payload for reminder creation.
"""

from __future__ import annotations
import re
from typing import Any, Dict, Tuple
from leafy.constants import REMINDER_TYPES
from leafy.services.reminders import parse_interval

# UUID validation pattern (RFC 4122 compliant)
_UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)

# Journal entry ids are short hex tokens
_ENTRY_ID_PATTERN = re.compile(r'^[0-9a-zA-Z_-]{1,64}$')

MAX_MESSAGE_LEN = 2000
MAX_INTERVAL_DAYS = 365


def sanitize_message(text: str | None, max_len: int = MAX_MESSAGE_LEN) -> str:
    """
    Chat messages are fairly permissive:
    - strip & bound length
    - remove control chars only; keep reasonable punctuation
    - normalize repeated tabs/spaces
    """
    t = str(text or "").strip()
    if not t:
        return ""
    t = t[:max_len]
    t = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", t)
    t = re.sub(r"[ \t]{2,}", " ", t)
    return t


def is_valid_uuid(value: str | None) -> bool:
    """
    Check if a string is a valid UUID (RFC 4122 format).

    Example:
        >>> is_valid_uuid("550e8400-e29b-41d4-a716-446655440000")
        True
        >>> is_valid_uuid("invalid")
        False
    """
    if not value or not isinstance(value, str):
        return False
    return bool(_UUID_PATTERN.match(value))


def is_valid_entry_id(value: str | None) -> bool:
    """Journal entry ids: short tokens of letters, digits, '-' and '_'."""
    if not value or not isinstance(value, str):
        return False
    return bool(_ENTRY_ID_PATTERN.match(value))


def validate_reminder_request(data: Dict[str, Any] | None) -> Tuple[Dict[str, Any], str | None]:
    """
    Validate the body of a create-reminder request.

    Returns:
        (payload, error). payload has plant_id, type and an optional
        interval_days (None means "use the plant's suggested interval").
    """
    if not isinstance(data, dict):
        return {}, "Invalid request body"

    plant_id = data.get("plant_id")
    if not is_valid_entry_id(plant_id):
        return {}, "Invalid plant ID"

    reminder_type = data.get("type")
    if isinstance(reminder_type, str):
        reminder_type = reminder_type.strip().lower()
    if reminder_type not in REMINDER_TYPES:
        return {}, f"Invalid reminder type. Must be one of: {', '.join(REMINDER_TYPES)}"

    interval = data.get("interval_days")
    if interval is not None:
        interval = parse_interval(interval)
        if interval is None or interval > MAX_INTERVAL_DAYS:
            return {}, f"Interval must be a whole number of days between 1 and {MAX_INTERVAL_DAYS}"

    return {"plant_id": plant_id, "type": reminder_type, "interval_days": interval}, None
