"""
Shared constants used across the application.

This module contains constants that need to be consistent across
different parts of the application (store keys, reminder types, labels).
"""

# One day in milliseconds (all reminder timestamps are epoch milliseconds)
DAY_MS = 24 * 60 * 60 * 1000

# Care types a reminder can track
REMINDER_TYPES = ("water", "fertilizer")

# Display names used in confirmations and CLI output
REMINDER_TYPE_NAMES = {
    "water": "watering",
    "fertilizer": "fertilizing",
}

# Completion log kept per reminder (oldest entries dropped beyond this)
HISTORY_LIMIT = 20

# Identification journal size
JOURNAL_LIMIT = 50

# Persistent store keys (one serialized value per logical collection)
STORE_KEY_REMINDERS = "leafy-reminders"
STORE_KEY_HISTORY = "leafy-history"
STORE_KEY_CHAT = "leafy-chat"
STORE_KEY_THEME = "leafy-theme"

# Grouping and sorting modes for the care view
GROUP_MODES = ("plant", "type")
SORT_MODES = ("urgency", "name")

THEMES = ("light", "dark", "system")
