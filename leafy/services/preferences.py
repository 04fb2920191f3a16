"""
User preferences kept in the persistent store (currently just the theme).
"""

from __future__ import annotations
from typing import Optional, Tuple
from leafy.constants import STORE_KEY_THEME, THEMES
from leafy.services.store import BaseStore

DEFAULT_THEME = "system"


def get_theme(store: BaseStore) -> str:
    """Stored theme, or "system" when unset or unrecognised."""
    theme = store.load(STORE_KEY_THEME, DEFAULT_THEME)
    return theme if theme in THEMES else DEFAULT_THEME


def set_theme(store: BaseStore, theme: str) -> Tuple[bool, Optional[str]]:
    """
    Save the theme preference.

    Returns:
        (success, error_message)
    """
    if theme not in THEMES:
        return False, f"Invalid theme. Must be one of: {', '.join(THEMES)}"
    store.save(STORE_KEY_THEME, theme)
    return True, None
