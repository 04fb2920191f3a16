"""
Journal service for identified plants.

Keeps the most recent identification results (newest first) so the user can
revisit a plant's care card and set reminders from it later.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List
from flask import current_app
from leafy.constants import JOURNAL_LIMIT, STORE_KEY_HISTORY
from leafy.services.store import BaseStore


class PlantJournal:
    """Identification history persisted as a single list."""

    def __init__(self, store: BaseStore, key: str = STORE_KEY_HISTORY, limit: int = JOURNAL_LIMIT):
        self.store = store
        self.key = key
        self.limit = limit

    def list_entries(self) -> List[Dict[str, Any]]:
        entries = self.store.load(self.key, [])
        if not isinstance(entries, list):
            return []
        return [e for e in entries if isinstance(e, dict) and e.get("id")]

    def get_entry(self, entry_id: str) -> Optional[Dict[str, Any]]:
        return next((e for e in self.list_entries() if e["id"] == entry_id), None)

    def add_entry(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        """Prepend an entry; the oldest ones fall off past the limit."""
        entries = [entry, *self.list_entries()][: self.limit]
        self.store.save(self.key, entries)
        return entry

    def remove_entry(self, entry_id: str) -> bool:
        entries = self.list_entries()
        remaining = [e for e in entries if e["id"] != entry_id]
        if len(remaining) == len(entries):
            return False
        self.store.save(self.key, remaining)
        return True

    def clear(self) -> None:
        self.store.save(self.key, [])


def get_journal() -> PlantJournal:
    """Return the journal registered on the current app."""
    return current_app.extensions["leafy_journal"]


def init_journal(app, store: BaseStore) -> PlantJournal:
    journal = PlantJournal(store, limit=app.config.get("JOURNAL_LIMIT", JOURNAL_LIMIT))
    app.extensions["leafy_journal"] = journal
    return journal
