"""
Persistent key-value store for Leafy collections.

Every stateful service loads and saves one named value (the reminder list,
the plant journal, the chat transcript, the theme). Reads tolerate missing
or corrupt values by returning the caller's default; writes never raise.

Backends:
- MemoryStore: process-local dict (tests, ephemeral dev runs)
- JsonFileStore: one JSON document per key under STORE_DIR (default)
- SupabaseStore: rows in a key/value table through the Supabase admin client
"""

from __future__ import annotations
import json
import logging
import os
import tempfile
import threading
from typing import Any, Optional

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


def _safe_log_warning(message: str) -> None:
    """Log a warning through the app logger when available, module logger otherwise."""
    if has_app_context():
        current_app.logger.warning(message)
    else:
        logger.warning(message)


class BaseStore:
    """Interface shared by every backend: load(key, default) and save(key, value)."""

    def load(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError


class MemoryStore(BaseStore):
    """Keeps serialized values in memory so callers never share mutable state."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self, key: str, default: Any = None) -> Any:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            return default

    def save(self, key: str, value: Any) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            _safe_log_warning(f"Could not serialize '{key}': {e}")
            return
        with self._lock:
            self._data[key] = raw

    def set_raw(self, key: str, raw: str) -> None:
        """Store an undecoded value (used to simulate corrupt storage)."""
        with self._lock:
            self._data[key] = raw


class JsonFileStore(BaseStore):
    """
    One JSON file per key inside a directory.

    Writes go to a temp file in the same directory and are moved into place,
    so a crash mid-write leaves the previous value readable.
    """

    def __init__(self, base_dir: str) -> None:
        self.base_dir = base_dir
        self._lock = threading.Lock()

    def _path(self, key: str) -> str:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return os.path.join(self.base_dir, f"{safe}.json")

    def load(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return default
        except (OSError, ValueError) as e:
            _safe_log_warning(f"Could not read '{key}' from {path}: {e}")
            return default

    def save(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            data = json.dumps(value, ensure_ascii=False)
            with self._lock:
                os.makedirs(self.base_dir, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=self.base_dir, suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        f.write(data)
                    os.replace(tmp_path, path)
                except OSError:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    raise
        except (OSError, TypeError, ValueError) as e:
            # Write failures are non-fatal; the in-memory state stays authoritative
            _safe_log_warning(f"Could not write '{key}' to {path}: {e}")


class SupabaseStore(BaseStore):
    """
    Key/value rows in a Supabase table.

    Expected table shape: kv_store(key text primary key, value jsonb).
    """

    def __init__(self, client, table: str = "kv_store") -> None:
        self.client = client
        self.table = table

    def load(self, key: str, default: Any = None) -> Any:
        try:
            response = self.client.table(self.table).select("value").eq("key", key).execute()
            if response.data:
                value = response.data[0].get("value")
                if isinstance(value, str):
                    return json.loads(value)
                return default if value is None else value
            return default
        except Exception as e:
            _safe_log_warning(f"Could not read '{key}' from Supabase: {e}")
            return default

    def save(self, key: str, value: Any) -> None:
        try:
            self.client.table(self.table).upsert({"key": key, "value": value}).execute()
        except Exception as e:
            _safe_log_warning(f"Could not write '{key}' to Supabase: {e}")


def create_store(config) -> BaseStore:
    """Build the backend selected by STORE_BACKEND (file, supabase or memory)."""
    backend = (config.get("STORE_BACKEND") or "file").lower()

    if backend == "memory":
        return MemoryStore()

    if backend == "supabase":
        from leafy.services import supabase_client
        client = supabase_client.get_admin_client()
        if client is not None:
            return SupabaseStore(client, config.get("SUPABASE_KV_TABLE", "kv_store"))
        _safe_log_warning("Supabase store requested but not configured; falling back to file store")

    return JsonFileStore(config.get("STORE_DIR") or os.path.join(os.getcwd(), "instance", "store"))


def init_store(app, store: Optional[BaseStore] = None) -> BaseStore:
    """Create the configured store and register it on the app."""
    store = store or create_store(app.config)
    app.extensions["leafy_store"] = store
    app.logger.info(f"[Store] Using {type(store).__name__}")
    return store


def get_store() -> BaseStore:
    """Return the store registered on the current app."""
    return current_app.extensions["leafy_store"]
