"""
Centralized configuration for all environments.

Select a config by setting:
  APP_CONFIG=leafy.config.DevConfig      # local dev
  APP_CONFIG=leafy.config.ProdConfig     # production (default if unset)
  APP_CONFIG=leafy.config.TestConfig     # pytest

Notes:
- SECRET_KEY is read from FLASK_SECRET_KEY
- Rate limiting uses Flask-Limiter v3 keys (RATELIMIT_*).
- STORE_BACKEND picks where reminders, the plant journal, the chat and the
  theme are persisted: "file" (JSON files under STORE_DIR), "supabase"
  (one key/value table) or "memory" (tests).
"""

from __future__ import annotations
import os
import secrets
from leafy.constants import HISTORY_LIMIT, JOURNAL_LIMIT


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class BaseConfig:
    # Secrets & basics: generate a random key if env var is missing so dev/test
    # never runs with an empty string (production enforces a real key at startup)
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    # CSRF tokens are sent by the front end in the X-CSRFToken header
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = None

    # Third-party keys
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    AI_MODEL = os.getenv("AI_MODEL", "gemini/gemini-2.5-flash")

    # Persistence
    STORE_BACKEND = os.getenv("STORE_BACKEND", "file").strip().lower()
    STORE_DIR = os.getenv("STORE_DIR", "")

    # Supabase (only used when STORE_BACKEND=supabase)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    SUPABASE_KV_TABLE = os.getenv("SUPABASE_KV_TABLE", "kv_store")

    # Reminders
    COMPLETION_DELAY_SECONDS = _env_float("COMPLETION_DELAY_SECONDS", 1.0)  # "Well Done!" animation
    REMINDER_HISTORY_LIMIT = _env_int("REMINDER_HISTORY_LIMIT", HISTORY_LIMIT)
    JOURNAL_LIMIT = _env_int("JOURNAL_LIMIT", JOURNAL_LIMIT)

    # Flask-Limiter v3
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "120 per minute; 5000 per day")
    RATELIMIT_IDENTIFY = os.getenv("RATELIMIT_IDENTIFY", "10 per minute; 200 per day")
    RATELIMIT_CHAT = os.getenv("RATELIMIT_CHAT", "8 per minute; 1 per 2 seconds; 200 per day")

    # File uploads
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB max request size

    # Misc
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")


class ProdConfig(BaseConfig):
    """Production settings (selected by default if APP_CONFIG is unset)."""
    pass


class DevConfig(BaseConfig):
    """Developer-friendly settings."""
    ENV = "development"
    DEBUG = True
    PREFERRED_URL_SCHEME = "http"
    # Relaxed rate limits for local testing
    RATELIMIT_IDENTIFY = "100 per minute"
    RATELIMIT_CHAT = "100 per minute"


class TestConfig(BaseConfig):
    """CI/pytest settings."""
    TESTING = True
    DEBUG = True
    STORE_BACKEND = "memory"
    # Completions apply immediately; no scheduler thread in tests
    COMPLETION_DELAY_SECONDS = 0
    # Usually disable the limiter and CSRF in tests to avoid flakiness
    RATELIMIT_ENABLED = False
    WTF_CSRF_ENABLED = False
    GEMINI_API_KEY = ""
    OPENAI_API_KEY = ""
