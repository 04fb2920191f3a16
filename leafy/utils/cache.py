"""
Simple caching utilities for performance optimization.

Provides time-based caching for expensive operations like AI identification
calls, so re-submitting the same photo does not cost another model request.
"""

from __future__ import annotations
from cachetools import TTLCache
from typing import Callable, Any
from functools import wraps
import hashlib
import threading

# Cache configuration constants
IDENTIFICATION_CACHE_TTL_SECONDS = 3600  # 1 hour
IDENTIFICATION_CACHE_MAX_ENTRIES = 256

# Thread-safe identification cache (1-hour TTL, max 256 entries)
# Key format: "identify:{mime_type}:{sha256 of payload}"
_identification_cache = TTLCache(maxsize=IDENTIFICATION_CACHE_MAX_ENTRIES, ttl=IDENTIFICATION_CACHE_TTL_SECONDS)
_cache_lock = threading.Lock()


def _identification_key(image_b64: str, mime_type: str) -> str:
    digest = hashlib.sha256(image_b64.encode("utf-8")).hexdigest()
    return f"identify:{mime_type}:{digest}"


def cache_identification(func: Callable) -> Callable:
    """
    Decorator to cache successful identification results for one hour.

    Only (record, None) results are stored; failures are retried on the next call.

    Usage:
        @cache_identification
        def identify(image_b64, mime_type="image/jpeg"):
            # Expensive model call...
            return record, None
    """
    @wraps(func)
    def wrapper(image_b64: str, mime_type: str = "image/jpeg") -> Any:
        cache_key = _identification_key(image_b64, mime_type)

        with _cache_lock:
            if cache_key in _identification_cache:
                return _identification_cache[cache_key], None

        record, error = func(image_b64, mime_type)

        if record is not None and not error:
            with _cache_lock:
                _identification_cache[cache_key] = record

        return record, error

    return wrapper


def clear_identification_cache() -> None:
    """
    Clear the entire identification cache.

    Useful for:
    - Testing
    - Rotating AI keys or models
    """
    with _cache_lock:
        _identification_cache.clear()
