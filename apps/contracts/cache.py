"""Read-only, eventually consistent cache of available units for display.

Listings and the booking form may show slightly stale availability; the
booking confirmation never reads from here and always asks the
``AvailabilityIndex`` directly.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import List

from django.conf import settings
from django.core.cache import cache

from apps.units.domain.entities import Unit

CACHE_KEYS_STORAGE_KEY = "availability:display_cache_keys"


def _build_cache_key(prefix: str, filters: dict) -> str:
    normalized_parts = [f"{key}={filters[key]}" for key in sorted(filters)]
    fingerprint = "|".join(normalized_parts)
    digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


def _register_cache_key(key: str) -> None:
    keys: List[str] | None = cache.get(CACHE_KEYS_STORAGE_KEY)
    if keys is None:
        cache.set(CACHE_KEYS_STORAGE_KEY, [key], None)
        return
    if key in keys:
        return
    keys.append(key)
    cache.set(CACHE_KEYS_STORAGE_KEY, keys, None)


def _minute(moment: datetime | None) -> str:
    # Bucket to the minute so "now"-based queries share entries.
    return moment.replace(second=0, microsecond=0).isoformat() if moment else ""


class DisplayAvailabilityCache:
    """Wraps an availability index with a TTL cache; display use only."""

    def __init__(self, index, timeout: int | None = None, prefix: str = "availability:display"):
        config = getattr(settings, "MARKETPLACE", {})
        self.index = index
        self.timeout = timeout if timeout is not None else config.get("DISPLAY_CACHE_TIMEOUT", 180)
        self.prefix = prefix

    def find_available_units_for_display(
        self,
        unit_type: str | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> List[Unit]:
        key = _build_cache_key(
            self.prefix,
            {"type": unit_type or "", "from": _minute(window_start), "to": _minute(window_end)},
        )
        cached: List[Unit] | None = cache.get(key)
        if cached is not None:
            return cached

        result = self.index.find_available_units(unit_type, window_start, window_end)
        cache.set(key, result, self.timeout)
        _register_cache_key(key)
        return result

    @staticmethod
    def invalidate() -> None:
        """Remove all cached display entries."""
        keys: List[str] | None = cache.get(CACHE_KEYS_STORAGE_KEY)
        if keys:
            cache.delete_many(keys)
        cache.delete(CACHE_KEYS_STORAGE_KEY)
