"""
CacheManager - one immutable snapshot slot per feed.

Features:
- Each feed owns a single named slot, written only by its own pipeline
- Writes replace the whole slot object, so readers never see a half-updated entry
- Fallback writes keep the last good value and flag it as stale
- Hit/miss statistics for the feed status view
"""

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Generic, TypeVar

from loguru import logger

from skywave.utils import utcnow

T = TypeVar("T")

DEGRADED_MARKER = "Degraded"


def degraded_label(source: str) -> str:
    """Annotate a source label to show no real data was ever obtained."""
    return f"{source} ({DEGRADED_MARKER})"


@dataclass(frozen=True)
class CacheSlot(Generic[T]):
    """Snapshot of one feed's latest value and its provenance."""

    name: str
    value: T
    source: str
    updated_at: datetime
    last_success_at: datetime | None = None
    degraded: bool = False  # value is a default, never fetched
    serving_stale: bool = False  # last fetch went through the fallback path

    @property
    def has_real_data(self) -> bool:
        return self.last_success_at is not None


class CacheManager:
    """
    Registry of per-feed cache slots.

    Usage:
        cache = CacheManager()

        cache.store_success("noaa", indices, source="NOAA SWPC")
        slot = cache.get("noaa")
        if slot and not slot.serving_stale:
            use(slot.value)
    """

    def __init__(self, debug: bool = False):
        self._slots: dict[str, CacheSlot[Any]] = {}
        self._debug = debug
        self._write_lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, name: str) -> CacheSlot[Any] | None:
        """Return the current snapshot for a slot, or None if never written."""
        slot = self._slots.get(name)
        if slot is None:
            self._stats.misses += 1
            self._log(f"MISS: {name}")
        elif slot.serving_stale:
            self._stats.stale_hits += 1
            self._log(f"STALE HIT: {name}")
        else:
            self._stats.hits += 1
            self._log(f"HIT: {name}")
        return slot

    def get_value(self, name: str, default: Any = None) -> Any:
        slot = self.get(name)
        return slot.value if slot is not None else default

    def store_success(
        self,
        name: str,
        value: T,
        source: str,
        at: datetime | None = None,
    ) -> CacheSlot[T]:
        """Replace a slot with freshly fetched data."""
        at = at or utcnow()
        slot = CacheSlot(
            name=name,
            value=value,
            source=source,
            updated_at=at,
            last_success_at=at,
        )
        with self._write_lock:
            self._slots[name] = slot
        self._log(f"SET: {name} from {source}")
        return slot

    def store_fallback(
        self,
        name: str,
        default_value: T,
        source: str,
        at: datetime | None = None,
    ) -> CacheSlot[T]:
        """
        Record a failed fetch.

        Keeps the previous real value if there is one, otherwise stores the
        default annotated as degraded. Either way the slot is flagged stale.
        """
        at = at or utcnow()
        with self._write_lock:
            previous = self._slots.get(name)
            if previous is not None and previous.has_real_data:
                slot = replace(previous, serving_stale=True, updated_at=at)
            else:
                slot = CacheSlot(
                    name=name,
                    value=default_value,
                    source=degraded_label(source),
                    updated_at=at,
                    degraded=True,
                    serving_stale=True,
                )
            self._slots[name] = slot
        self._log(f"FALLBACK: {name} (degraded={slot.degraded})")
        return slot

    def names(self) -> list[str]:
        return list(self._slots)

    def snapshot(self) -> dict[str, CacheSlot[Any]]:
        """Shallow copy of all slots at this instant."""
        return dict(self._slots)

    def clear(self) -> None:
        with self._write_lock:
            count = len(self._slots)
            self._slots.clear()
        self._log(f"CLEAR: {count} slots removed")

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._slots)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheManager] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Fraction of reads that returned fresh data."""
        total = self.hits + self.stale_hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_hits": self.stale_hits,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
