"""
FreshnessTracker - last-successful-fetch bookkeeping for one feed.
"""

from datetime import datetime, timedelta
from typing import Callable

from skywave.utils import ensure_utc, utcnow


class FreshnessTracker:
    """
    Records when a feed last produced real data and judges staleness.

    A feed is stale when it never succeeded, or when its data is older
    than twice its refresh interval.
    """

    STALENESS_FACTOR = 2

    def __init__(
        self,
        refresh_interval: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        if refresh_interval <= timedelta(0):
            raise ValueError("refresh_interval must be positive")
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._last_success_at: datetime | None = None

    @property
    def last_success_at(self) -> datetime | None:
        return self._last_success_at

    @property
    def stale_after(self) -> timedelta:
        return self.refresh_interval * self.STALENESS_FACTOR

    def mark_success(self, at: datetime | None = None) -> datetime:
        """Record a successful fetch; returns the recorded instant."""
        self._last_success_at = ensure_utc(at) if at else self._clock()
        return self._last_success_at

    def data_age(self, now: datetime | None = None) -> timedelta | None:
        """Time since the last success, or None if the feed never succeeded."""
        if self._last_success_at is None:
            return None
        now = ensure_utc(now) if now else self._clock()
        return now - self._last_success_at

    def is_stale(self, now: datetime | None = None) -> bool:
        age = self.data_age(now)
        if age is None:
            return True
        return age > self.stale_after
