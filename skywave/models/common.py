"""
Shared value types and capabilities for displayable entities.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Protocol, runtime_checkable

from pydantic import AfterValidator

from skywave.utils import ensure_utc, utcnow

# Naive datetimes from feeds are taken as UTC
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def resolve_now(now: datetime | None) -> datetime:
    """The instant to evaluate against: `now` if given, else the current time."""
    return ensure_utc(now) if now is not None else utcnow()


def clamp_score(value: float) -> int:
    """Truncate to an integer score in [0, 100]."""
    return max(0, min(100, int(value)))


@runtime_checkable
class Scoreable(Protocol):
    """
    Anything that can be ranked on the dashboard.

    `score` is an integer in [0, 100]; `is_favorable` says whether the
    condition is worth highlighting. Both are pure functions of the entity
    and the instant passed in.
    """

    def score(self, now: datetime | None = None) -> int: ...

    def is_favorable(self, now: datetime | None = None) -> bool: ...


class EventStatus(str, Enum):
    """Lifecycle of a time-bounded event."""

    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"

    @classmethod
    def at(cls, start: datetime, end: datetime, now: datetime) -> "EventStatus":
        if now < start:
            return cls.UPCOMING
        if now > end:
            return cls.ENDED
        return cls.ACTIVE


@runtime_checkable
class Event(Scoreable, Protocol):
    """A Scoreable with a start and end (contests, meteor showers)."""

    name: str

    @property
    def start_time(self) -> datetime: ...

    @property
    def end_time(self) -> datetime: ...

    def status(self, now: datetime | None = None) -> EventStatus: ...

    def time_remaining(self, now: datetime | None = None) -> timedelta: ...

    def is_ending_soon(self, now: datetime | None = None) -> bool: ...


def event_time_remaining(
    start: datetime, end: datetime, now: datetime
) -> timedelta:
    """
    Until start while upcoming, until end while active, and negative
    (time since end) once ended.
    """
    status = EventStatus.at(start, end, now)
    if status == EventStatus.UPCOMING:
        return start - now
    if status == EventStatus.ACTIVE:
        return end - now
    return -(now - end)


class FrequencyBand(str, Enum):
    """Amateur radio bands, 160 m through 2 m."""

    BAND_160M = "160m"
    BAND_80M = "80m"
    BAND_60M = "60m"
    BAND_40M = "40m"
    BAND_30M = "30m"
    BAND_20M = "20m"
    BAND_17M = "17m"
    BAND_15M = "15m"
    BAND_12M = "12m"
    BAND_10M = "10m"
    BAND_6M = "6m"
    BAND_2M = "2m"

    @property
    def start_khz(self) -> int:
        return _BAND_EDGES_KHZ[self][0]

    @property
    def end_khz(self) -> int:
        return _BAND_EDGES_KHZ[self][1]

    @property
    def center_khz(self) -> int:
        return (self.start_khz + self.end_khz) // 2

    def contains(self, freq_khz: float) -> bool:
        return self.start_khz <= freq_khz <= self.end_khz

    @classmethod
    def from_frequency_khz(cls, freq_khz: float | None) -> "FrequencyBand | None":
        if freq_khz is None:
            return None
        for band in cls:
            if band.contains(freq_khz):
                return band
        return None

    @classmethod
    def from_string(cls, name: str | None) -> "FrequencyBand | None":
        """Match "20m", "20M" or " 20m " to a band; None when unknown."""
        if not name or not name.strip():
            return None
        normalized = name.strip().lower()
        for band in cls:
            if band.value == normalized:
                return band
        return None

    def __str__(self) -> str:
        return self.value


_BAND_EDGES_KHZ: dict[FrequencyBand, tuple[int, int]] = {
    FrequencyBand.BAND_160M: (1800, 2000),
    FrequencyBand.BAND_80M: (3500, 4000),
    FrequencyBand.BAND_60M: (5330, 5405),
    FrequencyBand.BAND_40M: (7000, 7300),
    FrequencyBand.BAND_30M: (10100, 10150),
    FrequencyBand.BAND_20M: (14000, 14350),
    FrequencyBand.BAND_17M: (18068, 18168),
    FrequencyBand.BAND_15M: (21000, 21450),
    FrequencyBand.BAND_12M: (24890, 24990),
    FrequencyBand.BAND_10M: (28000, 29700),
    FrequencyBand.BAND_6M: (50000, 54000),
    FrequencyBand.BAND_2M: (144000, 148000),
}
