"""
Radio contest model.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from skywave.models.common import (
    EventStatus,
    FrequencyBand,
    UtcDatetime,
    clamp_score,
    event_time_remaining,
    resolve_now,
)
from skywave.utils import whole_hours


class Contest(BaseModel):
    """A scheduled on-air contest."""

    model_config = ConfigDict(frozen=True)

    name: str
    start_time: UtcDatetime
    end_time: UtcDatetime
    bands: frozenset[FrequencyBand] = Field(default_factory=frozenset)
    modes: frozenset[str] = Field(default_factory=frozenset)
    sponsor: str | None = None
    calendar_source_url: str | None = None
    official_rules_url: str | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "Contest":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self

    def status(self, now: datetime | None = None) -> EventStatus:
        return EventStatus.at(self.start_time, self.end_time, resolve_now(now))

    def time_remaining(self, now: datetime | None = None) -> timedelta:
        return event_time_remaining(self.start_time, self.end_time, resolve_now(now))

    def is_ending_soon(self, now: datetime | None = None) -> bool:
        now = resolve_now(now)
        if self.status(now) != EventStatus.ACTIVE:
            return False
        return self.time_remaining(now) < timedelta(hours=1)

    def score(self, now: datetime | None = None) -> int:
        now = resolve_now(now)
        status = self.status(now)
        if status == EventStatus.ACTIVE:
            return 100
        if status == EventStatus.ENDED:
            return 0

        hours = whole_hours(self.start_time - now)
        if hours <= 6:
            return clamp_score(100 - hours * 3.33)
        if hours <= 24:
            return clamp_score(80 - (hours - 6) * 2.22)
        if hours <= 72:
            return clamp_score(40 - (hours - 24) * 0.42)
        return 10

    def is_favorable(self, now: datetime | None = None) -> bool:
        now = resolve_now(now)
        status = self.status(now)
        if status == EventStatus.ACTIVE:
            return True
        if status == EventStatus.UPCOMING:
            return whole_hours(self.start_time - now) <= 6
        return False
