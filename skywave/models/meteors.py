"""
Meteor shower model.

Activity is modeled as a Gaussian around the midpoint of the peak window.
Upcoming showers gain score as their visibility window approaches.
"""

import math
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from skywave.models.common import (
    EventStatus,
    UtcDatetime,
    clamp_score,
    event_time_remaining,
    resolve_now,
)
from skywave.utils import whole_hours

SIGMA_HOURS = 24.0
NEAR_PEAK_DECAY = 0.88
ENDING_SOON = timedelta(hours=6)
FAVORABLE_LEAD = timedelta(hours=12)


class MeteorShower(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    code: str
    peak_start: UtcDatetime
    peak_end: UtcDatetime
    visibility_start: UtcDatetime
    visibility_end: UtcDatetime
    peak_zhr: int = Field(ge=0)
    parent_body: str | None = None
    info_url: str | None = None

    @model_validator(mode="after")
    def _windows_ordered(self) -> "MeteorShower":
        if self.peak_end < self.peak_start:
            raise ValueError("peak_end must not precede peak_start")
        if self.visibility_end < self.visibility_start:
            raise ValueError("visibility_end must not precede visibility_start")
        return self

    @property
    def start_time(self) -> datetime:
        return self.visibility_start

    @property
    def end_time(self) -> datetime:
        return self.visibility_end

    @property
    def peak_midpoint(self) -> datetime:
        return self.peak_start + (self.peak_end - self.peak_start) / 2

    def status(self, now: datetime | None = None) -> EventStatus:
        return EventStatus.at(self.visibility_start, self.visibility_end, resolve_now(now))

    def time_remaining(self, now: datetime | None = None) -> timedelta:
        return event_time_remaining(
            self.visibility_start, self.visibility_end, resolve_now(now)
        )

    def is_at_peak(self, now: datetime | None = None) -> bool:
        now = resolve_now(now)
        return self.peak_start <= now <= self.peak_end

    def is_ending_soon(self, now: datetime | None = None) -> bool:
        """Active, with the peak window closing within the next six hours."""
        now = resolve_now(now)
        if self.status(now) != EventStatus.ACTIVE:
            return False
        return self.peak_end - ENDING_SOON < now < self.peak_end

    def time_to_peak(self, now: datetime | None = None) -> timedelta:
        """Positive before the peak midpoint, zero at it, negative after."""
        return self.peak_midpoint - resolve_now(now)

    def decay(self, now: datetime | None = None) -> float:
        """Fraction of peak activity at `now`, 1.0 at the peak midpoint."""
        hours_from_peak = abs(self.time_to_peak(now).total_seconds()) / 3600
        return math.exp(-0.5 * (hours_from_peak / SIGMA_HOURS) ** 2)

    def current_zhr(self, now: datetime | None = None) -> int:
        now = resolve_now(now)
        status = self.status(now)
        if status == EventStatus.ENDED:
            return 0
        if status == EventStatus.UPCOMING:
            return 1
        return max(1, round(self.peak_zhr * self.decay(now)))

    def score(self, now: datetime | None = None) -> int:
        now = resolve_now(now)
        status = self.status(now)

        if status == EventStatus.ENDED:
            return 0

        if status == EventStatus.ACTIVE:
            if self.is_at_peak(now):
                return clamp_score(85 + min(15, self.peak_zhr / 10))
            return clamp_score(40 + 44 * self.decay(now))

        hours = whole_hours(self.visibility_start - now)
        if hours <= 24:
            return clamp_score(80 - hours * 0.83)
        if hours <= 72:
            return clamp_score(60 - (hours - 24) * 0.625)
        return 15

    def is_favorable(self, now: datetime | None = None) -> bool:
        now = resolve_now(now)
        status = self.status(now)
        if status == EventStatus.ACTIVE:
            return self.is_at_peak(now) or self.decay(now) >= NEAR_PEAK_DECAY
        if status == EventStatus.UPCOMING:
            return self.visibility_start - now <= FAVORABLE_LEAD
        return False
