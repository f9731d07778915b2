"""
On-air activation models (Parks on the Air, Summits on the Air).
"""

from datetime import datetime
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from skywave.models.common import FrequencyBand, UtcDatetime, resolve_now
from skywave.utils import whole_minutes

FRESH_SPOT_MINUTES = 5
FAVORABLE_SPOT_MINUTES = 15
ACTIVE_SUMMARY_THRESHOLD = 5


class ActivationType(str, Enum):
    POTA = "POTA"
    SOTA = "SOTA"

    @property
    def display_name(self) -> str:
        if self == ActivationType.POTA:
            return "Parks on the Air"
        return "Summits on the Air"


class _Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference: str
    name: str
    region_code: str | None = None

    @field_validator("reference", "name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class Park(_Location):
    """A POTA park, e.g. K-0817."""

    country_code: str | None = None
    grid: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class Summit(_Location):
    """A SOTA summit, e.g. W7W/LC-001."""

    association_code: str | None = None


class Activation(BaseModel):
    """One operator on the air from a park or summit."""

    model_config = ConfigDict(frozen=True)

    spot_id: str | None = None
    activator_callsign: str
    type: ActivationType
    frequency: float | None = None  # kHz
    mode: str | None = None
    spotted_at: UtcDatetime | None = None
    last_seen_at: UtcDatetime | None = None
    qso_count: int | None = Field(default=None, ge=0)
    location: Park | Summit | None = None
    source: str | None = None

    @field_validator("activator_callsign")
    @classmethod
    def _callsign_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("activator_callsign must not be blank")
        return value.strip().upper()

    @model_validator(mode="after")
    def _location_matches_type(self) -> "Activation":
        if self.location is None:
            return self
        expected = Park if self.type == ActivationType.POTA else Summit
        if not isinstance(self.location, expected):
            raise ValueError(
                f"{self.type.value} activation needs a {expected.__name__} location"
            )
        return self

    @property
    def reference(self) -> str | None:
        return self.location.reference if self.location else None

    @property
    def reference_name(self) -> str | None:
        return self.location.name if self.location else None

    @property
    def band(self) -> FrequencyBand | None:
        return FrequencyBand.from_frequency_khz(self.frequency)

    def age_minutes(self, now: datetime | None = None) -> int | None:
        """Whole minutes since the spot, negative for future timestamps."""
        if self.spotted_at is None:
            return None
        return whole_minutes(resolve_now(now) - self.spotted_at)

    def score(self, now: datetime | None = None) -> int:
        minutes = self.age_minutes(now)
        if minutes is None:
            return 0
        if minutes <= 5:
            # Includes spots timestamped in the future
            return 100
        if minutes <= 15:
            return 100 - (minutes - 5) * 2
        if minutes <= 30:
            return 80 - (minutes - 15) * 4
        if minutes <= 60:
            return max(0, int(20 - (minutes - 30) * 2 / 3))
        return 0

    def is_favorable(self, now: datetime | None = None) -> bool:
        minutes = self.age_minutes(now)
        return minutes is not None and minutes <= FAVORABLE_SPOT_MINUTES


class ActivationsSummary(BaseModel):
    """All current activations from both programs."""

    model_config = ConfigDict(frozen=True)

    activations: tuple[Activation, ...] = ()
    pota_count: int = Field(default=0, ge=0)
    sota_count: int = Field(default=0, ge=0)
    last_updated: UtcDatetime

    @classmethod
    def from_activations(
        cls,
        activations: Iterable[Activation],
        last_updated: datetime | None = None,
    ) -> "ActivationsSummary":
        """Build a summary, newest spots first and counts taken per type."""
        items = list(activations)
        items.sort(
            key=lambda a: (a.spotted_at is not None, a.spotted_at or datetime.min),
            reverse=True,
        )
        return cls(
            activations=tuple(items),
            pota_count=sum(1 for a in items if a.type == ActivationType.POTA),
            sota_count=sum(1 for a in items if a.type == ActivationType.SOTA),
            last_updated=resolve_now(last_updated),
        )

    @property
    def total_count(self) -> int:
        return self.pota_count + self.sota_count

    def by_type(self, activation_type: ActivationType) -> list[Activation]:
        return [a for a in self.activations if a.type == activation_type]

    def score(self, now: datetime | None = None) -> int:
        if not self.activations:
            return 0
        now = resolve_now(now)
        base = min(self.total_count * 3, 100)
        has_fresh = any(
            (age := a.age_minutes(now)) is not None and age <= FRESH_SPOT_MINUTES
            for a in self.activations
        )
        return min(100, base + (10 if has_fresh else 0))

    def is_favorable(self, now: datetime | None = None) -> bool:
        return self.total_count >= ACTIVE_SUMMARY_THRESHOLD
