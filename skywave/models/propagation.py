"""
Propagation models: solar indices and HF band conditions.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from skywave.models.common import FrequencyBand, UtcDatetime


class BandConditionRating(str, Enum):
    """Band rating as published by propagation feeds."""

    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    UNKNOWN = "UNKNOWN"

    @property
    def weight(self) -> int:
        return _RATING_WEIGHTS[self]

    @classmethod
    def from_string(cls, value: str | None) -> "BandConditionRating":
        """Case-insensitive parse; blank or unrecognized values are UNKNOWN."""
        if not value or not value.strip():
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


_RATING_WEIGHTS = {
    BandConditionRating.GOOD: 100,
    BandConditionRating.FAIR: 60,
    BandConditionRating.POOR: 20,
    BandConditionRating.UNKNOWN: 0,
}


class BandCondition(BaseModel):
    """Current condition of one band."""

    model_config = ConfigDict(frozen=True)

    band: FrequencyBand
    rating: BandConditionRating
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    notes: str | None = None

    def score(self, now: datetime | None = None) -> int:
        return int(self.rating.weight * self.confidence)

    def is_favorable(self, now: datetime | None = None) -> bool:
        return self.rating == BandConditionRating.GOOD and self.confidence > 0.5


# Geomagnetic activity by K-index upper bound
K_INDEX_LEVELS = [
    (2, "Quiet"),
    (4, "Unsettled"),
    (6, "Active"),
    (8, "Storm"),
]

# Solar flux level by exclusive SFI upper bound
SFI_LEVELS = [
    (70.0, "Very Low"),
    (100.0, "Low"),
    (150.0, "Moderate"),
    (200.0, "High"),
]


class SolarIndices(BaseModel):
    """
    Solar and geomagnetic indices from one provider (or a merge of several).

    Higher solar flux helps the upper HF bands; a higher K or A index means
    a disturbed ionosphere.
    """

    model_config = ConfigDict(frozen=True)

    solar_flux_index: float = Field(ge=0.0)
    a_index: int = Field(ge=0)
    k_index: int = Field(ge=0, le=9)
    sunspot_number: int = Field(ge=0)
    timestamp: UtcDatetime
    source: str

    def score(self, now: datetime | None = None) -> int:
        sfi_part = max(0.0, min(1.0, (self.solar_flux_index - 50) / 150.0))
        k_part = (9 - self.k_index) / 9.0
        a_part = (50 - min(self.a_index, 50)) / 50.0
        return max(0, min(100, round((sfi_part * 0.6 + k_part * 0.3 + a_part * 0.1) * 100)))

    def is_favorable(self, now: datetime | None = None) -> bool:
        return self.solar_flux_index > 100 and self.k_index < 4 and self.a_index < 20

    @classmethod
    def placeholder(cls, source: str, timestamp: datetime) -> "SolarIndices":
        """All-zero record used when a provider never produced data."""
        return cls(
            solar_flux_index=0.0,
            a_index=0,
            k_index=0,
            sunspot_number=0,
            timestamp=timestamp,
            source=source,
        )

    @property
    def geomagnetic_activity(self) -> str:
        for upper, label in K_INDEX_LEVELS:
            if self.k_index <= upper:
                return label
        return "Severe Storm"

    @property
    def solar_flux_level(self) -> str:
        for upper, label in SFI_LEVELS:
            if self.solar_flux_index < upper:
                return label
        return "Very High"
