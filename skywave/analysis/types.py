"""
Dashboard result types using Pydantic models.
"""

from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

CardKind = Literal["solar", "bands", "activations", "contests", "meteors"]
Hotness = Literal["hot", "warm", "neutral", "cool"]


class FreshnessInfo(BaseModel):
    """How current a section's data is."""

    source: str
    last_updated: datetime | None = None
    data_age_seconds: float | None = None
    is_stale: bool = True
    is_serving_stale_data: bool = False
    degraded: bool = False


class Section(BaseModel, Generic[T]):
    """A dashboard section: data plus where it came from and how old it is."""

    data: T
    freshness: FreshnessInfo


class DashboardCard(BaseModel):
    """One ranked card on the dashboard."""

    kind: CardKind
    title: str
    score: int = Field(ge=0, le=100)
    favorable: bool
    priority: int
    hotness: Hotness
    freshness: FreshnessInfo


class FeedStatus(BaseModel):
    """Health of one upstream feed."""

    service_id: str
    source: str
    last_successful_refresh: datetime | None = None
    data_age_seconds: float | None = None
    refresh_interval_seconds: float
    is_stale: bool
    is_serving_stale_data: bool
    circuit_state: str
