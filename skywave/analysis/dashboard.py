"""
Read-side dashboard queries.

Everything here reads the cache slots the feeds last wrote; nothing triggers
a fetch. Each section is annotated with its freshness so the caller decides
how to present stale data.
"""

from datetime import datetime
from typing import Any, Iterable

from skywave.analysis.merge import SolarIndicesMerger
from skywave.analysis.types import (
    DashboardCard,
    FeedStatus,
    FreshnessInfo,
    Hotness,
    Section,
)
from skywave.datasource.base import ResilientDataSource
from skywave.models.activations import ActivationsSummary
from skywave.models.common import EventStatus, Scoreable, resolve_now
from skywave.models.contests import Contest
from skywave.models.meteors import MeteorShower
from skywave.models.propagation import BandCondition, BandConditionRating, SolarIndices
from skywave.services.cache import CacheManager

PRIORITY_WEIGHTS = {
    "favorable": 40,
    "score": 35,
    "rating": 20,
    "recency": 5,
}

RECENCY_WINDOW_MINUTES = 60

# Lower bound of each hotness level
HOTNESS_LEVELS: list[tuple[int, Hotness]] = [
    (70, "hot"),
    (45, "warm"),
    (20, "neutral"),
]


def calculate_priority(
    favorable: bool,
    score: int | None = None,
    rating: BandConditionRating | None = None,
    last_updated: datetime | None = None,
    now: datetime | None = None,
    user_weight: float | None = None,
) -> int:
    """
    Rank a dashboard card.

    favorable flag 40, score 35, rating 20, and a recency share of 5 that
    decays to nothing over an hour.
    """
    priority = 0.0
    if favorable:
        priority += PRIORITY_WEIGHTS["favorable"]
    if score is not None:
        priority += min(100, max(0, score)) / 100 * PRIORITY_WEIGHTS["score"]
    if rating is not None:
        priority += rating.weight / 100 * PRIORITY_WEIGHTS["rating"]
    if last_updated is not None:
        age_minutes = (resolve_now(now) - last_updated).total_seconds() / 60
        recency = max(0.0, min(1.0, 1 - age_minutes / RECENCY_WINDOW_MINUTES))
        priority += recency * PRIORITY_WEIGHTS["recency"]
    if user_weight is not None:
        priority *= user_weight
    return round(priority)


def priority_to_hotness(priority: int) -> Hotness:
    for lower, level in HOTNESS_LEVELS:
        if priority >= lower:
            return level
    return "cool"


def rank_by_score(items: Iterable[Scoreable], now: datetime) -> list[Any]:
    """Highest score first; ties keep their original order."""
    return sorted(items, key=lambda item: item.score(now), reverse=True)


class DashboardService:
    """
    Dashboard queries over the feeds' cache slots.

    Usage:
        dashboard = DashboardService(client.cache, sources)
        cards = dashboard.cards()
    """

    def __init__(
        self,
        cache: CacheManager,
        sources: Iterable[ResilientDataSource],
        merger: SolarIndicesMerger | None = None,
        noaa_id: str = "noaa",
        hamqsl_solar_id: str = "hamqsl-solar",
        bands_id: str = "hamqsl-band",
        pota_id: str = "pota",
        sota_id: str = "sota",
        contests_id: str = "contests",
        meteors_id: str = "meteors",
    ):
        self.cache = cache
        self.sources = {source.service_id: source for source in sources}
        self.merger = merger or SolarIndicesMerger(cache)
        self._solar_ids = [noaa_id, hamqsl_solar_id]
        self._bands_id = bands_id
        self._activation_ids = [pota_id, sota_id]
        self._contests_id = contests_id
        self._meteors_id = meteors_id

    # Slot access

    def _read(self, service_id: str) -> tuple[Any, bool]:
        """Current value of a feed's slot and whether it is degraded."""
        source = self.sources.get(service_id)
        if source is None:
            return None, True
        slot = self.cache.get(source.cache_slot)
        if slot is None:
            return source.get_default_value(), True
        return slot.value, slot.degraded

    def _freshness(
        self,
        service_ids: list[str],
        label: str | None,
        degraded: bool,
        now: datetime,
    ) -> FreshnessInfo:
        """
        Freshness of data drawn from one or more feeds.

        Stale only when every contributing feed is stale.
        """
        sources = [self.sources[i] for i in service_ids if i in self.sources]
        refreshed = [
            s.last_successful_refresh for s in sources if s.last_successful_refresh
        ]
        last_updated = max(refreshed) if refreshed else None
        return FreshnessInfo(
            source=label or " + ".join(s.source_label for s in sources),
            last_updated=last_updated,
            data_age_seconds=(
                (now - last_updated).total_seconds() if last_updated else None
            ),
            is_stale=all(s.is_stale(now) for s in sources) if sources else True,
            is_serving_stale_data=any(s.is_serving_stale_data for s in sources),
            degraded=degraded,
        )

    # Sections

    def solar_indices(self, now: datetime | None = None) -> Section[SolarIndices | None]:
        now = resolve_now(now)
        merged = self.merger.merge_from_cache(now)
        return Section[SolarIndices | None](
            data=merged,
            freshness=self._freshness(
                self._solar_ids,
                merged.source if merged else None,
                degraded=merged is None,
                now=now,
            ),
        )

    def band_conditions(
        self, now: datetime | None = None
    ) -> Section[list[BandCondition]]:
        now = resolve_now(now)
        bands, degraded = self._read(self._bands_id)
        return Section[list[BandCondition]](
            data=rank_by_score(bands or [], now),
            freshness=self._freshness([self._bands_id], None, degraded, now),
        )

    def activations(self, now: datetime | None = None) -> Section[ActivationsSummary]:
        now = resolve_now(now)
        activations = []
        all_degraded = True
        for service_id in self._activation_ids:
            items, degraded = self._read(service_id)
            activations.extend(items or [])
            all_degraded = all_degraded and degraded
        return Section[ActivationsSummary](
            data=ActivationsSummary.from_activations(activations, last_updated=now),
            freshness=self._freshness(self._activation_ids, None, all_degraded, now),
        )

    def contests(self, now: datetime | None = None) -> Section[list[Contest]]:
        now = resolve_now(now)
        contests, degraded = self._read(self._contests_id)
        current = [c for c in contests or [] if c.status(now) != EventStatus.ENDED]
        return Section[list[Contest]](
            data=rank_by_score(current, now),
            freshness=self._freshness([self._contests_id], None, degraded, now),
        )

    def meteor_showers(self, now: datetime | None = None) -> Section[list[MeteorShower]]:
        now = resolve_now(now)
        showers, degraded = self._read(self._meteors_id)
        current = [s for s in showers or [] if s.status(now) != EventStatus.ENDED]
        return Section[list[MeteorShower]](
            data=rank_by_score(current, now),
            freshness=self._freshness([self._meteors_id], None, degraded, now),
        )

    # Ranking

    def _card(
        self,
        kind: str,
        title: str,
        score: int,
        favorable: bool,
        freshness: FreshnessInfo,
        now: datetime,
        rating: BandConditionRating | None = None,
    ) -> DashboardCard:
        priority = calculate_priority(
            favorable,
            score,
            rating=rating,
            last_updated=freshness.last_updated,
            now=now,
        )
        return DashboardCard(
            kind=kind,
            title=title,
            score=score,
            favorable=favorable,
            priority=priority,
            hotness=priority_to_hotness(priority),
            freshness=freshness,
        )

    def cards(self, now: datetime | None = None) -> list[DashboardCard]:
        """One card per section, highest priority first. Degraded sections are left out."""
        now = resolve_now(now)
        cards: list[DashboardCard] = []

        solar = self.solar_indices(now)
        if solar.data is not None:
            cards.append(
                self._card(
                    "solar",
                    f"Solar: {solar.data.solar_flux_level} flux, "
                    f"{solar.data.geomagnetic_activity}",
                    solar.data.score(now),
                    solar.data.is_favorable(now),
                    solar.freshness,
                    now,
                )
            )

        bands = self.band_conditions(now)
        if bands.data:
            best = bands.data[0]
            cards.append(
                self._card(
                    "bands",
                    f"Best band: {best.band} ({best.rating.value})",
                    best.score(now),
                    any(b.is_favorable(now) for b in bands.data),
                    bands.freshness,
                    now,
                    rating=best.rating,
                )
            )

        activations = self.activations(now)
        if not activations.freshness.degraded:
            summary = activations.data
            cards.append(
                self._card(
                    "activations",
                    f"{summary.pota_count} POTA / {summary.sota_count} SOTA on air",
                    summary.score(now),
                    summary.is_favorable(now),
                    activations.freshness,
                    now,
                )
            )

        for kind, section in (
            ("contests", self.contests(now)),
            ("meteors", self.meteor_showers(now)),
        ):
            if section.data:
                top = section.data[0]
                cards.append(
                    self._card(
                        kind,
                        top.name,
                        top.score(now),
                        top.is_favorable(now),
                        section.freshness,
                        now,
                    )
                )

        cards.sort(key=lambda card: card.priority, reverse=True)
        return cards

    def feed_status(self, now: datetime | None = None) -> list[FeedStatus]:
        """Freshness and breaker state of every registered feed."""
        now = resolve_now(now)
        return [
            FeedStatus.model_validate(source.get_status(now))
            for source in self.sources.values()
        ]
