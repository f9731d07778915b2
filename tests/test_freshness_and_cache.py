"""Tests for freshness tracking and the per-feed cache slots."""

from datetime import timedelta, timezone, datetime

import pytest

from conftest import FIXED_NOW, FakeClock

from skywave.services.cache import CacheManager, degraded_label
from skywave.services.freshness import FreshnessTracker


class TestFreshnessTracker:
    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            FreshnessTracker(timedelta(0))

    def test_never_succeeded_is_stale(self):
        tracker = FreshnessTracker(timedelta(minutes=5), clock=FakeClock())
        assert tracker.last_success_at is None
        assert tracker.data_age() is None
        assert tracker.is_stale() is True

    def test_mark_success_uses_clock(self):
        clock = FakeClock()
        tracker = FreshnessTracker(timedelta(minutes=5), clock=clock)
        assert tracker.mark_success() == FIXED_NOW
        assert tracker.last_success_at == FIXED_NOW

    def test_mark_success_normalizes_naive(self):
        tracker = FreshnessTracker(timedelta(minutes=5), clock=FakeClock())
        recorded = tracker.mark_success(datetime(2025, 1, 1, 12, 0))
        assert recorded.tzinfo == timezone.utc

    def test_stale_only_after_twice_interval(self):
        clock = FakeClock()
        tracker = FreshnessTracker(timedelta(minutes=5), clock=clock)
        tracker.mark_success()

        clock.advance(minutes=10)
        assert tracker.data_age() == timedelta(minutes=10)
        assert tracker.is_stale() is False

        clock.advance(seconds=1)
        assert tracker.is_stale() is True

    def test_explicit_now_overrides_clock(self):
        tracker = FreshnessTracker(timedelta(minutes=5), clock=FakeClock())
        tracker.mark_success()
        assert tracker.is_stale(FIXED_NOW + timedelta(hours=1)) is True
        assert tracker.stale_after == timedelta(minutes=10)


class TestCacheManager:
    def test_miss_on_unknown_slot(self):
        cache = CacheManager()
        assert cache.get("noaa") is None
        assert cache.get_value("noaa", "fallback") == "fallback"
        assert cache.get_stats().misses == 2

    def test_store_success(self):
        cache = CacheManager()
        slot = cache.store_success("noaa", 42, "NOAA SWPC", at=FIXED_NOW)
        assert slot.value == 42
        assert slot.source == "NOAA SWPC"
        assert slot.last_success_at == FIXED_NOW
        assert slot.has_real_data is True
        assert slot.degraded is False
        assert slot.serving_stale is False
        assert cache.get("noaa") is slot

    def test_fallback_without_real_data_is_degraded(self):
        cache = CacheManager()
        slot = cache.store_fallback("pota", [], "POTA API", at=FIXED_NOW)
        assert slot.value == []
        assert slot.degraded is True
        assert slot.serving_stale is True
        assert slot.has_real_data is False
        assert slot.source == "POTA API (Degraded)"
        assert slot.source == degraded_label("POTA API")

    def test_fallback_keeps_last_good_value(self):
        cache = CacheManager()
        cache.store_success("noaa", "good", "NOAA SWPC", at=FIXED_NOW)
        later = FIXED_NOW + timedelta(minutes=30)
        slot = cache.store_fallback("noaa", "default", "NOAA SWPC", at=later)
        assert slot.value == "good"
        assert slot.source == "NOAA SWPC"
        assert slot.degraded is False
        assert slot.serving_stale is True
        assert slot.last_success_at == FIXED_NOW
        assert slot.updated_at == later

    def test_success_clears_stale_flag(self):
        cache = CacheManager()
        cache.store_fallback("noaa", "default", "NOAA SWPC")
        slot = cache.store_success("noaa", "fresh", "NOAA SWPC")
        assert slot.serving_stale is False
        assert slot.degraded is False

    def test_writes_replace_the_slot_object(self):
        cache = CacheManager()
        first = cache.store_success("noaa", 1, "NOAA SWPC")
        cache.store_success("noaa", 2, "NOAA SWPC")
        # A reader holding the old snapshot still sees a consistent value
        assert first.value == 1
        assert cache.get_value("noaa") == 2

    def test_stats(self):
        cache = CacheManager()
        cache.store_success("noaa", 1, "NOAA SWPC")
        cache.store_fallback("pota", [], "POTA API")
        cache.get("noaa")
        cache.get("pota")
        cache.get("sota")
        stats = cache.get_stats()
        assert (stats.hits, stats.stale_hits, stats.misses, stats.size) == (1, 1, 1, 2)
        assert stats.hit_rate == pytest.approx(1 / 3)
        assert stats.to_dict()["hit_rate"] == "33.33%"

    def test_names_snapshot_clear(self):
        cache = CacheManager(debug=True)
        cache.store_success("noaa", 1, "NOAA SWPC")
        cache.store_success("pota", [], "POTA API")
        assert sorted(cache.names()) == ["noaa", "pota"]
        snap = cache.snapshot()
        cache.clear()
        assert cache.names() == []
        assert set(snap) == {"noaa", "pota"}
