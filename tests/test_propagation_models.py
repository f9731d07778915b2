"""Tests for band conditions, solar indices and frequency bands."""

import pytest
from pydantic import ValidationError

from conftest import FIXED_NOW

from skywave.models.common import FrequencyBand, Scoreable
from skywave.models.propagation import BandCondition, BandConditionRating, SolarIndices


def _indices(sfi=150.0, k=2, a=10, sunspots=100) -> SolarIndices:
    return SolarIndices(
        solar_flux_index=sfi,
        a_index=a,
        k_index=k,
        sunspot_number=sunspots,
        timestamp=FIXED_NOW,
        source="NOAA SWPC",
    )


class TestBandCondition:
    @pytest.mark.parametrize(
        "rating, confidence, expected",
        [
            (BandConditionRating.GOOD, 0.7, 70),
            (BandConditionRating.FAIR, 0.5, 30),
            (BandConditionRating.POOR, 1.0, 20),
            (BandConditionRating.UNKNOWN, 1.0, 0),
            (BandConditionRating.UNKNOWN, 0.3, 0),
        ],
    )
    def test_score(self, rating, confidence, expected):
        condition = BandCondition(
            band=FrequencyBand.BAND_20M, rating=rating, confidence=confidence
        )
        assert condition.score() == expected

    def test_default_confidence(self):
        condition = BandCondition(band="40m", rating="GOOD")
        assert condition.confidence == 1.0
        assert condition.score() == 100

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_out_of_range_rejected(self, confidence):
        with pytest.raises(ValidationError):
            BandCondition(band="20m", rating="GOOD", confidence=confidence)

    def test_favorable_needs_good_and_confidence(self):
        assert BandCondition(band="20m", rating="GOOD", confidence=0.6).is_favorable()
        assert not BandCondition(band="20m", rating="GOOD", confidence=0.5).is_favorable()
        assert not BandCondition(band="20m", rating="FAIR").is_favorable()

    def test_is_scoreable(self):
        assert isinstance(BandCondition(band="20m", rating="GOOD"), Scoreable)


class TestBandConditionRating:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Good", BandConditionRating.GOOD),
            (" fair ", BandConditionRating.FAIR),
            ("POOR", BandConditionRating.POOR),
            ("Closed", BandConditionRating.UNKNOWN),
            ("", BandConditionRating.UNKNOWN),
            (None, BandConditionRating.UNKNOWN),
        ],
    )
    def test_from_string(self, raw, expected):
        assert BandConditionRating.from_string(raw) == expected


class TestSolarIndicesFavorable:
    def test_all_conditions_met(self):
        assert _indices(sfi=150, k=2, a=10).is_favorable() is True

    def test_flux_boundary_is_exclusive(self):
        assert _indices(sfi=100, k=2, a=10).is_favorable() is False

    def test_k_boundary_is_exclusive(self):
        assert _indices(sfi=150, k=4, a=10).is_favorable() is False

    def test_a_boundary_is_exclusive(self):
        assert _indices(sfi=150, k=2, a=20).is_favorable() is False


class TestSolarIndicesScore:
    def test_bounds(self):
        assert 0 <= _indices(sfi=0, k=9, a=400).score() <= 100
        assert 0 <= _indices(sfi=400, k=0, a=0).score() <= 100
        assert _indices(sfi=400, k=0, a=0).score() == 100
        assert _indices(sfi=0, k=9, a=50).score() == 0

    def test_non_decreasing_in_flux(self):
        scores = [_indices(sfi=sfi).score() for sfi in range(0, 301, 10)]
        assert scores == sorted(scores)
        assert scores[-1] > scores[0]

    def test_non_increasing_in_k(self):
        scores = [_indices(k=k).score() for k in range(0, 10)]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] > scores[-1]

    def test_k_index_out_of_range(self):
        with pytest.raises(ValidationError):
            _indices(k=10)

    def test_negative_flux_rejected(self):
        with pytest.raises(ValidationError):
            _indices(sfi=-1)

    def test_placeholder(self):
        placeholder = SolarIndices.placeholder("NOAA SWPC (Degraded)", FIXED_NOW)
        assert placeholder.solar_flux_index == 0
        assert placeholder.source == "NOAA SWPC (Degraded)"


class TestSolarIndicesLevels:
    @pytest.mark.parametrize(
        "k, expected",
        [
            (0, "Quiet"),
            (2, "Quiet"),
            (3, "Unsettled"),
            (4, "Unsettled"),
            (5, "Active"),
            (6, "Active"),
            (7, "Storm"),
            (8, "Storm"),
            (9, "Severe Storm"),
        ],
    )
    def test_geomagnetic_activity(self, k, expected):
        assert _indices(k=k).geomagnetic_activity == expected

    @pytest.mark.parametrize(
        "sfi, expected",
        [
            (65.0, "Very Low"),
            (70.0, "Low"),
            (99.9, "Low"),
            (100.0, "Moderate"),
            (149.0, "Moderate"),
            (150.0, "High"),
            (199.0, "High"),
            (200.0, "Very High"),
        ],
    )
    def test_solar_flux_level(self, sfi, expected):
        assert _indices(sfi=sfi).solar_flux_level == expected


class TestFrequencyBand:
    @pytest.mark.parametrize(
        "khz, expected",
        [
            (1840.0, FrequencyBand.BAND_160M),
            (7074.0, FrequencyBand.BAND_40M),
            (14285.5, FrequencyBand.BAND_20M),
            (50313.0, FrequencyBand.BAND_6M),
            (146520.0, FrequencyBand.BAND_2M),
            (27185.0, None),
            (None, None),
        ],
    )
    def test_from_frequency(self, khz, expected):
        assert FrequencyBand.from_frequency_khz(khz) == expected

    def test_from_string(self):
        assert FrequencyBand.from_string(" 20M ") == FrequencyBand.BAND_20M
        assert FrequencyBand.from_string("11m") is None
        assert FrequencyBand.from_string("") is None

    def test_edges(self):
        band = FrequencyBand.BAND_20M
        assert (band.start_khz, band.end_khz, band.center_khz) == (14000, 14350, 14175)
        assert band.contains(14000) and band.contains(14350)
        assert str(band) == "20m"
