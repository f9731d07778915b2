"""Tests for the feed adapters against canned upstream payloads."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from conftest import FIXED_NOW, FakeClock, make_client

from skywave.datasource.activations import PotaSource, SotaSource
from skywave.datasource.contests import ContestCalendarSource
from skywave.datasource.contests.calendar import parse_ical_events
from skywave.datasource.meteors import MeteorShowerSource
from skywave.datasource.meteors.catalog import load_templates
from skywave.datasource.parsing import parse_timestamp, split_location_desc
from skywave.datasource.propagation import (
    HamQslBandSource,
    HamQslSolarSource,
    NoaaSolarSource,
)
from skywave.datasource.propagation.hamqsl import parse_hamqsl_xml
from skywave.models.activations import ActivationType, Park, Summit
from skywave.models.common import EventStatus, FrequencyBand
from skywave.models.propagation import BandConditionRating
from skywave.services.errors import InvalidApiResponseError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    return asyncio.run(coro)


def _source_with(source_cls, response: httpx.Response, **kwargs):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        # Fresh response per request; retries replay the same payload
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )

    client = make_client(FakeClock(), transport=httpx.MockTransport(handler))
    return source_cls(client, **kwargs), calls


async def _fetch_and_close(source):
    try:
        return await source.fetch()
    finally:
        await source.client.close()


NOAA_PAYLOAD = [
    {"time-tag": "2025-06", "ssn": 120.5, "smoothed_ssn": 140.1, "f10.7": 150.2},
    {"time-tag": "2025-07", "ssn": 140.4, "smoothed_ssn": 139.0, "f10.7": 162.4},
]

HAMQSL_XML = """<?xml version="1.0" encoding="ISO-8859-1"?>
<solar>
<solardata>
<updated> 12 Aug 2025 0300 GMT</updated>
<solarflux>158</solarflux>
<aindex> 12</aindex>
<kindex>3</kindex>
<sunspots>120</sunspots>
<calculatedconditions>
<band name="80m-40m" time="day">Fair</band>
<band name="30m-20m" time="day">Good</band>
<band name="17m-15m" time="day">Good</band>
<band name="12m-10m" time="day">Poor</band>
<band name="80m-40m" time="night">Good</band>
<band name="30m-20m" time="night">Good</band>
<band name="17m-15m" time="night">Fair</band>
<band name="12m-10m" time="night">Poor</band>
</calculatedconditions>
</solardata>
</solar>
"""

POTA_PAYLOAD = [
    {
        "spotId": 31234567,
        "activator": "k7abc",
        "frequency": "14062",
        "mode": "CW",
        "reference": "US-0817",
        "name": "Mount Rainier National Park",
        "spotTime": "2025-08-12T02:58:00",
        "locationDesc": "US-WA",
        "grid6": "CN96ut",
        "latitude": 46.85,
        "longitude": -121.75,
        "qsos": 14,
    },
    {"spotId": 31234568, "frequency": "7030", "reference": "US-1234"},
]

SOTA_PAYLOAD = [
    {
        "id": 456789,
        "timeStamp": "2025-08-12T02:55:00",
        "activatorCallsign": "w7xyz/p",
        "associationCode": "W7W",
        "summitCode": "LC-001",
        "summitDetails": "Mount Si, 1270m, 10 pts",
        "frequency": "7.032",
        "mode": "cw",
    }
]

ICAL = "\r\n".join(
    [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//WA7BNM Contest Calendar//EN",
        "BEGIN:VEVENT",
        "SUMMARY:NCCC Sprint\\, Ladder",
        "DTSTART:20250812T023000Z",
        "DTEND:20250812T030000Z",
        "URL:https://www.contestcalendar.com/contestdetails.php?ref=101",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "SUMMARY:Worked All Europe DX",
        "  Contest, CW",
        "DTSTART;VALUE=DATE-TIME:20250809T000000Z",
        "DTEND:20250810T235900Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "SUMMARY:",
        "DTSTART:20250815T000000Z",
        "DTEND:20250816T000000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "SUMMARY:Backwards Contest",
        "DTSTART:20250816T000000Z",
        "DTEND:20250815T000000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "SUMMARY:No End Time",
        "DTSTART:20250816T000000Z",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
)


# ---------------------------------------------------------------------------
# NOAA
# ---------------------------------------------------------------------------


class TestNoaaSolarSource:
    def test_uses_latest_entry(self):
        source, calls = _source_with(NoaaSolarSource, httpx.Response(200, json=NOAA_PAYLOAD))
        result = _run(_fetch_and_close(source))

        indices = result.data
        assert result.is_stale is False
        assert indices.solar_flux_index == 162.4
        assert indices.sunspot_number == 140
        assert indices.k_index == 0 and indices.a_index == 0
        assert indices.timestamp == datetime(2025, 7, 1, tzinfo=timezone.utc)
        assert indices.source == "NOAA SWPC"
        assert str(calls[0].url).startswith("https://services.swpc.noaa.gov/")

    def test_empty_list_falls_back_to_degraded(self):
        source, calls = _source_with(NoaaSolarSource, httpx.Response(200, json=[]))
        result = _run(_fetch_and_close(source))
        assert result.degraded is True
        assert result.source == "NOAA SWPC (Degraded)"
        assert result.data.source == "NOAA SWPC (Degraded)"
        assert len(calls) == 1

    def test_out_of_range_value_not_retried(self):
        payload = [{"time-tag": "2025-07", "ssn": 140.4, "f10.7": 5000}]
        source, calls = _source_with(NoaaSolarSource, httpx.Response(200, json=payload))
        result = _run(_fetch_and_close(source))
        assert result.is_stale is True
        assert result.error.startswith("InvalidApiResponseError")
        assert len(calls) == 1

    def test_server_error_is_retried(self):
        source, calls = _source_with(NoaaSolarSource, httpx.Response(503, text="down"))
        result = _run(_fetch_and_close(source))
        assert result.is_stale is True
        assert len(calls) == 3

    def test_unparseable_time_tag_uses_clock(self):
        source, _ = _source_with(NoaaSolarSource, httpx.Response(200, json=[]))
        assert source.parse_timestamp("sometime") == FIXED_NOW


# ---------------------------------------------------------------------------
# HamQSL
# ---------------------------------------------------------------------------


class TestHamQsl:
    def test_parse_document(self):
        data = parse_hamqsl_xml(HAMQSL_XML)
        assert data.solarflux == 158.0
        assert data.aindex == 12
        assert data.kindex == 3
        assert data.sunspots == 120
        assert len(data.bands) == 8

    def test_missing_solardata(self):
        with pytest.raises(InvalidApiResponseError):
            parse_hamqsl_xml("<html><body>maintenance</body></html>")

    def test_empty_document(self):
        with pytest.raises(InvalidApiResponseError):
            parse_hamqsl_xml("   ")

    def test_solar_source(self):
        source, _ = _source_with(HamQslSolarSource, httpx.Response(200, text=HAMQSL_XML))
        result = _run(_fetch_and_close(source))
        indices = result.data
        assert (indices.k_index, indices.a_index) == (3, 12)
        assert indices.solar_flux_index == 158.0
        assert indices.timestamp == FIXED_NOW
        assert indices.source == "HamQSL"

    def test_k_index_out_of_range(self):
        xml = HAMQSL_XML.replace("<kindex>3</kindex>", "<kindex>12</kindex>")
        source, calls = _source_with(HamQslSolarSource, httpx.Response(200, text=xml))
        result = _run(_fetch_and_close(source))
        assert result.degraded is True
        assert len(calls) == 1

    def test_band_source_expands_daytime_pairs(self):
        source, _ = _source_with(HamQslBandSource, httpx.Response(200, text=HAMQSL_XML))
        result = _run(_fetch_and_close(source))
        ratings = {c.band: c.rating for c in result.data}
        assert len(result.data) == 8
        assert ratings[FrequencyBand.BAND_80M] == BandConditionRating.FAIR
        assert ratings[FrequencyBand.BAND_20M] == BandConditionRating.GOOD
        assert ratings[FrequencyBand.BAND_15M] == BandConditionRating.GOOD
        assert ratings[FrequencyBand.BAND_10M] == BandConditionRating.POOR

    def test_band_source_default_is_empty(self):
        source, _ = _source_with(HamQslBandSource, httpx.Response(200, text="<html/>"))
        result = _run(_fetch_and_close(source))
        assert result.data == []
        assert result.degraded is True


# ---------------------------------------------------------------------------
# POTA / SOTA
# ---------------------------------------------------------------------------


class TestPotaSource:
    def test_maps_spots_and_skips_malformed(self):
        source, _ = _source_with(PotaSource, httpx.Response(200, json=POTA_PAYLOAD))
        result = _run(_fetch_and_close(source))

        assert len(result.data) == 1
        activation = result.data[0]
        assert activation.spot_id == "31234567"
        assert activation.activator_callsign == "K7ABC"
        assert activation.type == ActivationType.POTA
        assert activation.frequency == 14062.0
        assert activation.band == FrequencyBand.BAND_20M
        assert activation.qso_count == 14
        assert activation.spotted_at == datetime(2025, 8, 12, 2, 58, tzinfo=timezone.utc)
        assert activation.score(FIXED_NOW) == 100
        assert isinstance(activation.location, Park)
        assert activation.location.country_code == "US"
        assert activation.location.region_code == "WA"
        assert activation.location.latitude == 46.85
        assert activation.source == "POTA API"

    def test_non_list_payload_falls_back(self):
        source, calls = _source_with(PotaSource, httpx.Response(200, json={"error": "x"}))
        result = _run(_fetch_and_close(source))
        assert result.data == []
        assert result.is_stale is True
        assert len(calls) == 1


class TestSotaSource:
    def test_maps_spots(self):
        source, _ = _source_with(SotaSource, httpx.Response(200, json=SOTA_PAYLOAD))
        result = _run(_fetch_and_close(source))

        activation = result.data[0]
        assert activation.activator_callsign == "W7XYZ/P"
        assert activation.type == ActivationType.SOTA
        assert activation.frequency == pytest.approx(7032.0)
        assert activation.band == FrequencyBand.BAND_40M
        assert isinstance(activation.location, Summit)
        assert activation.reference == "W7W/LC-001"
        assert activation.location.association_code == "W7W"
        assert activation.reference_name == "Mount Si, 1270m, 10 pts"
        assert activation.age_minutes(FIXED_NOW) == 5


# ---------------------------------------------------------------------------
# Contest calendar
# ---------------------------------------------------------------------------


class TestContestCalendar:
    def test_parse_events(self):
        events = parse_ical_events(ICAL)
        assert len(events) == 5
        assert events[0]["SUMMARY"] == "NCCC Sprint, Ladder"
        assert events[1]["SUMMARY"] == "Worked All Europe DX Contest, CW"
        assert events[1]["DTSTART"] == "20250809T000000Z"

    def test_not_a_calendar(self):
        with pytest.raises(InvalidApiResponseError):
            parse_ical_events("<html>oops</html>")

    def test_source_skips_malformed_events(self):
        source, _ = _source_with(ContestCalendarSource, httpx.Response(200, text=ICAL))
        result = _run(_fetch_and_close(source))

        contests = {c.name: c for c in result.data}
        assert set(contests) == {"NCCC Sprint, Ladder", "Worked All Europe DX Contest, CW"}
        sprint = contests["NCCC Sprint, Ladder"]
        assert sprint.start_time == datetime(2025, 8, 12, 2, 30, tzinfo=timezone.utc)
        assert sprint.status(FIXED_NOW) == EventStatus.ACTIVE
        assert sprint.calendar_source_url.endswith("ref=101")

    def test_empty_body_falls_back(self):
        source, _ = _source_with(ContestCalendarSource, httpx.Response(200, text=""))
        result = _run(_fetch_and_close(source))
        assert result.degraded is True
        assert result.data == []


# ---------------------------------------------------------------------------
# Meteor shower catalog
# ---------------------------------------------------------------------------


class TestMeteorShowerSource:
    def test_bundled_catalog_loads(self):
        templates = load_templates()
        assert {"PER", "GEM", "QUA"} <= {t.code for t in templates}

    def test_fetch_current_showers(self):
        client = make_client(FakeClock())
        result = _run(MeteorShowerSource(client).fetch())

        assert [s.code for s in result.data] == ["SDA", "PER"]
        perseids = result.data[1]
        assert perseids.name == "Perseids 2025"
        assert perseids.is_at_peak(FIXED_NOW) is True
        assert perseids.score(FIXED_NOW) == 95

    def test_lookahead_window(self):
        client = make_client(FakeClock())
        result = _run(MeteorShowerSource(client, lookahead_days=60).fetch())
        assert "ORI" in [s.code for s in result.data]

    def test_year_rollover(self):
        clock = FakeClock(datetime(2025, 12, 28, tzinfo=timezone.utc))
        result = _run(MeteorShowerSource(make_client(clock)).fetch())
        names = [s.name for s in result.data]
        assert "Quadrantids 2026" in names
        assert "Ursids 2025" in names
        assert "Geminids 2025" not in names

    def test_missing_catalog_falls_back(self, tmp_path):
        client = make_client(FakeClock())
        source = MeteorShowerSource(client, catalog_path=tmp_path / "missing.json")
        result = _run(source.fetch())
        assert result.degraded is True
        assert result.data == []

    def test_invalid_template(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"showers": [{"name": "Bad", "code": "BAD"}]}))
        source = MeteorShowerSource(make_client(FakeClock()), catalog_path=path)
        result = _run(source.fetch())
        assert result.error.startswith("InvalidApiResponseError")


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestParsing:
    def test_parse_timestamp_variants(self):
        expected = datetime(2025, 8, 12, 2, 58, tzinfo=timezone.utc)
        assert parse_timestamp("2025-08-12T02:58:00", "test") == expected
        assert parse_timestamp("2025-08-12T02:58:00Z", "test") == expected
        assert parse_timestamp("12 Aug 2025 02:58", "test") == expected

    def test_parse_timestamp_fallback(self):
        assert parse_timestamp("not a date", "test", default=FIXED_NOW) == FIXED_NOW
        assert parse_timestamp(None, "test", default=FIXED_NOW) == FIXED_NOW

    def test_split_location_desc(self):
        assert split_location_desc("US-WA") == ("US", "WA")
        assert split_location_desc("CA") == (None, None)
        assert split_location_desc(None) == (None, None)
